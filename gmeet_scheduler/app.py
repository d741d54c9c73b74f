"""FastAPI application: HTTP endpoints behind the meeting booking form.

Endpoints:

  GET     /gmeet-api/available-slots?date=   Free 20-minute slots on a day
  POST    /gmeet-api/create-meeting          Book a Google Meet call (form body)
  OPTIONS /*                                 CORS preflight
  GET     /health                            Health check

Every request mints its own service-account token before talking to
Google Calendar, unless TOKEN_CACHE_ENABLED is set.
"""

from __future__ import annotations

# Load .env into os.environ early so GOOGLE_* values are visible to
# anything reading the environment directly.
from dotenv import load_dotenv
load_dotenv()

import asyncio
import logging
import time
from functools import partial
from typing import Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-20s %(levelname)-7s %(message)s",
)

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from gmeet_scheduler import __version__
from gmeet_scheduler.calendar_providers.base import CalendarProvider
from gmeet_scheduler.calendar_providers.google import GoogleCalendarProvider
from gmeet_scheduler.config import settings
from gmeet_scheduler.credentials.broker import TokenBroker, TokenCache
from gmeet_scheduler.errors import CalendarAPIError, SchedulingError
from gmeet_scheduler.models.booking import (
    AvailableSlotsResponse,
    BookingRequest,
    MeetingCreatedResponse,
)
from gmeet_scheduler.services.availability import (
    available_slot_labels,
    day_bounds,
    parse_query_date,
)
from gmeet_scheduler.services.booking import build_event

log = logging.getLogger("gmeet_scheduler.app")

_START_TIME = time.time()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Only consulted when settings.token_cache_enabled is true
_token_cache = TokenCache()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Google Meet Scheduler",
        description="Free-slot lookup and Google Meet booking for a scheduling form",
        version=__version__,
    )

    # Applies to every gmeet_scheduler.* logger; root handlers pass all levels
    logging.getLogger("gmeet_scheduler").setLevel(settings.log_level.upper())
    for warning in settings.validate_startup():
        log.warning(warning)

    # ── Error mapping ──────────────────────────────────────────

    @app.exception_handler(SchedulingError)
    async def scheduling_error(request: Request, exc: SchedulingError) -> Response:
        """Convert domain errors into JSON responses with CORS headers."""
        if exc.status_code >= 500 or isinstance(exc, CalendarAPIError):
            log.error("%s %s failed: %s", request.method, request.url.path, exc.message)

        if isinstance(exc, CalendarAPIError) and exc.status_code == 401:
            # Don't hand the rejected token out again
            _token_cache.discard(settings.service_credential())

        body = exc.to_body()
        if isinstance(body, (dict, list)):
            return JSONResponse(body, status_code=exc.status_code, headers=CORS_HEADERS)
        return PlainTextResponse(str(body), status_code=exc.status_code, headers=CORS_HEADERS)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> Response:
        """Unknown paths and methods are all plain-text 404s."""
        if exc.status_code in (404, 405):
            return PlainTextResponse("Not Found", status_code=404)
        return JSONResponse({"message": exc.detail}, status_code=exc.status_code)

    # ── CORS preflight ─────────────────────────────────────────

    @app.options("/{path:path}")
    async def preflight(path: str) -> Response:
        return Response(status_code=204, headers=CORS_HEADERS)

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        """Lightweight health check."""
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Available slots ────────────────────────────────────────

    @app.get("/gmeet-api/available-slots")
    async def available_slots(date: Optional[str] = None) -> JSONResponse:
        """Return the day's free slots as civil ``HH:MM`` strings."""
        day = parse_query_date(date)
        log.info("Getting events on %s", day.isoformat())

        provider = await _calendar_provider()
        time_min, time_max = day_bounds(day)
        events = await provider.list_events(time_min, time_max)

        body = AvailableSlotsResponse(available_slots=available_slot_labels(day, events))
        return JSONResponse(
            body.model_dump(by_alias=True),
            status_code=200,
            headers=CORS_HEADERS,
        )

    # ── Meeting creation ───────────────────────────────────────

    @app.post("/gmeet-api/create-meeting")
    async def create_meeting(request: Request) -> JSONResponse:
        """Book a call from the scheduling form.

        The slot is validated before any call to Google, so a bad
        ``timetable`` never costs a token round-trip.
        """
        form = await request.form()
        booking = BookingRequest(
            date=_form_value(form, "selectedDate"),
            time=_form_value(form, "timetable"),
            invitee=_form_value(form, "email"),
            description=_form_value(form, "message"),
        )
        event = build_event(booking)

        provider = await _calendar_provider()
        created = await provider.insert_event(event)

        body = MeetingCreatedResponse(data=created or {})
        return JSONResponse(body.model_dump(), status_code=201, headers=CORS_HEADERS)

    return app


# ── Helper functions ──────────────────────────────────────────────

def _form_value(form, name: str) -> str:
    value = form.get(name)
    return value.strip() if isinstance(value, str) else ""


def _token_broker() -> TokenBroker:
    cache = _token_cache if settings.token_cache_enabled else None
    return TokenBroker(settings.service_credential(), cache=cache)


async def _calendar_provider() -> CalendarProvider:
    """Mint an access token, then bind a Google Calendar client to it.

    Token failures raise TokenIssueError here, so the calendar call is
    never attempted without a token.
    """
    token = await _token_broker().get_token()

    # build() reads the discovery document from disk
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        partial(GoogleCalendarProvider, access_token=token, calendar_id=settings.calendar_id),
    )


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "gmeet_scheduler.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
