"""Google Calendar provider implementation.

Talks to the Calendar API v3 with an access token minted by the
credential broker.  The client library is synchronous, so each call runs
in the default thread pool.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any

import httplib2
from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from gmeet_scheduler.errors import CalendarAPIError, CalendarUnavailableError

from .base import CalendarEvent, CalendarProvider

logger = logging.getLogger(__name__)


class GoogleCalendarProvider(CalendarProvider):
    """CalendarProvider backed by Google Calendar API v3."""

    def __init__(self, access_token: str, calendar_id: str = "primary") -> None:
        if not access_token:
            raise ValueError("An access token is required to call Google Calendar.")
        self._calendar_id = calendar_id
        self._credentials = Credentials(token=access_token)
        self._service = build(
            "calendar", "v3", credentials=self._credentials, cache_discovery=False
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _execute(self, request) -> dict[str, Any]:
        """Run a prepared API request off the event loop, mapping failures.

        Non-JSON bodies come back from the client library as plain strings;
        those are treated as an unusable upstream response.
        """
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, partial(request.execute))
        except HttpError as e:
            status = e.resp.status if e.resp is not None else 502
            logger.warning(
                "Calendar API error %s on calendar %s", status, self._calendar_id
            )
            raise CalendarAPIError(int(status), self._decode_body(e.content)) from e
        except RefreshError as e:
            # A 401 makes the auth layer try to refresh a bare access token
            logger.warning("Calendar API rejected the access token: %s", e)
            raise CalendarAPIError(
                401, {"message": "Calendar API rejected the access token"}
            ) from e
        except (httplib2.HttpLib2Error, OSError) as e:
            logger.error("Calendar API unreachable: %s", e)
            raise CalendarUnavailableError(
                f"Calendar service unreachable: {e}"
            ) from e

        if result is None:
            return {}
        if not isinstance(result, dict):
            logger.error("Calendar API returned a non-JSON body: %.200r", result)
            raise CalendarUnavailableError("Calendar service returned a malformed response")
        return result

    @staticmethod
    def _decode_body(content: bytes | str | None) -> Any:
        """Upstream error body as JSON when possible, raw text otherwise."""
        if not content:
            return ""
        text = content.decode("utf-8", "replace") if isinstance(content, bytes) else content
        try:
            return json.loads(text)
        except ValueError:
            return text

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    # ------------------------------------------------------------------
    # CalendarProvider interface
    # ------------------------------------------------------------------

    async def list_events(
        self, time_min: datetime, time_max: datetime
    ) -> list[dict[str, Any]]:
        request = self._service.events().list(
            calendarId=self._calendar_id,
            timeMin=self._to_rfc3339(time_min),
            timeMax=self._to_rfc3339(time_max),
            singleEvents=True,
            orderBy="startTime",
        )
        response = await self._execute(request)
        items = response.get("items") or []
        logger.info(
            "Fetched %d events on calendar %s between %s and %s",
            len(items),
            self._calendar_id,
            time_min.isoformat(),
            time_max.isoformat(),
        )
        return items

    async def insert_event(self, event: CalendarEvent) -> dict[str, Any]:
        """Insert an event, asking Google to attach a Meet conference."""
        request = self._service.events().insert(
            calendarId=self._calendar_id,
            body=event.to_body(),
            conferenceDataVersion=1,
        )
        result = await self._execute(request)
        logger.info(
            "Created event %s on calendar %s",
            result.get("id", "?"),
            self._calendar_id,
        )
        return result
