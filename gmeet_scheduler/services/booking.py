"""Booking validation and Calendar event construction.

A booking is only accepted for one of the fixed slot times; the civil
date/time is resolved in Paris and stored on the event as UTC.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from gmeet_scheduler.calendar_providers.base import SLOT_DURATION, CalendarEvent
from gmeet_scheduler.errors import InvalidRequestError, NoTimeSlotSelected
from gmeet_scheduler.models.booking import BookingRequest

from .slots import is_slot_time, slot_start

log = logging.getLogger("gmeet_scheduler.booking")

REMINDER_MINUTES = 30


def redact_pii(value: str) -> str:
    """Mask PII for logging: show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


def validate_booking(request: BookingRequest) -> datetime:
    """Return the UTC start of the requested slot.

    Raises:
        NoTimeSlotSelected: ``time`` is empty or not a bookable slot time.
        InvalidRequestError: ``date`` is not ``dd/mm/YYYY``.
    """
    if not is_slot_time(request.time):
        log.info("Rejected booking: time %r is not a slot", request.time)
        raise NoTimeSlotSelected()

    try:
        day = datetime.strptime(request.date.strip(), "%d/%m/%Y").date()
    except ValueError as e:
        raise InvalidRequestError(
            f"Invalid date: {request.date!r}. Expected dd/mm/yyyy."
        ) from e

    return slot_start(day, request.time)


def new_request_id() -> str:
    """Idempotency key for the Meet conference create request."""
    return secrets.token_urlsafe(12)


def build_event(
    request: BookingRequest, request_id: Optional[str] = None
) -> CalendarEvent:
    start = validate_booking(request).astimezone(timezone.utc)
    end = start + SLOT_DURATION

    log.info(
        "Booking call with %s at %s UTC",
        redact_pii(request.invitee),
        start.isoformat(),
    )

    return CalendarEvent(
        summary=f"Call with {request.invitee}",
        description=request.description,
        start=start,
        end=end,
        timezone_label="UTC",
        conference_request_id=request_id or new_request_id(),
        reminder_minutes=[REMINDER_MINUTES],
    )
