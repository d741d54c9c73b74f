"""Exception types raised while serving a slot lookup or booking.

Each error knows the HTTP status it becomes at the API boundary:

  InvalidRequestError       400  malformed date / time from the form
  NoTimeSlotSelected        404  timetable value not one of the fixed slots
  TokenIssueError           502  service-account token could not be minted
  CalendarAPIError          *    non-2xx from Google Calendar, passed through
  CalendarUnavailableError  502  Google Calendar unreachable
"""

from __future__ import annotations

from typing import Any


class SchedulingError(Exception):
    """Base class for every error the API converts into a response."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_body(self) -> Any:
        return {"message": self.message}


class InvalidRequestError(SchedulingError):
    """Client sent a date or time we cannot interpret."""

    status_code = 400


class NoTimeSlotSelected(InvalidRequestError):
    """Booking time is missing or not one of the bookable slot times."""

    status_code = 404

    def __init__(self, message: str = "No correct time slot selected") -> None:
        super().__init__(message)


class TokenIssueError(SchedulingError):
    """The OAuth token endpoint did not hand out a usable access token."""

    status_code = 502


class CalendarAPIError(SchedulingError):
    """Google Calendar answered with a non-success status.

    The upstream body and status are surfaced to the caller unchanged.
    """

    def __init__(self, status_code: int, body: Any) -> None:
        super().__init__(f"Calendar API returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body

    def to_body(self) -> Any:
        return self.body


class CalendarUnavailableError(SchedulingError):
    """Network-level failure talking to Google Calendar."""

    status_code = 502
