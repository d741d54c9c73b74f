"""Abstract base class for calendar providers.

Defines the two calls the booking flow needs (list the day's events,
insert a new event) plus the value types passed across that boundary.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

SLOT_DURATION = timedelta(minutes=20)


@dataclass(frozen=True)
class TimeSlot:
    """A bookable 20-minute window, stored as UTC instants."""

    start: datetime
    end: datetime

    @classmethod
    def at(cls, start: datetime) -> "TimeSlot":
        return cls(start=start, end=start + SLOT_DURATION)


@dataclass(frozen=True)
class BusyInterval:
    """Time already taken by an existing calendar event."""

    start: datetime
    end: datetime

    def overlaps(self, slot: TimeSlot) -> bool:
        # Touching edges do not conflict
        return slot.start < self.end and slot.end > self.start


@dataclass
class CalendarEvent:
    """Represents a calendar event to be created."""

    summary: str
    start: datetime
    end: datetime
    description: str = ""
    timezone_label: str = "UTC"
    conference_request_id: str = ""
    reminder_minutes: list[int] = field(default_factory=lambda: [30])

    def to_body(self) -> dict[str, Any]:
        """Google Calendar v3 event resource for ``events.insert``."""
        body: dict[str, Any] = {
            "summary": self.summary,
            "description": self.description,
            "start": {
                "dateTime": self.start.isoformat(),
                "timeZone": self.timezone_label,
            },
            "end": {
                "dateTime": self.end.isoformat(),
                "timeZone": self.timezone_label,
            },
            "reminders": {
                "useDefault": False,
                "overrides": [
                    {"method": "email", "minutes": minutes}
                    for minutes in self.reminder_minutes
                ],
            },
        }
        if self.conference_request_id:
            body["conferenceData"] = {
                "createRequest": {
                    "requestId": self.conference_request_id,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                },
            }
        return body


class CalendarProvider(ABC):
    """Abstract calendar backend bound to a single calendar."""

    @abstractmethod
    async def list_events(
        self, time_min: datetime, time_max: datetime
    ) -> list[dict[str, Any]]:
        """Return raw event resources overlapping ``[time_min, time_max)``.

        Recurring events are expanded into single instances and the list is
        ordered by start time.
        """

    @abstractmethod
    async def insert_event(self, event: CalendarEvent) -> dict[str, Any]:
        """Create ``event`` and return the provider's event representation."""
