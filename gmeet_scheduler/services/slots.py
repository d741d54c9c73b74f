"""Fixed slot grid shared by availability lookup and booking validation."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from gmeet_scheduler.calendar_providers.base import TimeSlot

CIVIL_TZ = ZoneInfo("Europe/Paris")

# Civil start times, ascending. The only bookable times on any day.
SLOT_TIMES: tuple[str, ...] = ("08:00", "08:20", "08:40", "09:00", "09:20", "09:40")


def is_slot_time(value: str | None) -> bool:
    return value is not None and value in SLOT_TIMES


def slot_start(day: date, label: str) -> datetime:
    """UTC instant of the civil ``label`` (``HH:MM``) on ``day`` in Paris."""
    hours, minutes = label.split(":")
    civil = datetime.combine(day, time(int(hours), int(minutes)), tzinfo=CIVIL_TZ)
    return civil.astimezone(timezone.utc)


def slot_label(slot: TimeSlot) -> str:
    return slot.start.astimezone(CIVIL_TZ).strftime("%H:%M")
