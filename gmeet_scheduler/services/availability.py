"""Free-slot computation for a single civil day.

The six candidate slots are laid out in Paris civil time, converted to
UTC, and any slot that overlaps an existing event is dropped.  Events
without a usable ``start.dateTime``/``end.dateTime`` pair (all-day events,
malformed data) are left out of the conflict check.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Iterable, Optional

from gmeet_scheduler.calendar_providers.base import BusyInterval, TimeSlot
from gmeet_scheduler.errors import InvalidRequestError

from .slots import CIVIL_TZ, SLOT_TIMES, slot_label, slot_start

log = logging.getLogger("gmeet_scheduler.availability")

_COMPACT_DATE = re.compile(r"^\d{8}$")


def parse_query_date(value: Optional[str]) -> date:
    """Interpret the ``date`` query parameter.

    Accepts ``YYYY-MM-DD``, ``YYYYMMDD`` or a full ISO-8601 datetime, in
    which case only the date part is used.
    """
    raw = (value or "").strip()
    if not raw:
        raise InvalidRequestError("Missing 'date' query parameter")

    try:
        if _COMPACT_DATE.match(raw):
            return datetime.strptime(raw, "%Y%m%d").date()
        if len(raw) == 10:
            return date.fromisoformat(raw)
        return _parse_instant(raw).date()
    except ValueError as e:
        raise InvalidRequestError(f"Invalid date: {raw!r}") from e


def _parse_instant(value: str) -> datetime:
    # fromisoformat() only learned the "Z" suffix in 3.11
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC instants of civil midnight on ``day`` and on the day after."""
    start = datetime.combine(day, time(0, 0), tzinfo=CIVIL_TZ)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=CIVIL_TZ)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def generate_slots(day: date) -> list[TimeSlot]:
    return [TimeSlot.at(slot_start(day, label)) for label in SLOT_TIMES]


def busy_intervals(events: Iterable[dict[str, Any]]) -> list[BusyInterval]:
    """Convert Calendar event resources into busy intervals.

    An event is only considered when both ends carry a timezone-aware
    ``dateTime``; anything else is logged and skipped.
    """
    intervals: list[BusyInterval] = []
    for event in events:
        start_raw = (event.get("start") or {}).get("dateTime")
        end_raw = (event.get("end") or {}).get("dateTime")
        if not start_raw or not end_raw:
            log.warning(
                "Skipping event %s: no start/end dateTime (all-day or incomplete)",
                event.get("id", "?"),
            )
            continue

        try:
            start = _parse_instant(start_raw)
            end = _parse_instant(end_raw)
        except ValueError:
            log.warning(
                "Skipping event %s: unparseable dateTime %r / %r",
                event.get("id", "?"),
                start_raw,
                end_raw,
            )
            continue

        if start.tzinfo is None or end.tzinfo is None:
            log.warning(
                "Skipping event %s: dateTime without UTC offset", event.get("id", "?")
            )
            continue

        intervals.append(BusyInterval(start=start, end=end))
    return intervals


def filter_available(
    slots: Iterable[TimeSlot], busy: Iterable[BusyInterval]
) -> list[TimeSlot]:
    """Keep slots that no busy interval overlaps, in their original order."""
    busy = list(busy)
    return [slot for slot in slots if not any(b.overlaps(slot) for b in busy)]


def format_slot(slot: TimeSlot) -> str:
    """``HH:MM`` in Paris civil time."""
    return slot_label(slot)


def available_slot_labels(day: date, events: Iterable[dict[str, Any]]) -> list[str]:
    free = filter_available(generate_slots(day), busy_intervals(events))
    labels = [format_slot(slot) for slot in free]
    log.info("Available slots on %s: %s", day.isoformat(), labels)
    return labels
