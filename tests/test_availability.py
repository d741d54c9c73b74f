"""Tests for slot generation, conflict filtering and date parsing."""

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from gmeet_scheduler.calendar_providers.base import BusyInterval, TimeSlot
from gmeet_scheduler.errors import InvalidRequestError
from gmeet_scheduler.services.availability import (
    available_slot_labels,
    busy_intervals,
    day_bounds,
    filter_available,
    format_slot,
    generate_slots,
    parse_query_date,
)
from gmeet_scheduler.services.slots import CIVIL_TZ, SLOT_TIMES

WINTER_DAY = date(2025, 1, 15)   # CET, UTC+1
SUMMER_DAY = date(2025, 7, 15)   # CEST, UTC+2
SPRING_FORWARD = date(2025, 3, 30)
FALL_BACK = date(2025, 10, 26)


def _event(start: str, end: str, event_id: str = "evt") -> dict:
    return {"id": event_id, "start": {"dateTime": start}, "end": {"dateTime": end}}


# ── Slot generation ─────────────────────────────────────────────────


class TestGenerateSlots:
    @pytest.mark.parametrize("day", [WINTER_DAY, SUMMER_DAY, SPRING_FORWARD, FALL_BACK])
    def test_six_fixed_civil_times(self, day):
        slots = generate_slots(day)
        assert [format_slot(s) for s in slots] == list(SLOT_TIMES)
        assert [s.start for s in slots] == sorted(s.start for s in slots)

    def test_slots_are_utc_and_twenty_minutes(self):
        for slot in generate_slots(WINTER_DAY):
            assert slot.start.utcoffset() == timedelta(0)
            assert slot.end - slot.start == timedelta(minutes=20)

    def test_winter_offset(self):
        first = generate_slots(WINTER_DAY)[0]
        assert first.start == datetime(2025, 1, 15, 7, 0, tzinfo=timezone.utc)

    def test_summer_offset(self):
        first = generate_slots(SUMMER_DAY)[0]
        assert first.start == datetime(2025, 7, 15, 6, 0, tzinfo=timezone.utc)

    def test_dst_transition_days(self):
        assert generate_slots(SPRING_FORWARD)[0].start == datetime(2025, 3, 30, 6, 0, tzinfo=timezone.utc)
        assert generate_slots(FALL_BACK)[0].start == datetime(2025, 10, 26, 7, 0, tzinfo=timezone.utc)

    def test_last_slot(self):
        last = generate_slots(WINTER_DAY)[-1]
        assert last.start == datetime(2025, 1, 15, 8, 40, tzinfo=timezone.utc)
        assert last.end == datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)


class TestDayBounds:
    def test_winter_day(self):
        start, end = day_bounds(WINTER_DAY)
        assert start == datetime(2025, 1, 14, 23, 0, tzinfo=timezone.utc)
        assert end == datetime(2025, 1, 15, 23, 0, tzinfo=timezone.utc)

    def test_short_day(self):
        start, end = day_bounds(SPRING_FORWARD)
        assert end - start == timedelta(hours=23)


# ── Conflict filtering ──────────────────────────────────────────────


class TestFilterAvailable:
    def test_no_events_all_free(self):
        assert available_slot_labels(WINTER_DAY, []) == list(SLOT_TIMES)

    def test_event_equal_to_slot_blocks_only_that_slot(self):
        slots = generate_slots(WINTER_DAY)
        target = slots[2]
        busy = [BusyInterval(start=target.start, end=target.end)]
        free = filter_available(slots, busy)
        assert target not in free
        assert len(free) == 5

    def test_touching_events_do_not_conflict(self):
        # 07:30-08:00 and 10:00-10:30 Paris sit right against the slot grid
        events = [
            _event("2025-01-15T07:30:00+01:00", "2025-01-15T08:00:00+01:00", "before"),
            _event("2025-01-15T10:00:00+01:00", "2025-01-15T10:30:00+01:00", "after"),
        ]
        assert available_slot_labels(WINTER_DAY, events) == list(SLOT_TIMES)

    def test_event_inside_slot_blocks_it(self):
        events = [_event("2025-01-15T08:30:00+01:00", "2025-01-15T08:35:00+01:00")]
        assert available_slot_labels(WINTER_DAY, events) == ["08:00", "08:40", "09:00", "09:20", "09:40"]

    def test_event_across_boundary_blocks_both_neighbours(self):
        events = [_event("2025-01-15T08:15:00+01:00", "2025-01-15T08:25:00+01:00")]
        assert available_slot_labels(WINTER_DAY, events) == ["08:40", "09:00", "09:20", "09:40"]

    def test_long_event_spans_several_slots(self):
        events = [_event("2025-01-15T07:10:00Z", "2025-01-15T07:50:00Z")]
        assert available_slot_labels(WINTER_DAY, events) == ["09:00", "09:20", "09:40"]

    def test_order_is_preserved(self):
        events = [_event("2025-07-15T09:00:00+02:00", "2025-07-15T09:20:00+02:00")]
        assert available_slot_labels(SUMMER_DAY, events) == ["08:00", "08:20", "08:40", "09:20", "09:40"]

    def test_overlap_predicate_is_strict(self):
        slot = TimeSlot.at(datetime(2025, 1, 15, 7, 0, tzinfo=timezone.utc))
        assert not BusyInterval(start=slot.end, end=slot.end + timedelta(hours=1)).overlaps(slot)
        assert not BusyInterval(start=slot.start - timedelta(hours=1), end=slot.start).overlaps(slot)
        assert BusyInterval(start=slot.end - timedelta(minutes=1), end=slot.end).overlaps(slot)


# ── Event parsing ───────────────────────────────────────────────────


class TestBusyIntervals:
    def test_parses_offsets_and_zulu(self):
        intervals = busy_intervals([
            _event("2025-01-15T08:00:00+01:00", "2025-01-15T08:20:00+01:00"),
            _event("2025-01-15T07:00:00Z", "2025-01-15T07:20:00Z"),
        ])
        assert intervals[0].start == intervals[1].start
        assert intervals[0].end == intervals[1].end

    def test_all_day_event_is_skipped(self, caplog):
        all_day = {"id": "holiday", "start": {"date": "2025-01-15"}, "end": {"date": "2025-01-16"}}
        with caplog.at_level(logging.WARNING, logger="gmeet_scheduler.availability"):
            assert busy_intervals([all_day]) == []
        assert "holiday" in caplog.text

    def test_missing_fields_are_skipped(self):
        assert busy_intervals([{"id": "x"}, {"start": None, "end": None}]) == []
        assert available_slot_labels(WINTER_DAY, [{"id": "x"}]) == list(SLOT_TIMES)

    def test_unparseable_datetime_is_skipped(self):
        assert busy_intervals([_event("tomorrow-ish", "2025-01-15T08:20:00+01:00")]) == []

    def test_naive_datetime_is_skipped(self):
        assert busy_intervals([_event("2025-01-15T08:00:00", "2025-01-15T08:20:00")]) == []


# ── Query date parsing ──────────────────────────────────────────────


class TestParseQueryDate:
    @pytest.mark.parametrize(
        "raw",
        ["2025-01-15", "20250115", "2025-01-15T10:00:00", "2025-01-15T10:00:00.000Z", " 2025-01-15 "],
    )
    def test_accepted_formats(self, raw):
        assert parse_query_date(raw) == WINTER_DAY

    @pytest.mark.parametrize("raw", [None, "", "15/01/2025", "2025-13-01", "soon"])
    def test_rejected(self, raw):
        with pytest.raises(InvalidRequestError):
            parse_query_date(raw)

    def test_civil_zone_is_paris(self):
        assert str(CIVIL_TZ) == "Europe/Paris"
