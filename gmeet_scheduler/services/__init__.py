"""Slot availability and booking logic."""

from .availability import available_slot_labels, day_bounds, generate_slots, parse_query_date
from .booking import build_event, validate_booking
from .slots import CIVIL_TZ, SLOT_TIMES

__all__ = [
    "CIVIL_TZ",
    "SLOT_TIMES",
    "available_slot_labels",
    "build_event",
    "day_bounds",
    "generate_slots",
    "parse_query_date",
    "validate_booking",
]
