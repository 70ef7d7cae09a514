"""Pure availability engine: no I/O, no database, no clock of its own."""

from meetwhen.scheduling.generator import (
    BookedInterval,
    ConflictChecker,
    generate_slots,
    has_any_slot,
    is_bookable,
    iter_slots,
)
from meetwhen.scheduling.intervals import Interval, merge, overlaps, overlaps_any, subtract
from meetwhen.scheduling.month import available_dates, clamp_range, parse_month
from meetwhen.scheduling.policy import SlotPolicy
from meetwhen.scheduling.resolver import resolve_windows, windows_to_intervals

__all__ = [
    "BookedInterval",
    "ConflictChecker",
    "Interval",
    "SlotPolicy",
    "available_dates",
    "clamp_range",
    "generate_slots",
    "has_any_slot",
    "is_bookable",
    "iter_slots",
    "merge",
    "overlaps",
    "overlaps_any",
    "parse_month",
    "resolve_windows",
    "subtract",
    "windows_to_intervals",
]
