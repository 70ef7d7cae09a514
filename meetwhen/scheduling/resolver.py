"""Availability resolver: which wall-clock windows are open on one date."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from meetwhen.scheduling.clock import at_local, day_of_week
from meetwhen.scheduling.intervals import Interval

Window = tuple[str, str]


def resolve_windows(
    day: date,
    rules: Iterable,
    override=None,
    fixed_window: Optional[Window] = None,
) -> list[Window]:
    """Free windows for ``day`` as ``(start, end)`` "HH:MM" pairs.

    ``rules`` are the host's weekly rules (anything with ``day_of_week``,
    ``start_time`` and ``end_time``); ``override`` is the date override for
    exactly this date, if any. A date override replaces the weekly rules
    outright. An event type's fixed window replaces the general hours, but
    only on days that have some availability to begin with.

    The result is sorted but not merged: overlapping rules stay overlapping.
    """
    if override is not None:
        if not override.is_available:
            return []
        windows = [(override.start_time, override.end_time)]
    else:
        weekday = day_of_week(day)
        windows = sorted(
            (rule.start_time, rule.end_time) for rule in rules if rule.day_of_week == weekday
        )

    if windows and fixed_window is not None:
        return [fixed_window]
    return windows


def windows_to_intervals(day: date, windows: Sequence[Window], tz: ZoneInfo) -> list[Interval]:
    """Anchor wall-clock windows on ``day`` in ``tz`` and convert them to UTC."""
    intervals = []
    for start, end in windows:
        interval = Interval(at_local(day, start, tz), at_local(day, end, tz))
        if interval.end > interval.start:
            intervals.append(interval)
    return intervals
