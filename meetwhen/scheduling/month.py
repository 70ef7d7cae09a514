"""Month aggregation: which dates have at least one slot."""

from __future__ import annotations

import calendar
from datetime import date
from typing import Callable, Iterable, Optional

from meetwhen.scheduling.generator import ConflictChecker, has_any_slot
from meetwhen.scheduling.intervals import Interval


def parse_month(value: str) -> tuple[date, date]:
    """Parse a "YYYY-MM" month into its first and last day. Raises ValueError."""
    try:
        year_text, month_text = value.split("-")
        year, month = int(year_text), int(month_text)
    except (AttributeError, ValueError) as e:
        raise ValueError(f"Invalid month {value!r}; expected YYYY-MM") from e
    if len(year_text) != 4 or not 1 <= month <= 12:
        raise ValueError(f"Invalid month {value!r}; expected YYYY-MM")
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def clamp_range(first: date, last: date, today: date, horizon: date) -> Optional[tuple[date, date]]:
    """Intersect ``[first, last]`` with ``[today, horizon]``; None when empty."""
    start = max(first, today)
    end = min(last, horizon)
    if start > end:
        return None
    return start, end


def available_dates(
    days: Iterable[date],
    windows_for: Callable[[date], list[Interval]],
    checker: ConflictChecker,
    earliest,
    latest,
) -> list[date]:
    """Dates among ``days`` with at least one accepted slot.

    Each day stops scanning at its first accepted slot. Nothing is written,
    so the caller may abandon the loop at any point.
    """
    found = []
    for day in days:
        windows = windows_for(day)
        if windows and has_any_slot(windows, checker, earliest, latest):
            found.append(day)
    return found
