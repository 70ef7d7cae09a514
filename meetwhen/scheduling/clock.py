"""Wall-clock helpers: "HH:MM" strings, weekday numbering and local days."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from meetwhen.scheduling.intervals import Interval

_CLOCK_RE = re.compile(r"^(\d{2}):(\d{2})$")
MINUTES_PER_DAY = 24 * 60


def parse_clock(value: str) -> int:
    """Parse "HH:MM" into minutes after midnight. "24:00" is end of day."""
    match = _CLOCK_RE.match(value or "")
    if not match:
        raise ValueError(f"Invalid time {value!r}; expected HH:MM (24h)")
    hours, minutes = int(match.group(1)), int(match.group(2))
    total = hours * 60 + minutes
    if minutes > 59 or total > MINUTES_PER_DAY:
        raise ValueError(f"Invalid time {value!r}; expected HH:MM (24h)")
    return total


def validate_window(start: str, end: str) -> None:
    if parse_clock(start) >= parse_clock(end):
        raise ValueError(f"Window start {start} must be before end {end}")


def get_zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone {name!r}") from e


def day_of_week(day: date) -> int:
    """0 = Sunday ... 6 = Saturday, the numbering availability rules use."""
    return (day.weekday() + 1) % 7


def at_local(day: date, clock: str, tz: ZoneInfo) -> datetime:
    """The UTC instant at which wall-clock ``clock`` occurs on ``day`` in ``tz``."""
    minutes = parse_clock(clock)
    if minutes == MINUTES_PER_DAY:
        local = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    else:
        local = datetime.combine(day, time(minutes // 60, minutes % 60), tzinfo=tz)
    return local.astimezone(timezone.utc)


def local_day(day: date, tz: ZoneInfo) -> Interval:
    """``[midnight, next midnight)`` of ``day`` in ``tz``, as UTC instants."""
    start = datetime.combine(day, time(0, 0), tzinfo=tz).astimezone(timezone.utc)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz).astimezone(timezone.utc)
    return Interval(start, end)


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return instant.astimezone(tz).date()


def format_clock(instant: datetime, tz: ZoneInfo) -> str:
    return instant.astimezone(tz).strftime("%H:%M")


def date_range(first: date, last: date):
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)
