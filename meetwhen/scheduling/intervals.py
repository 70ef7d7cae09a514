"""Half-open interval algebra over aware datetimes.

Every interval is ``[start, end)``: touching endpoints do not overlap.
Zero-length intervals are legal and flow through every function unchanged.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Sequence


@dataclass(frozen=True, order=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"interval ends before it starts: {self.start} > {self.end}")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def padded(self, before: timedelta, after: timedelta) -> "Interval":
        return Interval(self.start - before, self.end + after)

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)


def overlaps(a: Interval, b: Interval) -> bool:
    return a.start < b.end and b.start < a.end


def merge(intervals: Iterable[Interval]) -> list[Interval]:
    """Sort by start and fold overlapping or adjacent intervals together."""
    merged: list[Interval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = Interval(last.start, interval.end)
            continue
        merged.append(interval)
    return merged


def subtract(free: Iterable[Interval], blocked: Iterable[Interval]) -> list[Interval]:
    """Remove every blocked interval from the free set.

    The result is merged and sorted. Blocked intervals that only touch a free
    interval leave it whole.
    """
    remaining: list[Interval] = []
    # A zero-length cut removes no time
    cuts = [cut for cut in merge(blocked) if cut.end > cut.start]
    for window in merge(free):
        cursor = window.start
        for cut in cuts:
            if cut.start >= window.end:
                break
            if cut.end <= cursor:
                continue
            if cut.start > cursor:
                remaining.append(Interval(cursor, cut.start))
            cursor = cut.end
            if cursor >= window.end:
                break
        if cursor < window.end:
            remaining.append(Interval(cursor, window.end))
    return remaining


def overlaps_any(candidate: Interval, merged: Sequence[Interval]) -> bool:
    """Overlap test against a list already normalised by :func:`merge`.

    Merged intervals are disjoint, so both starts and ends are ascending and
    only the last interval starting before ``candidate.end`` can overlap.
    """
    if not merged:
        return False
    idx = bisect_left([iv.start for iv in merged], candidate.end)
    if idx == 0:
        return False
    return overlaps(candidate, merged[idx - 1])
