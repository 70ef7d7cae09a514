"""Slot generation: discrete bookable start times inside free windows.

The same scan backs the single-day query, the month aggregation, the
reschedule query and the commit-time re-validation, parameterised by its
inputs.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Iterator, Sequence

from meetwhen.scheduling.intervals import Interval, merge, overlaps, overlaps_any
from meetwhen.scheduling.policy import SlotPolicy


@dataclass(frozen=True)
class BookedInterval:
    """A committed booking as the engine sees it.

    Buffers are those of the booking's own event type, in minutes.
    """

    start: datetime
    end: datetime
    event_type_id: Any = None
    buffer_before: int = 0
    buffer_after: int = 0

    @property
    def padded(self) -> Interval:
        return Interval(
            self.start - timedelta(minutes=self.buffer_before),
            self.end + timedelta(minutes=self.buffer_after),
        )


class ConflictChecker:
    """Answers "is a meeting starting here free?" for one event type.

    ``blocked`` is merged and always blocks. ``shared`` holds same-event-type
    bookings of a group event type: those block only when they start at a
    different instant, and those starting at exactly the candidate instant
    count against ``capacity``.
    """

    def __init__(
        self,
        policy: SlotPolicy,
        blocked: Iterable[Interval],
        shared: Sequence[BookedInterval] = (),
    ):
        self.policy = policy
        self.blocked = merge(blocked)
        self.shared = sorted(shared, key=lambda b: b.start)
        self._occupancy = Counter(b.start for b in self.shared)

    @classmethod
    def for_policy(
        cls,
        policy: SlotPolicy,
        bookings: Iterable[BookedInterval],
        external: Iterable[Interval] = (),
    ) -> "ConflictChecker":
        blocked = list(external)
        shared = []
        for booking in bookings:
            if policy.is_group and booking.event_type_id == policy.event_type_id:
                shared.append(booking)
            else:
                blocked.append(booking.padded)
        return cls(policy, blocked, shared)

    def occupancy(self, start: datetime) -> int:
        return self._occupancy.get(start, 0)

    def is_free(self, start: datetime) -> bool:
        candidate = self.policy.buffered(start)
        if overlaps_any(candidate, self.blocked):
            return False
        if not self.shared:
            return True
        if self.occupancy(start) >= self.policy.max_attendees:
            return False
        return not any(
            booking.start != start and overlaps(candidate, booking.padded)
            for booking in self.shared
        )


def iter_slots(
    windows: Iterable[Interval],
    checker: ConflictChecker,
    earliest: datetime,
    latest: datetime,
) -> Iterator[datetime]:
    """Yield accepted start times window by window, in ascending order per window.

    A start is a candidate while the meeting fits in its window, and is
    accepted when it is strictly after ``earliest``, strictly before
    ``latest`` and free. The cursor advances by the policy step, not by the
    meeting length. Overlapping windows can yield the same start twice.
    """
    policy = checker.policy
    length, step = policy.length, policy.step
    for window in windows:
        cursor = window.start
        while cursor + length <= window.end:
            if cursor >= latest:
                break
            if cursor > earliest and checker.is_free(cursor):
                yield cursor
            cursor += step


def generate_slots(
    windows: Iterable[Interval],
    checker: ConflictChecker,
    earliest: datetime,
    latest: datetime,
) -> list[datetime]:
    """All accepted starts, de-duplicated and sorted."""
    return sorted(set(iter_slots(windows, checker, earliest, latest)))


def has_any_slot(
    windows: Iterable[Interval],
    checker: ConflictChecker,
    earliest: datetime,
    latest: datetime,
) -> bool:
    """Stop at the first accepted start."""
    return next(iter_slots(windows, checker, earliest, latest), None) is not None


def is_bookable(
    start: datetime,
    windows: Iterable[Interval],
    checker: ConflictChecker,
    earliest: datetime,
    latest: datetime,
) -> bool:
    """Re-validate one chosen start without scanning the day.

    The start need not sit on the step cadence, but the whole meeting must
    fit inside a single free window.
    """
    if not (earliest < start < latest):
        return False
    meeting = checker.policy.meeting(start)
    if not any(w.start <= meeting.start and meeting.end <= w.end for w in windows):
        return False
    return checker.is_free(start)
