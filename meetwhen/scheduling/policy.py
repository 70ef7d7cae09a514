from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional
from zoneinfo import ZoneInfo

from meetwhen.scheduling.clock import local_date, local_day
from meetwhen.scheduling.intervals import Interval


@dataclass(frozen=True)
class SlotPolicy:
    """Scheduling parameters of one event type, as the engine consumes them.

    Durations, buffers and notice are minutes; ``max_days_ahead`` is days.
    """

    duration: int
    buffer_before: int = 0
    buffer_after: int = 0
    min_notice: int = 0
    max_days_ahead: int = 60
    max_attendees: int = 1
    available_start_time: Optional[str] = None
    available_end_time: Optional[str] = None
    event_type_id: Any = None

    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise ValueError("duration must be positive")
        if self.buffer_before < 0 or self.buffer_after < 0:
            raise ValueError("buffers cannot be negative")
        if self.min_notice < 0:
            raise ValueError("min_notice cannot be negative")
        if self.max_days_ahead < 1:
            raise ValueError("max_days_ahead must be at least 1")
        if self.max_attendees < 1:
            raise ValueError("max_attendees must be at least 1")

    @classmethod
    def from_event_type(cls, event_type) -> "SlotPolicy":
        return cls(
            duration=event_type.duration,
            buffer_before=event_type.buffer_before or 0,
            buffer_after=event_type.buffer_after or 0,
            min_notice=event_type.min_notice or 0,
            max_days_ahead=event_type.max_days_ahead,
            max_attendees=event_type.max_attendees or 1,
            available_start_time=event_type.available_start_time,
            available_end_time=event_type.available_end_time,
            event_type_id=event_type.id,
        )

    @property
    def length(self) -> timedelta:
        return timedelta(minutes=self.duration)

    @property
    def step(self) -> timedelta:
        # Short meetings stay finely addressable; long ones do not explode
        # the slot count.
        return timedelta(minutes=15 if self.duration <= 30 else 30)

    @property
    def fixed_window(self) -> Optional[tuple[str, str]]:
        if self.available_start_time and self.available_end_time:
            return self.available_start_time, self.available_end_time
        return None

    @property
    def is_group(self) -> bool:
        return self.max_attendees > 1

    def meeting(self, start: datetime) -> Interval:
        return Interval(start, start + self.length)

    def buffered(self, start: datetime) -> Interval:
        return self.meeting(start).padded(
            timedelta(minutes=self.buffer_before), timedelta(minutes=self.buffer_after)
        )

    def earliest_start(self, now: datetime) -> datetime:
        """Starts must be strictly after this instant."""
        return now + timedelta(minutes=self.min_notice)

    def horizon_date(self, now: datetime, tz: ZoneInfo) -> date:
        """Last local date on which slots may be offered."""
        return local_date(now, tz) + timedelta(days=self.max_days_ahead)

    def latest_start(self, now: datetime, tz: ZoneInfo) -> datetime:
        """Starts must be strictly before this instant: the end of the horizon day."""
        return local_day(self.horizon_date(now, tz), tz).end
