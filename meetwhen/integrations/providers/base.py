from __future__ import annotations

from datetime import datetime
from typing import Protocol

from meetwhen.scheduling.intervals import Interval


class BusyCalendarProvider(Protocol):
    """Read-only source of a host's externally-observed busy time.

    Returning ``[]`` means "nothing busy". A provider that cannot answer must
    raise :class:`meetwhen.core.errors.CalendarUnavailableError` instead.
    """

    name: str

    async def get_busy_intervals(
        self, host, range_start: datetime, range_end: datetime
    ) -> list[Interval]:
        ...
