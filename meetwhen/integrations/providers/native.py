from __future__ import annotations

from datetime import datetime

from meetwhen.scheduling.intervals import Interval


class NativeCalendarProvider:
    """Hosts without a linked calendar: only internal bookings block time."""

    name = "native"

    async def get_busy_intervals(
        self, host, range_start: datetime, range_end: datetime
    ) -> list[Interval]:
        return []
