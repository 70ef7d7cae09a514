"""Busy-source aggregation: internal bookings plus the linked calendar."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from meetwhen.core.config import CALENDAR_TIMEOUT_SECONDS
from meetwhen.core.errors import CalendarUnavailableError
from meetwhen.integrations.providers.registry import resolve_provider
from meetwhen.models import Host
from meetwhen.scheduling.generator import BookedInterval, ConflictChecker
from meetwhen.scheduling.intervals import Interval, merge
from meetwhen.scheduling.policy import SlotPolicy
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)


@dataclass
class BusySnapshot:
    bookings: list[BookedInterval] = field(default_factory=list)
    external: list[Interval] = field(default_factory=list)

    def conflict_checker(self, policy: SlotPolicy) -> ConflictChecker:
        """Checker for one event type over everything this snapshot holds."""
        return ConflictChecker.for_policy(policy, self.bookings, self.external)


class BusySourceAggregator:
    """Collects what already occupies a host's time over a range.

    A failing calendar always raises :class:`CalendarUnavailableError`;
    deciding to carry on without it is up to the caller.
    """

    def __init__(
        self,
        db: DBService,
        provider_resolver: Callable = resolve_provider,
        timeout_seconds: float = CALENDAR_TIMEOUT_SECONDS,
    ):
        self.db = db
        self.provider_resolver = provider_resolver
        self.timeout_seconds = timeout_seconds

    async def collect(
        self,
        host: Host,
        range_start: datetime,
        range_end: datetime,
        exclude_booking_id: Optional[uuid.UUID] = None,
        include_external: bool = True,
    ) -> BusySnapshot:
        bookings = await self.internal_busy(host.id, range_start, range_end, exclude_booking_id)
        external = []
        if include_external:
            external = await self.external_busy(host, range_start, range_end)
        return BusySnapshot(bookings=bookings, external=external)

    async def internal_busy(
        self,
        host_id: uuid.UUID,
        range_start: datetime,
        range_end: datetime,
        exclude_booking_id: Optional[uuid.UUID] = None,
    ) -> list[BookedInterval]:
        return await self.db.get_booked_intervals(
            host_id, range_start, range_end, exclude_booking_id=exclude_booking_id
        )

    async def external_busy(
        self, host: Host, range_start: datetime, range_end: datetime
    ) -> list[Interval]:
        provider = self.provider_resolver(host)
        try:
            busy = await asyncio.wait_for(
                provider.get_busy_intervals(host, range_start, range_end),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                f"Calendar provider {provider.name} timed out after {self.timeout_seconds}s "
                f"for host {host.id}"
            )
            raise CalendarUnavailableError("Linked calendar did not answer in time") from e
        return merge(busy)
