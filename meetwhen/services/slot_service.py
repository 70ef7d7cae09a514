"""Slot queries: one day, one month, or one day for a booking being moved.

All three run the same resolver and generator; they differ only in which
days are scanned, whether a booking is excluded, and how much output is kept.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from meetwhen.core.config import CALENDAR_FAILURE_POLICY
from meetwhen.core.errors import CalendarUnavailableError, InvalidInputError, NotFoundError
from meetwhen.models import Booking, EventType, Host
from meetwhen.models.types import utcnow
from meetwhen.scheduling.clock import date_range, format_clock, get_zone, local_date, local_day
from meetwhen.scheduling.generator import generate_slots
from meetwhen.scheduling.month import available_dates, clamp_range, parse_month
from meetwhen.scheduling.policy import SlotPolicy
from meetwhen.scheduling.resolver import resolve_windows, windows_to_intervals
from meetwhen.services.busy_sources import BusySnapshot, BusySourceAggregator
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)


@dataclass
class DaySlots:
    date: date
    timezone: str
    slots: list[str] = field(default_factory=list)
    degraded: bool = False


@dataclass
class MonthAvailability:
    month: str
    timezone: str
    dates: list[str] = field(default_factory=list)
    degraded: bool = False


class SlotService:
    def __init__(
        self,
        db: DBService,
        aggregator: Optional[BusySourceAggregator] = None,
        failure_policy: str = CALENDAR_FAILURE_POLICY,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.aggregator = aggregator or BusySourceAggregator(db)
        self.failure_policy = failure_policy
        self.clock = clock

    async def day_slots(
        self,
        host: Host,
        event_type: EventType,
        day: date,
        exclude_booking_id: Optional[uuid.UUID] = None,
    ) -> DaySlots:
        """Ordered host-local "HH:MM" starts bookable on ``day``.

        A day without availability is an empty result, never an error.
        """
        tz = _host_zone(host)
        policy = SlotPolicy.from_event_type(event_type)
        now = self.clock()
        result = DaySlots(date=day, timezone=host.timezone)

        if not local_date(now, tz) <= day <= policy.horizon_date(now, tz):
            return result

        rules = await self.db.get_availability_rules(host.id)
        override = await self.db.get_date_override(host.id, day)
        windows = windows_to_intervals(
            day, resolve_windows(day, rules, override, policy.fixed_window), tz
        )
        if not windows:
            return result

        bounds = local_day(day, tz)
        snapshot, result.degraded = await self._busy(
            host,
            policy,
            min(bounds.start, windows[0].start),
            max(bounds.end, max(w.end for w in windows)),
            exclude_booking_id,
        )
        checker = snapshot.conflict_checker(policy)
        starts = generate_slots(
            windows, checker, policy.earliest_start(now), policy.latest_start(now, tz)
        )
        # dict keeps instant order; a DST fold can repeat a wall-clock label
        result.slots = list(dict.fromkeys(format_clock(start, tz) for start in starts))
        return result

    async def month_dates(self, host: Host, event_type: EventType, month: str) -> MonthAvailability:
        """Dates of ``month`` ("YYYY-MM") with at least one slot."""
        try:
            first, last = parse_month(month)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        tz = _host_zone(host)
        policy = SlotPolicy.from_event_type(event_type)
        now = self.clock()
        result = MonthAvailability(month=month, timezone=host.timezone)

        span = clamp_range(first, last, local_date(now, tz), policy.horizon_date(now, tz))
        if span is None:
            return result
        first, last = span

        rules = await self.db.get_availability_rules(host.id)
        overrides = {o.date: o for o in await self.db.get_date_overrides(host.id, first, last)}

        def windows_for(day: date):
            return windows_to_intervals(
                day, resolve_windows(day, rules, overrides.get(day), policy.fixed_window), tz
            )

        # One calendar lookup for the whole range, not one per day
        snapshot, result.degraded = await self._busy(
            host, policy, local_day(first, tz).start, local_day(last, tz).end
        )
        checker = snapshot.conflict_checker(policy)
        found = available_dates(
            date_range(first, last),
            windows_for,
            checker,
            policy.earliest_start(now),
            policy.latest_start(now, tz),
        )
        result.dates = [day.isoformat() for day in found]
        return result

    async def reschedule_slots(self, booking: Booking, day: date) -> DaySlots:
        """Day slots for moving ``booking``; it does not conflict with itself."""
        if not booking.is_active:
            raise NotFoundError("Booking not found")
        if not booking.is_reschedulable:
            label = booking.status.lower().replace("_", " ")
            raise InvalidInputError(f"A {label} booking cannot be rescheduled")
        host = await self.db.get_host(booking.host_id)
        event_type = await self.db.get_event_type(booking.event_type_id)
        if host is None or event_type is None:
            raise NotFoundError("Booking not found")
        return await self.day_slots(host, event_type, day, exclude_booking_id=booking.id)

    async def _busy(
        self,
        host: Host,
        policy: SlotPolicy,
        range_start: datetime,
        range_end: datetime,
        exclude_booking_id: Optional[uuid.UUID] = None,
    ) -> tuple[BusySnapshot, bool]:
        """Busy snapshot for a scan range, applying the calendar failure policy.

        The range is widened by the candidate's buffers so a buffered slot at
        the edge of the range still sees its neighbours.
        """
        range_start -= timedelta(minutes=policy.buffer_before)
        range_end += timedelta(minutes=policy.buffer_after)
        try:
            snapshot = await self.aggregator.collect(
                host, range_start, range_end, exclude_booking_id=exclude_booking_id
            )
            return snapshot, False
        except CalendarUnavailableError:
            if self.failure_policy != "degrade":
                logger.error(f"Refusing slot query for host {host.id}: calendar unavailable")
                raise
            logger.warning(
                f"Calendar unavailable for host {host.id}; serving slots from internal bookings only"
            )
        snapshot = await self.aggregator.collect(
            host,
            range_start,
            range_end,
            exclude_booking_id=exclude_booking_id,
            include_external=False,
        )
        return snapshot, True


def _host_zone(host: Host):
    try:
        return get_zone(host.timezone)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e
