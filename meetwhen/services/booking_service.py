"""Booking commit: turn a chosen start into a reservation without double-booking.

Every write to a host's bookings runs as one transaction that

1. locks the host row (``SELECT ... FOR UPDATE``; SQLite serialises
   writers with ``BEGIN IMMEDIATE`` instead),
2. re-validates the chosen interval against what is committed now,
3. stages the change and compare-and-writes ``hosts.booking_version``.

A lost compare-and-write rolls back and re-validates the *same* slot, at
most ``BOOKING_COMMIT_MAX_ATTEMPTS`` times. A slot that is no longer free
raises :class:`ConflictError`; the caller must re-query and choose again.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from meetwhen.core.config import BOOKING_COMMIT_MAX_ATTEMPTS
from meetwhen.core.errors import ConflictError, InvalidInputError, NotFoundError
from meetwhen.models import Booking, BookingStatus, Host
from meetwhen.models.types import utcnow
from meetwhen.scheduling.clock import get_zone, local_date
from meetwhen.scheduling.generator import ConflictChecker, is_bookable
from meetwhen.scheduling.intervals import Interval
from meetwhen.scheduling.policy import SlotPolicy
from meetwhen.scheduling.resolver import resolve_windows, windows_to_intervals
from meetwhen.services.busy_sources import BusySourceAggregator
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Statuses a host may set directly; cancellation has its own path
HOST_STATUSES = {
    BookingStatus.COMPLETED.value,
    BookingStatus.NO_SHOW.value,
    BookingStatus.PENDING_RESCHEDULE.value,
}


@dataclass
class GuestDetails:
    name: str
    email: str
    timezone: str = "UTC"
    phone: Optional[str] = None
    notes: Optional[str] = None


class BookingService:
    def __init__(
        self,
        session: AsyncSession,
        aggregator: Optional[BusySourceAggregator] = None,
        clock: Callable[[], datetime] = utcnow,
        max_attempts: int = BOOKING_COMMIT_MAX_ATTEMPTS,
    ):
        self.session = session
        self.db = DBService(session)
        self.aggregator = aggregator or BusySourceAggregator(self.db)
        self.clock = clock
        self.max_attempts = max(1, max_attempts)

    async def create_booking(
        self, event_type_id, start: datetime, guest: GuestDetails
    ) -> Booking:
        """Reserve ``start`` for ``guest`` on an active event type."""
        start = _as_utc(start)
        event_type = await self.db.get_event_type(event_type_id)
        if event_type is None or not event_type.is_active:
            raise NotFoundError("Event type not found")
        host = await self.db.get_host(event_type.host_id)
        if host is None:
            raise NotFoundError("Host not found")

        policy = SlotPolicy.from_event_type(event_type)
        external = await self._external_busy(host, policy, start)

        async def stage(locked: Host) -> Booking:
            await self._validate(locked, policy, start, external)
            return await self.db.add_booking(
                {
                    "host_id": locked.id,
                    "event_type_id": policy.event_type_id,
                    "start_time": start,
                    "end_time": start + policy.length,
                    "status": BookingStatus.CONFIRMED.value,
                    "guest_name": guest.name,
                    "guest_email": guest.email,
                    "guest_timezone": guest.timezone,
                    "guest_phone": guest.phone,
                    "notes": guest.notes,
                }
            )

        booking = await self._locked_write(host.id, stage)
        logger.info(f"Booking {booking.id} created for host {booking.host_id} at {start.isoformat()}")
        return booking

    async def reschedule_booking(self, booking_id, new_start: datetime) -> Booking:
        """Move a booking to ``new_start``; it never conflicts with itself.

        Confirmed bookings and bookings the host asked to move can be
        rescheduled; either way the booking comes back confirmed.
        """
        new_start = _as_utc(new_start)
        booking = await self.db.get_booking(booking_id)
        if booking is None or not booking.is_active:
            raise NotFoundError("Booking not found")
        _check_reschedulable(booking)
        event_type = await self.db.get_event_type(booking.event_type_id)
        host = await self.db.get_host(booking.host_id)
        if event_type is None or host is None:
            raise NotFoundError("Booking not found")

        booking_uuid = booking.id
        policy = SlotPolicy.from_event_type(event_type)
        external = await self._external_busy(host, policy, new_start)

        async def stage(locked: Host) -> Booking:
            # Re-read under the lock; the row may have changed during the calendar fetch
            current = await self.db.lock_booking(booking_uuid)
            if current is None or not current.is_active:
                raise NotFoundError("Booking not found")
            _check_reschedulable(current)
            await self._validate(locked, policy, new_start, external, exclude_booking_id=booking_uuid)
            current.start_time = new_start
            current.end_time = new_start + policy.length
            current.status = BookingStatus.CONFIRMED.value
            await self.session.flush()
            return current

        moved = await self._locked_write(host.id, stage)
        logger.info(f"Booking {moved.id} rescheduled to {new_start.isoformat()}")
        return moved

    async def cancel_booking(self, booking_id, reason: Optional[str] = None) -> Booking:
        """Cancel a booking. Cancelling twice returns the cancelled booking unchanged."""
        booking = await self.db.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        if not booking.is_active:
            return booking

        booking_uuid, host_id = booking.id, booking.host_id

        async def stage(locked: Host) -> Booking:
            current = await self.db.lock_booking(booking_uuid)
            if current is None:
                raise NotFoundError("Booking not found")
            if not current.is_active:
                return current
            current.status = BookingStatus.CANCELLED.value
            current.cancellation_reason = reason
            await self.session.flush()
            return current

        cancelled = await self._locked_write(host_id, stage)
        logger.info(f"Booking {cancelled.id} cancelled")
        return cancelled

    async def update_status(self, booking_id, status: str) -> Booking:
        """Host-side status change: completed, no-show, or a request to reschedule.

        Cancelled bookings are final. Only a confirmed booking (or one
        already awaiting a new time) can be sent back to the guest.
        """
        if status not in HOST_STATUSES:
            raise InvalidInputError(f"Unsupported booking status: {status}")
        booking = await self.db.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")

        booking_uuid, host_id = booking.id, booking.host_id

        async def stage(locked: Host) -> Booking:
            current = await self.db.lock_booking(booking_uuid)
            if current is None:
                raise NotFoundError("Booking not found")
            if not current.is_active:
                raise InvalidInputError("Cannot change a cancelled booking")
            if status == BookingStatus.PENDING_RESCHEDULE.value:
                _check_reschedulable(current)
            current.status = status
            await self.session.flush()
            return current

        updated = await self._locked_write(host_id, stage)
        logger.info(f"Booking {updated.id} marked {status}")
        return updated

    async def _external_busy(self, host: Host, policy: SlotPolicy, start: datetime) -> list[Interval]:
        """Calendar busy time around the chosen interval, fetched before any lock is held."""
        buffered = policy.buffered(start)
        # No database transaction may stay open across the network wait
        await self.session.commit()
        return await self.aggregator.external_busy(host, buffered.start, buffered.end)

    async def _validate(
        self,
        host: Host,
        policy: SlotPolicy,
        start: datetime,
        external: list[Interval],
        exclude_booking_id: Optional[uuid.UUID] = None,
    ) -> None:
        try:
            tz = get_zone(host.timezone)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

        now = self.clock()
        earliest = policy.earliest_start(now)
        latest = policy.latest_start(now, tz)
        if start <= earliest:
            raise InvalidInputError(
                f"Bookings need at least {policy.min_notice} minutes notice"
            )
        if start >= latest:
            raise InvalidInputError(
                f"Bookings can be made at most {policy.max_days_ahead} days ahead"
            )

        day = local_date(start, tz)
        rules = await self.db.get_availability_rules(host.id)
        override = await self.db.get_date_override(host.id, day)
        windows = windows_to_intervals(
            day, resolve_windows(day, rules, override, policy.fixed_window), tz
        )

        buffered = policy.buffered(start)
        bookings = await self.db.get_booked_intervals(
            host.id, buffered.start, buffered.end, exclude_booking_id=exclude_booking_id
        )
        checker = ConflictChecker.for_policy(policy, bookings, external)
        if not is_bookable(start, windows, checker, earliest, latest):
            logger.info(f"Booking conflict for host {host.id} at {start.isoformat()}")
            raise ConflictError("The selected time is no longer available")

    async def _locked_write(self, host_id: uuid.UUID, stage: Callable[[Host], Awaitable[T]]) -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                host = await self.db.lock_host(host_id)
                if host is None:
                    raise NotFoundError("Host not found")
                version = host.booking_version
                result = await stage(host)
                if await self.db.bump_booking_version(host_id, version):
                    await self.session.commit()
                    return result
            except Exception:
                await self.session.rollback()
                raise
            await self.session.rollback()
            logger.info(
                f"Booking version moved for host {host_id}; re-validating "
                f"(attempt {attempt}/{self.max_attempts})"
            )
        raise ConflictError("The selected time is no longer available")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise InvalidInputError("Start time must include a UTC offset")
    return value.astimezone(timezone.utc)


def _check_reschedulable(booking: Booking) -> None:
    if not booking.is_reschedulable:
        label = booking.status.lower().replace("_", " ")
        raise InvalidInputError(f"A {label} booking cannot be rescheduled")
