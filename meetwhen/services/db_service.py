from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from meetwhen.models import (
    AvailabilityRule,
    Booking,
    BookingStatus,
    DateOverride,
    EventType,
    Host,
    Webhook,
)
from meetwhen.scheduling.generator import BookedInterval
from typing import Optional, List, Union
from datetime import date, datetime, timedelta
import uuid

# Existing bookings are padded by their own buffers, which the range query
# cannot see; buffers are capped at one day so this margin always covers them.
BUFFER_LOOKAROUND = timedelta(days=1)

IdLike = Union[str, uuid.UUID]


def _as_uuid(value: IdLike) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class DBService:
    """
    Service for database operations

    Plain create/update helpers commit, as settings writes are single-step.
    The booking write helpers (``lock_host``, ``add_booking``,
    ``bump_booking_version``) only flush: the caller owns that transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ==================== HOSTS ====================

    async def get_host(self, host_id: IdLike) -> Optional[Host]:
        """Get host by ID"""
        h_uuid = _as_uuid(host_id)
        if h_uuid is None:
            return None

        result = await self.session.execute(select(Host).where(Host.id == h_uuid))
        return result.scalar_one_or_none()

    async def get_host_by_username(self, username: str) -> Optional[Host]:
        """Get host by public username"""
        result = await self.session.execute(select(Host).where(Host.username == username))
        return result.scalar_one_or_none()

    async def create_host(self, data: dict) -> Host:
        """Create new host"""
        host = Host(**data)
        self.session.add(host)
        await self.session.commit()
        await self.session.refresh(host)
        return host

    async def update_host(self, host_id: IdLike, data: dict) -> Optional[Host]:
        """Update host fields by ID."""
        host = await self.get_host(host_id)
        if host:
            for key, value in data.items():
                setattr(host, key, value)
            await self.session.commit()
            await self.session.refresh(host)
        return host

    async def lock_host(self, host_id: IdLike) -> Optional[Host]:
        """Load the host row FOR UPDATE, refreshing any stale identity-map copy."""
        h_uuid = _as_uuid(host_id)
        if h_uuid is None:
            return None

        result = await self.session.execute(
            select(Host)
            .where(Host.id == h_uuid)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def bump_booking_version(self, host_id: uuid.UUID, expected: int) -> bool:
        """Compare-and-write on hosts.booking_version. False when another writer won."""
        result = await self.session.execute(
            update(Host)
            .where(Host.id == host_id, Host.booking_version == expected)
            .values(booking_version=expected + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ==================== AVAILABILITY ====================

    async def get_availability_rules(self, host_id: uuid.UUID) -> List[AvailabilityRule]:
        result = await self.session.execute(
            select(AvailabilityRule)
            .where(AvailabilityRule.host_id == host_id)
            .order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_time)
        )
        return result.scalars().all()

    async def replace_availability_rules(
        self, host_id: uuid.UUID, rules: List[dict]
    ) -> List[AvailabilityRule]:
        """Delete every weekly rule of the host and insert ``rules`` in one commit."""
        await self.session.execute(
            delete(AvailabilityRule).where(AvailabilityRule.host_id == host_id)
        )
        for data in rules:
            self.session.add(AvailabilityRule(host_id=host_id, **data))
        await self.session.commit()
        return await self.get_availability_rules(host_id)

    async def get_date_override(self, host_id: uuid.UUID, day: date) -> Optional[DateOverride]:
        result = await self.session.execute(
            select(DateOverride).where(DateOverride.host_id == host_id, DateOverride.date == day)
        )
        return result.scalar_one_or_none()

    async def get_date_overrides(
        self,
        host_id: uuid.UUID,
        first: Optional[date] = None,
        last: Optional[date] = None,
    ) -> List[DateOverride]:
        """Overrides of a host, optionally limited to ``[first, last]``."""
        query = select(DateOverride).where(DateOverride.host_id == host_id)
        if first is not None:
            query = query.where(DateOverride.date >= first)
        if last is not None:
            query = query.where(DateOverride.date <= last)
        result = await self.session.execute(query.order_by(DateOverride.date))
        return result.scalars().all()

    async def upsert_date_override(self, host_id: uuid.UUID, data: dict) -> DateOverride:
        """Create or replace the override keyed on (host, date)."""
        override = await self.get_date_override(host_id, data["date"])
        if override is None:
            override = DateOverride(host_id=host_id, **data)
            self.session.add(override)
        else:
            override.is_available = data.get("is_available", False)
            override.start_time = data.get("start_time")
            override.end_time = data.get("end_time")
            override.reason = data.get("reason")
        await self.session.commit()
        await self.session.refresh(override)
        return override

    async def delete_date_override(self, host_id: uuid.UUID, day: date) -> bool:
        result = await self.session.execute(
            delete(DateOverride).where(DateOverride.host_id == host_id, DateOverride.date == day)
        )
        await self.session.commit()
        return result.rowcount > 0

    # ==================== EVENT TYPES ====================

    async def create_event_type(self, data: dict) -> EventType:
        """Create new event type"""
        event_type = EventType(**data)
        self.session.add(event_type)
        await self.session.commit()
        await self.session.refresh(event_type)
        return event_type

    async def get_event_type(self, event_type_id: IdLike) -> Optional[EventType]:
        """Get event type by ID"""
        e_uuid = _as_uuid(event_type_id)
        if e_uuid is None:
            return None

        result = await self.session.execute(select(EventType).where(EventType.id == e_uuid))
        return result.scalar_one_or_none()

    async def get_event_type_by_slug(self, host_id: uuid.UUID, slug: str) -> Optional[EventType]:
        result = await self.session.execute(
            select(EventType).where(EventType.host_id == host_id, EventType.slug == slug)
        )
        return result.scalar_one_or_none()

    async def get_host_event_types(
        self, host_id: uuid.UUID, include_inactive: bool = True
    ) -> List[EventType]:
        query = select(EventType).where(EventType.host_id == host_id)
        if not include_inactive:
            query = query.where(EventType.is_active.is_(True))
        result = await self.session.execute(query.order_by(EventType.created_at))
        return result.scalars().all()

    async def update_event_type(self, event_type_id: IdLike, data: dict) -> Optional[EventType]:
        """Update event type fields by ID."""
        event_type = await self.get_event_type(event_type_id)
        if event_type:
            for key, value in data.items():
                setattr(event_type, key, value)
            await self.session.commit()
            await self.session.refresh(event_type)
        return event_type

    # ==================== BOOKINGS ====================

    async def add_booking(self, data: dict) -> Booking:
        """Stage a booking in the caller's transaction (no commit)."""
        booking = Booking(**data)
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_booking(self, booking_id: IdLike) -> Optional[Booking]:
        """Get booking by ID"""
        b_uuid = _as_uuid(booking_id)
        if b_uuid is None:
            return None

        result = await self.session.execute(select(Booking).where(Booking.id == b_uuid))
        return result.scalar_one_or_none()

    async def lock_booking(self, booking_id: IdLike) -> Optional[Booking]:
        """Load a booking FOR UPDATE, overwriting whatever the identity map holds."""
        b_uuid = _as_uuid(booking_id)
        if b_uuid is None:
            return None

        result = await self.session.execute(
            select(Booking)
            .where(Booking.id == b_uuid)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_host_bookings(
        self,
        host_id: uuid.UUID,
        include_cancelled: bool = False,
        limit: int = 100,
    ) -> List[Booking]:
        """Get upcoming-first bookings for host"""
        query = select(Booking).where(Booking.host_id == host_id)
        if not include_cancelled:
            query = query.where(Booking.status != BookingStatus.CANCELLED.value)
        result = await self.session.execute(
            query.order_by(Booking.start_time.desc()).limit(limit)
        )
        return result.scalars().all()

    async def get_booked_intervals(
        self,
        host_id: uuid.UUID,
        range_start: datetime,
        range_end: datetime,
        exclude_booking_id: Optional[uuid.UUID] = None,
    ) -> List[BookedInterval]:
        """Non-cancelled bookings near ``[range_start, range_end)``.

        Each row carries the buffers of its event type as configured now.
        """
        query = (
            select(
                Booking.start_time,
                Booking.end_time,
                Booking.event_type_id,
                EventType.buffer_before,
                EventType.buffer_after,
            )
            .join(EventType, EventType.id == Booking.event_type_id)
            .where(
                Booking.host_id == host_id,
                Booking.status != BookingStatus.CANCELLED.value,
                Booking.start_time < range_end + BUFFER_LOOKAROUND,
                Booking.end_time > range_start - BUFFER_LOOKAROUND,
            )
            .order_by(Booking.start_time)
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)

        result = await self.session.execute(query)
        return [
            BookedInterval(
                start=row.start_time,
                end=row.end_time,
                event_type_id=row.event_type_id,
                buffer_before=row.buffer_before or 0,
                buffer_after=row.buffer_after or 0,
            )
            for row in result.all()
        ]

    # ==================== WEBHOOKS ====================

    async def create_webhook(self, data: dict) -> Webhook:
        webhook = Webhook(**data)
        self.session.add(webhook)
        await self.session.commit()
        await self.session.refresh(webhook)
        return webhook

    async def get_host_webhooks(self, host_id: uuid.UUID) -> List[Webhook]:
        result = await self.session.execute(
            select(Webhook).where(Webhook.host_id == host_id).order_by(Webhook.created_at)
        )
        return result.scalars().all()

    async def get_subscribed_webhooks(self, host_id: uuid.UUID, event: str) -> List[Webhook]:
        """Active webhooks of a host subscribed to ``event``."""
        result = await self.session.execute(
            select(Webhook).where(Webhook.host_id == host_id, Webhook.is_active.is_(True))
        )
        return [hook for hook in result.scalars().all() if event in (hook.events or [])]

    async def delete_webhook(self, host_id: uuid.UUID, webhook_id: IdLike) -> bool:
        w_uuid = _as_uuid(webhook_id)
        if w_uuid is None:
            return False
        result = await self.session.execute(
            delete(Webhook).where(Webhook.host_id == host_id, Webhook.id == w_uuid)
        )
        await self.session.commit()
        return result.rowcount > 0
