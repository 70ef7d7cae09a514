"""Booking endpoints.

Creation is public and rate limited per client IP; the response carries a
guest token. Reading, moving and cancelling a booking needs either the
owning host (``X-Host-Id``) or that token; anything else is answered as
"not found". Status changes (completed, no-show, reschedule request) are
host only.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from meetwhen.api.deps import get_current_host, get_db_service, get_optional_host_id
from meetwhen.api.v1.slots import DaySlotsOut, get_slot_service
from meetwhen.api.validators import TimezoneName
from meetwhen.core.booking_tokens import generate_booking_token, verify_booking_token
from meetwhen.core.errors import NotFoundError
from meetwhen.core.rate_limit import limit_booking_requests
from meetwhen.integrations import webhooks
from meetwhen.models import Booking, BookingStatus, Host
from meetwhen.services.booking_service import BookingService, GuestDetails
from meetwhen.services.db_service import DBService
from meetwhen.services.notifications import dispatch_notice, prepare_notice
from meetwhen.services.slot_service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


class GuestIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    timezone: TimezoneName = "UTC"
    phone: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = Field(None, max_length=2000)


class BookingCreate(BaseModel):
    event_type_id: uuid.UUID
    start: datetime.datetime = Field(..., description="Chosen start, ISO 8601 with offset")
    guest: GuestIn


class BookingReschedule(BaseModel):
    start: datetime.datetime


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    host_id: uuid.UUID
    event_type_id: uuid.UUID
    start_time: datetime.datetime
    end_time: datetime.datetime
    status: str
    guest_name: str
    guest_email: str
    guest_timezone: str
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None


class BookingCreated(BookingOut):
    token: str = Field("", description="Guest access token for this booking")


async def get_booking_service(db: DBService = Depends(get_db_service)) -> BookingService:
    return BookingService(db.session)


async def _authorized_booking(
    db: DBService,
    booking_id: str,
    host_id: Optional[str],
    token: Optional[str],
) -> Booking:
    booking = await db.get_booking(booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    if host_id and str(booking.host_id) == host_id:
        return booking
    if token and verify_booking_token(token, booking.id, booking.guest_email):
        return booking
    raise NotFoundError("Booking not found")


async def _queue_notice(
    db: DBService, background_tasks: BackgroundTasks, event: str, booking: Booking
) -> None:
    event_type = await db.get_event_type(booking.event_type_id)
    host = await db.get_host(booking.host_id)
    notice = await prepare_notice(db, event, booking, event_type, host)
    background_tasks.add_task(dispatch_notice, notice)


@router.post(
    "",
    response_model=BookingCreated,
    status_code=201,
    dependencies=[Depends(limit_booking_requests)],
)
async def create_booking(
    payload: BookingCreate,
    background_tasks: BackgroundTasks,
    db: DBService = Depends(get_db_service),
    service: BookingService = Depends(get_booking_service),
):
    """Reserve a slot. 409 when it was taken meanwhile: re-query and choose again."""
    guest = GuestDetails(**payload.guest.model_dump())
    booking = await service.create_booking(payload.event_type_id, payload.start, guest)
    await _queue_notice(db, background_tasks, webhooks.BOOKING_CREATED, booking)
    out = BookingCreated.model_validate(booking)
    out.token = generate_booking_token(booking.id, booking.guest_email)
    return out


@router.get("", response_model=list[BookingOut])
async def list_bookings(
    include_cancelled: bool = False,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    return await db.get_host_bookings(host.id, include_cancelled=include_cancelled)


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: str,
    token: Optional[str] = Query(None),
    host_id: Optional[str] = Depends(get_optional_host_id),
    db: DBService = Depends(get_db_service),
):
    return await _authorized_booking(db, booking_id, host_id, token)


@router.get("/{booking_id}/reschedule", response_model=DaySlotsOut)
async def reschedule_slots(
    booking_id: str,
    date: datetime.date,
    token: Optional[str] = Query(None),
    host_id: Optional[str] = Depends(get_optional_host_id),
    db: DBService = Depends(get_db_service),
    slot_service: SlotService = Depends(get_slot_service),
):
    """Slots for moving this booking; its own time counts as free."""
    booking = await _authorized_booking(db, booking_id, host_id, token)
    return await slot_service.reschedule_slots(booking, date)


@router.patch("/{booking_id}", response_model=BookingOut)
async def reschedule_booking(
    booking_id: str,
    payload: BookingReschedule,
    background_tasks: BackgroundTasks,
    token: Optional[str] = Query(None),
    host_id: Optional[str] = Depends(get_optional_host_id),
    db: DBService = Depends(get_db_service),
    service: BookingService = Depends(get_booking_service),
):
    booking = await _authorized_booking(db, booking_id, host_id, token)
    moved = await service.reschedule_booking(booking.id, payload.start)
    await _queue_notice(db, background_tasks, webhooks.BOOKING_RESCHEDULED, moved)
    return moved


@router.delete("/{booking_id}", response_model=BookingOut)
async def cancel_booking(
    booking_id: str,
    background_tasks: BackgroundTasks,
    reason: Optional[str] = Query(None, max_length=500),
    token: Optional[str] = Query(None),
    host_id: Optional[str] = Depends(get_optional_host_id),
    db: DBService = Depends(get_db_service),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel; the booking row stays with status CANCELLED."""
    booking = await _authorized_booking(db, booking_id, host_id, token)
    was_active = booking.is_active
    cancelled = await service.cancel_booking(booking.id, reason)
    if was_active:
        await _queue_notice(db, background_tasks, webhooks.BOOKING_CANCELLED, cancelled)
    return cancelled


async def _host_booking(db: DBService, booking_id: str, host: Host) -> Booking:
    booking = await db.get_booking(booking_id)
    if booking is None or booking.host_id != host.id:
        raise NotFoundError("Booking not found")
    return booking


@router.post("/{booking_id}/complete", response_model=BookingOut)
async def complete_booking(
    booking_id: str,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
    service: BookingService = Depends(get_booking_service),
):
    booking = await _host_booking(db, booking_id, host)
    return await service.update_status(booking.id, BookingStatus.COMPLETED.value)


@router.post("/{booking_id}/no-show", response_model=BookingOut)
async def mark_no_show(
    booking_id: str,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
    service: BookingService = Depends(get_booking_service),
):
    booking = await _host_booking(db, booking_id, host)
    return await service.update_status(booking.id, BookingStatus.NO_SHOW.value)


@router.post("/{booking_id}/request-reschedule", response_model=BookingOut)
async def request_reschedule(
    booking_id: str,
    background_tasks: BackgroundTasks,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
    service: BookingService = Depends(get_booking_service),
):
    """Ask the guest to pick a new time; the slot stays held until they do."""
    booking = await _host_booking(db, booking_id, host)
    pending = await service.update_status(booking.id, BookingStatus.PENDING_RESCHEDULE.value)
    await _queue_notice(db, background_tasks, webhooks.BOOKING_RESCHEDULE_REQUESTED, pending)
    return pending
