from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.exc import IntegrityError

from meetwhen.api.deps import get_current_host, get_db_service
from meetwhen.api.validators import ClockTime
from meetwhen.core.errors import ConflictError, InvalidInputError, NotFoundError
from meetwhen.models import EventType, Host
from meetwhen.scheduling.clock import validate_window
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/event-types", tags=["event-types"])

# Buffers past a day would escape the booking range queries
MAX_BUFFER_MINUTES = 24 * 60

# Fields a PATCH may set to null
_NULLABLE = {"description", "location", "available_start_time", "available_end_time"}


class EventTypeBase(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0, le=24 * 60)
    buffer_before: Optional[int] = Field(None, ge=0, le=MAX_BUFFER_MINUTES)
    buffer_after: Optional[int] = Field(None, ge=0, le=MAX_BUFFER_MINUTES)
    min_notice: Optional[int] = Field(None, ge=0)
    max_days_ahead: Optional[int] = Field(None, ge=1, le=730)
    max_attendees: Optional[int] = Field(None, ge=1)
    available_start_time: Optional[ClockTime] = None
    available_end_time: Optional[ClockTime] = None
    is_active: Optional[bool] = None


class EventTypeCreate(EventTypeBase):
    title: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9][a-z0-9-]*$")
    duration: int = Field(30, gt=0, le=24 * 60)
    buffer_before: int = Field(0, ge=0, le=MAX_BUFFER_MINUTES)
    buffer_after: int = Field(0, ge=0, le=MAX_BUFFER_MINUTES)
    min_notice: int = Field(0, ge=0)
    max_days_ahead: int = Field(60, ge=1, le=730)
    max_attendees: int = Field(1, ge=1)
    is_active: bool = True

    @model_validator(mode="after")
    def _fixed_window(self):
        _check_fixed_window(self.available_start_time, self.available_end_time)
        return self


class EventTypeUpdate(EventTypeBase):
    pass


class EventTypeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    host_id: uuid.UUID
    title: str
    slug: str
    description: Optional[str] = None
    location: Optional[str] = None
    duration: int
    buffer_before: int
    buffer_after: int
    min_notice: int
    max_days_ahead: int
    max_attendees: int
    available_start_time: Optional[str] = None
    available_end_time: Optional[str] = None
    is_active: bool


def _check_fixed_window(start: Optional[str], end: Optional[str]) -> None:
    if (start is None) != (end is None):
        raise ValueError("available_start_time and available_end_time go together")
    if start is not None:
        validate_window(start, end)


async def _own_event_type(db: DBService, host: Host, event_type_id: str) -> EventType:
    event_type = await db.get_event_type(event_type_id)
    if event_type is None or event_type.host_id != host.id:
        raise NotFoundError("Event type not found")
    return event_type


@router.post("", response_model=EventTypeOut, status_code=201)
async def create_event_type(
    payload: EventTypeCreate,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    host_id = host.id
    try:
        event_type = await db.create_event_type({"host_id": host_id, **payload.model_dump()})
    except IntegrityError:
        await db.session.rollback()
        raise ConflictError(f"Event type slug {payload.slug!r} already exists")
    logger.info(f"Created event type {event_type.slug} for host {host_id}")
    return event_type


@router.get("", response_model=list[EventTypeOut])
async def list_event_types(
    include_inactive: bool = True,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    return await db.get_host_event_types(host.id, include_inactive=include_inactive)


@router.get("/{event_type_id}", response_model=EventTypeOut)
async def get_event_type(
    event_type_id: str,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    return await _own_event_type(db, host, event_type_id)


@router.patch("/{event_type_id}", response_model=EventTypeOut)
async def update_event_type(
    event_type_id: str,
    payload: EventTypeUpdate,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    """Edit policy fields. Existing bookings keep their stored start and end."""
    event_type = await _own_event_type(db, host, event_type_id)
    changes = payload.model_dump(exclude_unset=True)
    if any(value is None for key, value in changes.items() if key not in _NULLABLE):
        raise InvalidInputError("Only the fixed window and text fields can be cleared")

    start = changes.get("available_start_time", event_type.available_start_time)
    end = changes.get("available_end_time", event_type.available_end_time)
    try:
        _check_fixed_window(start, end)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e

    return await db.update_event_type(event_type.id, changes)


@router.delete("/{event_type_id}", response_model=EventTypeOut)
async def disable_event_type(
    event_type_id: str,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    """Soft-disable: bookings keep referencing the row, new ones are refused."""
    event_type = await _own_event_type(db, host, event_type_id)
    logger.info(f"Disabling event type {event_type.id}")
    return await db.update_event_type(event_type.id, {"is_active": False})
