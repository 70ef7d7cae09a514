"""Public slot queries.

An empty ``slots`` list means "nothing bookable"; a failed calendar lookup
is a 503 instead (or ``degraded: true`` when the service runs degraded).
"""

from __future__ import annotations

import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict

from meetwhen.api.deps import get_db_service
from meetwhen.core.errors import NotFoundError
from meetwhen.models import EventType, Host
from meetwhen.services.db_service import DBService
from meetwhen.services.slot_service import SlotService

router = APIRouter(tags=["slots"])


class DaySlotsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: datetime.date
    timezone: str
    slots: list[str]
    degraded: bool = False


class MonthOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: str
    timezone: str
    dates: list[str]
    degraded: bool = False


async def get_slot_service(db: DBService = Depends(get_db_service)) -> SlotService:
    return SlotService(db)


async def _public_event_type(db: DBService, username: str, slug: str) -> tuple[Host, EventType]:
    host = await db.get_host_by_username(username)
    if host is None:
        raise NotFoundError("Host not found")
    event_type = await db.get_event_type_by_slug(host.id, slug)
    if event_type is None or not event_type.is_active:
        raise NotFoundError("Event type not found")
    return host, event_type


async def _event_type_by_id(db: DBService, event_type_id: str) -> tuple[Host, EventType]:
    event_type = await db.get_event_type(event_type_id)
    if event_type is None or not event_type.is_active:
        raise NotFoundError("Event type not found")
    host = await db.get_host(event_type.host_id)
    if host is None:
        raise NotFoundError("Host not found")
    return host, event_type


@router.get("/slots", response_model=DaySlotsOut)
async def day_slots(
    username: str,
    event_slug: str,
    date: datetime.date,
    db: DBService = Depends(get_db_service),
    service: SlotService = Depends(get_slot_service),
):
    """Host-local start times bookable on ``date``."""
    host, event_type = await _public_event_type(db, username, event_slug)
    return await service.day_slots(host, event_type, date)


@router.get("/slots/month", response_model=MonthOut)
async def month_slots(
    username: str,
    event_slug: str,
    month: str = Query(..., description="YYYY-MM"),
    db: DBService = Depends(get_db_service),
    service: SlotService = Depends(get_slot_service),
):
    """Dates of ``month`` with at least one bookable slot."""
    host, event_type = await _public_event_type(db, username, event_slug)
    return await service.month_dates(host, event_type, month)


@router.get("/event-types/{event_type_id}/slots", response_model=DaySlotsOut)
async def event_type_day_slots(
    event_type_id: str,
    date: datetime.date,
    db: DBService = Depends(get_db_service),
    service: SlotService = Depends(get_slot_service),
):
    host, event_type = await _event_type_by_id(db, event_type_id)
    return await service.day_slots(host, event_type, date)


@router.get("/event-types/{event_type_id}/slots/month", response_model=MonthOut)
async def event_type_month_slots(
    event_type_id: str,
    month: str = Query(..., description="YYYY-MM"),
    db: DBService = Depends(get_db_service),
    service: SlotService = Depends(get_slot_service),
):
    host, event_type = await _event_type_by_id(db, event_type_id)
    return await service.month_dates(host, event_type, month)
