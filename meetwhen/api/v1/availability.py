"""Host working hours: weekly rules (full replace) and per-date overrides."""

from __future__ import annotations

import datetime
import logging
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, model_validator

from meetwhen.api.deps import get_current_host, get_db_service
from meetwhen.api.validators import ClockTime
from meetwhen.core.errors import NotFoundError
from meetwhen.models import Host
from meetwhen.scheduling.clock import validate_window
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability"])


class RuleIn(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: ClockTime
    end_time: ClockTime

    @model_validator(mode="after")
    def _window_order(self):
        validate_window(self.start_time, self.end_time)
        return self


class RuleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    day_of_week: int
    start_time: str
    end_time: str


class AvailabilityReplace(BaseModel):
    rules: list[RuleIn] = Field(default_factory=list)


class OverrideIn(BaseModel):
    is_available: bool = False
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    reason: Optional[str] = Field(None, max_length=200)

    @model_validator(mode="after")
    def _window_when_available(self):
        if self.is_available:
            if not (self.start_time and self.end_time):
                raise ValueError("An available override needs start_time and end_time")
            validate_window(self.start_time, self.end_time)
        else:
            self.start_time = None
            self.end_time = None
        return self


class OverrideOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    date: datetime.date
    is_available: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None


@router.get("/availability", response_model=list[RuleOut])
async def list_rules(
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    return await db.get_availability_rules(host.id)


@router.put("/availability", response_model=list[RuleOut])
async def replace_rules(
    payload: AvailabilityReplace,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    """Replace every weekly rule of the host. Overlapping rules are kept as given."""
    rules = await db.replace_availability_rules(
        host.id, [rule.model_dump() for rule in payload.rules]
    )
    logger.info(f"Replaced availability for host {host.id}: {len(rules)} rules")
    return rules


@router.get("/date-overrides", response_model=list[OverrideOut])
async def list_overrides(
    start: Optional[date] = Query(None, alias="from"),
    end: Optional[date] = Query(None, alias="to"),
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    return await db.get_date_overrides(host.id, start, end)


@router.put("/date-overrides/{day}", response_model=OverrideOut)
async def upsert_override(
    day: date,
    payload: OverrideIn,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    """Create or replace the override for ``day``; unavailable days block every slot."""
    override = await db.upsert_date_override(host.id, {"date": day, **payload.model_dump()})
    logger.info(f"Date override for host {host.id} on {day}: available={override.is_available}")
    return override


@router.delete("/date-overrides/{day}", status_code=204)
async def delete_override(
    day: date,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    if not await db.delete_date_override(host.id, day):
        raise NotFoundError(f"No override on {day}")
