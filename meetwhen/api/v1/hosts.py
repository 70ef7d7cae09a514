from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError

from meetwhen.api.deps import get_current_host, get_db_service
from meetwhen.api.validators import TimezoneName
from meetwhen.core.errors import ConflictError
from meetwhen.models import Host
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hosts", tags=["hosts"])


class HostCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)
    username: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z0-9][a-z0-9_-]*$")
    timezone: TimezoneName = "UTC"


class HostUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=3, max_length=320)
    timezone: Optional[TimezoneName] = None


class HostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    username: str
    timezone: str
    google_calendar_connected: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_host(cls, host: Host) -> "HostOut":
        out = cls.model_validate(host)
        out.google_calendar_connected = host.has_linked_calendar
        return out


@router.post("", response_model=HostOut, status_code=201)
async def create_host(payload: HostCreate, db: DBService = Depends(get_db_service)):
    """Create a host; identity provisioning itself happens elsewhere."""
    try:
        host = await db.create_host(payload.model_dump())
    except IntegrityError:
        await db.session.rollback()
        raise ConflictError(f"Username {payload.username!r} is taken")
    logger.info(f"Created host {host.id} ({host.username})")
    return HostOut.from_host(host)


@router.get("/me", response_model=HostOut)
async def get_me(host: Host = Depends(get_current_host)):
    return HostOut.from_host(host)


@router.patch("/me", response_model=HostOut)
async def update_me(
    payload: HostUpdate,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    """Update name, email or timezone. Rules stay wall-clock in the new zone."""
    updated = await db.update_host(host.id, payload.model_dump(exclude_unset=True, exclude_none=True))
    return HostOut.from_host(updated)
