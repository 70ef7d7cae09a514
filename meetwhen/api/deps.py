"""Shared router dependencies.

Identity is handled upstream of this service; the authenticated host arrives
as the ``X-Host-Id`` header.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from meetwhen.core.database import get_db
from meetwhen.core.errors import NotFoundError
from meetwhen.models import Host
from meetwhen.services.db_service import DBService


async def get_db_service(db: AsyncSession = Depends(get_db)) -> DBService:
    return DBService(db)


async def get_current_host(
    x_host_id: str = Header(...),
    db: DBService = Depends(get_db_service),
) -> Host:
    host = await db.get_host(x_host_id)
    if host is None:
        raise NotFoundError("Host not found")
    return host


async def get_optional_host_id(x_host_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_host_id
