from __future__ import annotations

import logging
import secrets
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator

from meetwhen.api.deps import get_current_host, get_db_service
from meetwhen.core.errors import NotFoundError
from meetwhen.integrations.webhooks import WEBHOOK_EVENTS
from meetwhen.models import Host
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


class WebhookCreate(BaseModel):
    url: str = Field(..., pattern=r"^https?://")
    events: list[str] = Field(default_factory=lambda: list(WEBHOOK_EVENTS), min_length=1)

    @field_validator("events")
    @classmethod
    def _known_events(cls, value: list[str]) -> list[str]:
        unknown = sorted(set(value) - set(WEBHOOK_EVENTS))
        if unknown:
            raise ValueError(f"Unknown webhook events: {', '.join(unknown)}")
        return sorted(set(value))


class WebhookOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    url: str
    events: list[str]
    is_active: bool
    created_at: Optional[datetime] = None


class WebhookCreated(WebhookOut):
    secret: str


@router.post("", response_model=WebhookCreated, status_code=201)
async def create_webhook(
    payload: WebhookCreate,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    """Subscribe a URL. The signing secret is only returned here."""
    webhook = await db.create_webhook(
        {
            "host_id": host.id,
            "url": payload.url,
            "events": payload.events,
            "secret": secrets.token_hex(32),
        }
    )
    logger.info(f"Webhook {webhook.id} registered for host {host.id}")
    return webhook


@router.get("", response_model=list[WebhookOut])
async def list_webhooks(
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    return await db.get_host_webhooks(host.id)


@router.delete("/{webhook_id}", status_code=204)
async def delete_webhook(
    webhook_id: str,
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
):
    if not await db.delete_webhook(host.id, webhook_id):
        raise NotFoundError("Webhook not found")
