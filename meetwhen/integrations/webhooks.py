"""Outbound booking webhooks, HMAC-SHA256 signed.

Receivers verify ``X-Webhook-Signature`` as the hex HMAC of
``"{timestamp}.{raw body}"`` keyed with the subscription secret.
"""

import asyncio
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from meetwhen.core.config import WEBHOOK_MAX_ATTEMPTS, WEBHOOK_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking.created"
BOOKING_CANCELLED = "booking.cancelled"
BOOKING_RESCHEDULED = "booking.rescheduled"
BOOKING_RESCHEDULE_REQUESTED = "booking.reschedule_requested"
WEBHOOK_EVENTS = (
    BOOKING_CREATED,
    BOOKING_CANCELLED,
    BOOKING_RESCHEDULED,
    BOOKING_RESCHEDULE_REQUESTED,
)


@dataclass(frozen=True)
class WebhookTarget:
    url: str
    secret: str


def sign_payload(secret: str, timestamp: str, body: bytes) -> str:
    message = timestamp.encode() + b"." + body
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def encode_body(event: str, payload: dict) -> bytes:
    return json.dumps({"event": event, "data": payload}, separators=(",", ":"), default=str).encode()


async def deliver_webhook(
    target: WebhookTarget,
    event: str,
    payload: dict,
    client: Optional[httpx.AsyncClient] = None,
    max_attempts: int = WEBHOOK_MAX_ATTEMPTS,
    backoff_seconds: float = 1.0,
) -> bool:
    """POST one event to one subscriber, retrying 5xx and network errors.

    Returns True on a 2xx. Never raises: delivery is not part of the booking.
    """
    body = encode_body(event, payload)
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS)
    try:
        for attempt in range(1, max_attempts + 1):
            timestamp = str(int(time.time()))
            headers = {
                "Content-Type": "application/json",
                "X-Webhook-Event": event,
                "X-Webhook-Timestamp": timestamp,
                "X-Webhook-Signature": sign_payload(target.secret, timestamp, body),
            }
            try:
                resp = await client.post(target.url, content=body, headers=headers)
                if resp.is_success:
                    logger.info(f"Webhook {event} delivered to {target.url}")
                    return True
                if resp.status_code < 500:
                    logger.warning(
                        f"Webhook {event} rejected by {target.url}: {resp.status_code}"
                    )
                    return False
                logger.warning(
                    f"Webhook {event} to {target.url} failed ({resp.status_code}), "
                    f"attempt {attempt}/{max_attempts}"
                )
            except httpx.HTTPError as e:
                logger.warning(
                    f"Webhook {event} to {target.url} errored: {e}, attempt {attempt}/{max_attempts}"
                )
            if attempt < max_attempts:
                await asyncio.sleep(backoff_seconds * 2 ** (attempt - 1))
    finally:
        if owns_client:
            await client.aclose()

    logger.error(f"Webhook {event} to {target.url} gave up after {max_attempts} attempts")
    return False
