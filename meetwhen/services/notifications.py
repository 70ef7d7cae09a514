"""Post-commit notifications: guest SMS and host webhooks.

Everything a dispatch needs is captured as plain data while the request
still owns its database session; the dispatch itself runs as a FastAPI
background task and never touches the database. Failures are logged and
swallowed: the booking is already committed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from meetwhen.core.booking_tokens import generate_booking_token
from meetwhen.integrations import webhooks
from meetwhen.integrations.twilio_client import twilio_client
from meetwhen.integrations.webhooks import WebhookTarget, deliver_webhook
from meetwhen.models import Booking, EventType, Host
from meetwhen.scheduling.clock import get_zone
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)


@dataclass
class BookingNotice:
    event: str
    payload: dict
    targets: list[WebhookTarget] = field(default_factory=list)
    sms_to: Optional[str] = None
    sms_body: Optional[str] = None


def booking_payload(booking: Booking, event_type: EventType, host: Host) -> dict:
    return {
        "booking_id": str(booking.id),
        "host_id": str(host.id),
        "host_username": host.username,
        "event_type_id": str(event_type.id),
        "event_type_slug": event_type.slug,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
        "status": booking.status,
        "guest_name": booking.guest_name,
        "guest_email": booking.guest_email,
        "guest_timezone": booking.guest_timezone,
        "cancellation_reason": booking.cancellation_reason,
    }


def _sms_text(event: str, booking: Booking, event_type: EventType, host: Host) -> str:
    try:
        tz = get_zone(booking.guest_timezone)
    except ValueError:
        tz = get_zone("UTC")
    when = booking.start_time.astimezone(tz).strftime("%a %d %b %H:%M")
    if event == webhooks.BOOKING_CANCELLED:
        return f"Your {event_type.title} with {host.name} on {when} has been cancelled."
    if event == webhooks.BOOKING_RESCHEDULE_REQUESTED:
        return f"{host.name} asked to move your {event_type.title} on {when}. Please pick a new time."
    if event == webhooks.BOOKING_RESCHEDULED:
        return f"Your {event_type.title} with {host.name} has moved to {when}."
    return f"Confirmed: {event_type.title} with {host.name} on {when}."


async def prepare_notice(
    db: DBService, event: str, booking: Booking, event_type: EventType, host: Host
) -> BookingNotice:
    """Snapshot payload, subscribers and SMS text for one booking event."""
    hooks = await db.get_subscribed_webhooks(host.id, event)
    notice = BookingNotice(
        event=event,
        payload=booking_payload(booking, event_type, host),
        targets=[WebhookTarget(url=hook.url, secret=hook.secret) for hook in hooks],
    )
    if event == webhooks.BOOKING_RESCHEDULE_REQUESTED:
        # Subscribers forward this to the guest so they can pick a new time
        notice.payload["guest_token"] = generate_booking_token(booking.id, booking.guest_email)
    if booking.guest_phone:
        notice.sms_to = booking.guest_phone
        notice.sms_body = _sms_text(event, booking, event_type, host)
    return notice


async def dispatch_notice(notice: BookingNotice) -> None:
    if notice.sms_to:
        if twilio_client.is_configured:
            try:
                # The Twilio client is synchronous
                await asyncio.to_thread(twilio_client.send_sms, notice.sms_to, notice.sms_body)
                logger.info(f"SMS sent for {notice.event} {notice.payload['booking_id']}")
            except Exception as e:
                logger.error(f"SMS for {notice.event} {notice.payload['booking_id']} failed: {e}")
        else:
            logger.info("Twilio not configured; skipping guest SMS")

    if notice.targets:
        await asyncio.gather(
            *(deliver_webhook(target, notice.event, notice.payload) for target in notice.targets)
        )
