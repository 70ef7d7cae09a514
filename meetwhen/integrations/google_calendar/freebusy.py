"""Google Calendar FreeBusy query"""

import asyncio
import logging
from datetime import datetime, timezone

import aiohttp

from meetwhen.core.config import CALENDAR_TIMEOUT_SECONDS
from meetwhen.scheduling.intervals import Interval, merge

logger = logging.getLogger(__name__)

FREEBUSY_URL = "https://www.googleapis.com/calendar/v3/freeBusy"


class FreeBusyError(Exception):
    """The FreeBusy call failed or answered with something unusable."""


def _parse_instant(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        raise ValueError(f"busy instant without offset: {value}")
    return parsed.astimezone(timezone.utc)


def _format_instant(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_busy(body: dict, calendar_id: str) -> list[Interval]:
    """Extract merged busy intervals for ``calendar_id`` from a FreeBusy response."""
    calendars = body.get("calendars") if isinstance(body, dict) else None
    if not isinstance(calendars, dict) or calendar_id not in calendars:
        raise FreeBusyError(f"calendar {calendar_id!r} missing from response")

    entry = calendars[calendar_id]
    if entry.get("errors"):
        # Google reports per-calendar failures inline with a 200 status
        reasons = ", ".join(err.get("reason", "unknown") for err in entry["errors"])
        raise FreeBusyError(f"calendar {calendar_id!r} errors: {reasons}")

    try:
        busy = [
            Interval(_parse_instant(item["start"]), _parse_instant(item["end"]))
            for item in entry.get("busy", [])
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise FreeBusyError(f"malformed busy entry: {e}") from e
    return merge(busy)


class GoogleFreeBusyClient:
    def __init__(self, timeout_seconds: float = CALENDAR_TIMEOUT_SECONDS):
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def query(
        self,
        access_token: str,
        calendar_id: str,
        range_start: datetime,
        range_end: datetime,
    ) -> list[Interval]:
        payload = {
            "timeMin": _format_instant(range_start),
            "timeMax": _format_instant(range_end),
            "items": [{"id": calendar_id}],
        }
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                async with session.post(FREEBUSY_URL, json=payload, headers=headers) as resp:
                    if resp.status != 200:
                        error_text = await resp.text()
                        logger.error(f"FreeBusy failed ({resp.status}): {error_text}")
                        raise FreeBusyError(f"FreeBusy returned {resp.status}")
                    body = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FreeBusyError(f"FreeBusy unreachable: {e}") from e

        return parse_busy(body, calendar_id)
