from __future__ import annotations

import logging
from datetime import datetime

from meetwhen.core.errors import CalendarUnavailableError
from meetwhen.integrations.google_calendar.freebusy import GoogleFreeBusyClient, FreeBusyError
from meetwhen.integrations.google_calendar.oauth import GoogleOAuthError, google_oauth
from meetwhen.scheduling.intervals import Interval

logger = logging.getLogger(__name__)


class GoogleCalendarProvider:
    name = "google"

    def __init__(self, client: GoogleFreeBusyClient | None = None):
        self.client = client or GoogleFreeBusyClient()

    async def get_busy_intervals(
        self, host, range_start: datetime, range_end: datetime
    ) -> list[Interval]:
        try:
            refresh_token = google_oauth.decrypt_token(host.google_refresh_token)
            access_token, _ = await google_oauth.refresh_access_token(refresh_token)
            return await self.client.query(
                access_token,
                host.google_calendar_id or "primary",
                range_start,
                range_end,
            )
        except (FreeBusyError, GoogleOAuthError) as e:
            logger.error(f"Google busy lookup failed for host {host.id}: {e}")
            raise CalendarUnavailableError("Linked calendar could not be read") from e
