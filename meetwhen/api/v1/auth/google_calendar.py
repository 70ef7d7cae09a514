"""Google Calendar OAuth endpoints.

A connected calendar becomes a busy-time source for slot queries and
booking commits.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from meetwhen.api.deps import get_current_host, get_db_service
from meetwhen.core.errors import InvalidInputError, NotFoundError, SchedulingError
from meetwhen.integrations.google_calendar.oauth import GoogleOAuthError, google_oauth
from meetwhen.models import Host
from meetwhen.models.types import utcnow
from meetwhen.services.db_service import DBService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/google-calendar", tags=["google-calendar"])


class GoogleCalendarStartResponse(BaseModel):
    authorization_url: str


class GoogleCalendarAuthSuccess(BaseModel):
    success: bool
    message: str


@router.post("/start", response_model=GoogleCalendarStartResponse)
async def start_oauth_flow(host: Host = Depends(get_current_host)) -> GoogleCalendarStartResponse:
    """
    Initiate Google Calendar OAuth flow

    Returns authorization URL for the host to visit
    """
    if not google_oauth.is_configured:
        raise SchedulingError("Google Calendar integration is not configured")
    auth_url = google_oauth.get_authorization_url(host_id=str(host.id))
    logger.info(f"Generated OAuth URL for host {host.id}")
    return GoogleCalendarStartResponse(authorization_url=auth_url)


@router.get("/callback", response_model=GoogleCalendarAuthSuccess)
async def oauth_callback(
    code: str = Query(...),
    state: str = Query(...),  # host_id passed as state
    db: DBService = Depends(get_db_service),
) -> GoogleCalendarAuthSuccess:
    """
    Google OAuth callback endpoint

    Exchanges authorization code for tokens and stores the encrypted refresh token
    """
    host = await db.get_host(state)
    if host is None:
        logger.error(f"Host {state} not found during OAuth callback")
        raise NotFoundError("Host not found")

    try:
        _, refresh_token, expires_in = await google_oauth.exchange_code_for_tokens(code)
    except GoogleOAuthError as e:
        logger.error(f"OAuth callback error for host {state}: {e}")
        raise InvalidInputError("Failed to exchange authorization code") from e

    if not refresh_token:
        logger.error(f"No refresh token received for host {state}")
        raise InvalidInputError("Google did not return a refresh token")

    await db.update_host(
        host.id,
        {
            "google_calendar_id": "primary",
            "google_refresh_token": google_oauth.encrypt_token(refresh_token),
            "google_token_expires_at": utcnow() + timedelta(seconds=expires_in),
        },
    )
    logger.info(f"Saved Google Calendar credentials for host {state}")
    return GoogleCalendarAuthSuccess(success=True, message="Google Calendar connected successfully")


@router.post("/disconnect", response_model=GoogleCalendarAuthSuccess)
async def disconnect_google_calendar(
    host: Host = Depends(get_current_host),
    db: DBService = Depends(get_db_service),
) -> GoogleCalendarAuthSuccess:
    """Clear stored credentials; only internal bookings block time afterwards."""
    await db.update_host(
        host.id,
        {
            "google_calendar_id": None,
            "google_refresh_token": None,
            "google_token_expires_at": None,
        },
    )
    logger.info(f"Disconnected Google Calendar for host {host.id}")
    return GoogleCalendarAuthSuccess(success=True, message="Google Calendar disconnected successfully")
