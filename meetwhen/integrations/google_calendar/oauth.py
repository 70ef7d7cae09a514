"""Google Calendar OAuth 2.0 flow: consent URL, code exchange, token refresh"""

import asyncio
import logging
from typing import Tuple
from urllib.parse import urlencode

import aiohttp
from cryptography.fernet import Fernet, InvalidToken

from meetwhen.core.config import (
    CALENDAR_TIMEOUT_SECONDS,
    ENCRYPTION_KEY,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REDIRECT_URI,
)

logger = logging.getLogger(__name__)

TOKEN_URL = "https://oauth2.googleapis.com/token"
AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"

# Without a configured key, tokens only survive for this process
cipher_suite = Fernet(ENCRYPTION_KEY or Fernet.generate_key())


class GoogleOAuthError(Exception):
    """Token exchange or refresh failed."""


class GoogleCalendarOAuth:
    """Handle the Google Calendar OAuth 2.0 flow (read-only free/busy scope)"""

    def __init__(self):
        self.client_id = GOOGLE_CLIENT_ID
        self.client_secret = GOOGLE_CLIENT_SECRET
        self.redirect_uri = GOOGLE_REDIRECT_URI
        self.scopes = [
            "https://www.googleapis.com/auth/calendar.freebusy",
        ]

        if not all([self.client_id, self.client_secret, self.redirect_uri]):
            logger.warning("Google Calendar OAuth credentials not configured")

    @property
    def is_configured(self) -> bool:
        return all([self.client_id, self.client_secret, self.redirect_uri])

    def get_authorization_url(self, host_id: str) -> str:
        """
        Generate the Google OAuth authorization URL

        Args:
            host_id: Host ID, round-tripped as the state parameter

        Returns:
            Authorization URL for the host to visit
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",  # Get refresh token
            "prompt": "consent",  # Force consent screen
            "state": host_id,
        }

        return f"{AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_tokens(self, code: str) -> Tuple[str, str, int]:
        """
        Exchange authorization code for access and refresh tokens

        Returns:
            Tuple of (access_token, refresh_token, expires_in_seconds)
        """
        data = await self._post_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            }
        )
        logger.info("Successfully exchanged code for tokens")
        return data["access_token"], data.get("refresh_token"), data.get("expires_in", 3600)

    async def refresh_access_token(self, refresh_token: str) -> Tuple[str, int]:
        """
        Use refresh token to get new access token

        Returns:
            Tuple of (new_access_token, expires_in_seconds)
        """
        data = await self._post_token(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            }
        )
        logger.debug("Refreshed Google access token")
        return data["access_token"], data.get("expires_in", 3600)

    async def _post_token(self, form: dict) -> dict:
        timeout = aiohttp.ClientTimeout(total=CALENDAR_TIMEOUT_SECONDS)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(TOKEN_URL, data=form) as resp:
                    if resp.status != 200:
                        error_text = await resp.text()
                        logger.error(f"Token request failed: {error_text}")
                        raise GoogleOAuthError(f"Token endpoint returned {resp.status}")
                    data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise GoogleOAuthError(f"Token endpoint unreachable: {e}") from e

        if not data.get("access_token"):
            raise GoogleOAuthError("No access token in response")
        return data

    @staticmethod
    def encrypt_token(token: str) -> str:
        """Encrypt refresh token for storage"""
        return cipher_suite.encrypt(token.encode()).decode()

    @staticmethod
    def decrypt_token(encrypted_token: str) -> str:
        """Decrypt stored refresh token"""
        try:
            return cipher_suite.decrypt(encrypted_token.encode()).decode()
        except InvalidToken as e:
            raise GoogleOAuthError("Stored refresh token cannot be decrypted") from e


# Singleton instance
google_oauth = GoogleCalendarOAuth()
