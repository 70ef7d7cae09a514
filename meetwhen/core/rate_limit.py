"""In-memory per-IP rate limiting.

Counters live in this process only. Behind several workers or instances each
one enforces its own limit, so treat this as best-effort throttling; exact
global limits would need a shared counter store.
"""

import logging
import time
from threading import Lock
from typing import Optional

from fastapi import Request

from meetwhen.core.config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW_SECONDS
from meetwhen.core.errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window counter keyed by client identifier."""

    def __init__(self, limit: int, window_seconds: int, clock=time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[str, tuple[int, float]] = {}
        self._lock = Lock()

    def check(self, key: str) -> tuple[bool, int, float]:
        """Register one hit for ``key``.

        Returns (allowed, remaining, reset_at) where reset_at is on this
        limiter's clock.
        """
        now = self._clock()
        with self._lock:
            count, reset_at = self._entries.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + self.window_seconds
            if count >= self.limit:
                self._entries[key] = (count, reset_at)
                return False, 0, reset_at
            count += 1
            self._entries[key] = (count, reset_at)
            self._prune(now)
            return True, self.limit - count, reset_at

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def _prune(self, now: float) -> None:
        # Caller holds the lock
        if len(self._entries) < 10_000:
            return
        expired = [k for k, (_, reset_at) in self._entries.items() if now >= reset_at]
        for key in expired:
            del self._entries[key]


def get_client_ip(request: Request) -> str:
    forwarded: Optional[str] = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


booking_rate_limiter = RateLimiter(BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW_SECONDS)


async def limit_booking_requests(request: Request) -> None:
    """FastAPI dependency guarding public booking creation."""
    ip = get_client_ip(request)
    allowed, _, reset_at = booking_rate_limiter.check(ip)
    if not allowed:
        retry_after = max(1, int(reset_at - booking_rate_limiter._clock()))
        logger.warning(f"Booking rate limit hit for {ip}")
        raise RateLimitedError("Too many booking attempts, please try again later", retry_after)
