"""Error taxonomy shared by the scheduling services and the HTTP layer.

Domain code raises these; ``meetwhen.main`` maps them onto HTTP responses.
"""

from __future__ import annotations

from typing import Optional


class SchedulingError(Exception):
    """Base class. Anything not covered by a subclass is an internal failure."""

    status_code = 500
    code = "internal_error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or "Internal server error"
        super().__init__(self.detail)


class NotFoundError(SchedulingError):
    status_code = 404
    code = "not_found"


class ConflictError(SchedulingError):
    """The chosen slot is no longer free. The user should re-query and choose again."""

    status_code = 409
    code = "conflict"


class CalendarUnavailableError(SchedulingError):
    """The external calendar failed or timed out.

    Kept distinct from an empty busy list: "host has no linked calendar" is a
    valid empty result, this is not.
    """

    status_code = 503
    code = "calendar_unavailable"


class InvalidInputError(SchedulingError):
    status_code = 400
    code = "invalid_input"


class RateLimitedError(SchedulingError):
    status_code = 429
    code = "rate_limited"

    def __init__(self, detail: Optional[str] = None, retry_after: Optional[int] = None):
        super().__init__(detail or "Too many requests")
        self.retry_after = retry_after
