"""Google Calendar integration (OAuth and free/busy lookups)"""

from .freebusy import FreeBusyError, GoogleFreeBusyClient
from .oauth import GoogleCalendarOAuth, GoogleOAuthError

__all__ = ["FreeBusyError", "GoogleCalendarOAuth", "GoogleFreeBusyClient", "GoogleOAuthError"]
