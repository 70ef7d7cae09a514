import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./meetwhen.db")
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
DB_ECHO = _env_bool("DB_ECHO")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# External calendar (busy intervals)
CALENDAR_TIMEOUT_SECONDS = float(os.getenv("CALENDAR_TIMEOUT_SECONDS", "8.0"))
# "strict" refuses to show slots it cannot verify; "degrade" falls back to
# internal bookings only and flags the response.
CALENDAR_FAILURE_POLICY = os.getenv("CALENDAR_FAILURE_POLICY", "strict").strip().lower()
if CALENDAR_FAILURE_POLICY not in {"strict", "degrade"}:
    raise RuntimeError(f"Unknown CALENDAR_FAILURE_POLICY: {CALENDAR_FAILURE_POLICY}")

# Booking commit
BOOKING_COMMIT_MAX_ATTEMPTS = int(os.getenv("BOOKING_COMMIT_MAX_ATTEMPTS", "3"))

# Public booking throttling, per client IP and per process (best effort)
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "5"))
BOOKING_RATE_WINDOW_SECONDS = int(os.getenv("BOOKING_RATE_WINDOW_SECONDS", "3600"))

# Google Calendar OAuth Configuration
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI")
# Fernet key for refresh tokens at rest
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

# Twilio SMS (guest confirmations)
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER")

# Outbound webhooks
WEBHOOK_TIMEOUT_SECONDS = float(os.getenv("WEBHOOK_TIMEOUT_SECONDS", "30"))
WEBHOOK_MAX_ATTEMPTS = int(os.getenv("WEBHOOK_MAX_ATTEMPTS", "3"))

# HMAC secret for guest booking links; unset means links last one process
BOOKING_TOKEN_SECRET = os.getenv("BOOKING_TOKEN_SECRET")
