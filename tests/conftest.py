import os
import tempfile

# Settings are read at import time, so the test database must be chosen first
_DB_DIR = tempfile.mkdtemp(prefix="meetwhen-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["BOOKING_RATE_LIMIT"] = "1000"
os.environ["CALENDAR_FAILURE_POLICY"] = "strict"
os.environ["BOOKING_TOKEN_SECRET"] = "test-booking-token-secret"

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient

from meetwhen.api.deps import get_db_service
from meetwhen.api.v1.bookings import get_booking_service
from meetwhen.api.v1.slots import get_slot_service
from meetwhen.core.database import AsyncSessionLocal, create_all, drop_all
from meetwhen.core.rate_limit import booking_rate_limiter
from meetwhen.integrations.providers import registry
from meetwhen.main import app
from meetwhen.services.booking_service import BookingService
from meetwhen.services.db_service import DBService
from meetwhen.services.slot_service import SlotService

# Sunday noon UTC; 2030-01-07 is the Monday after
NOW = datetime(2030, 1, 6, 12, 0, tzinfo=timezone.utc)


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


class FakeCalendar:
    """Stands in for the external calendar of hosts without a linked one."""

    name = "fake"

    def __init__(self):
        self.busy = []
        self.error = None
        self.delay = 0.0
        self.calls = 0

    async def get_busy_intervals(self, host, range_start, range_end):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return [iv for iv in self.busy if iv.start < range_end and range_start < iv.end]


@pytest.fixture
async def tables():
    await drop_all()
    await create_all()
    yield


@pytest.fixture
async def session(tables):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
def db(session):
    return DBService(session)


@pytest.fixture
def fake_calendar():
    saved = dict(registry._PROVIDERS)
    calendar = FakeCalendar()
    registry.register_provider("native", calendar)
    yield calendar
    registry._PROVIDERS.clear()
    registry._PROVIDERS.update(saved)


@pytest.fixture
def slot_service(db, fake_calendar):
    return SlotService(db, clock=fixed_clock)


@pytest.fixture
def booking_service(session, fake_calendar):
    return BookingService(session, clock=fixed_clock)


async def make_host(db, username="ada", tz="UTC", rules=((1, "09:00", "17:00"),)):
    host = await db.create_host(
        {"name": username.title(), "email": f"{username}@example.com", "username": username, "timezone": tz}
    )
    await db.replace_availability_rules(
        host.id, [{"day_of_week": d, "start_time": s, "end_time": e} for d, s, e in rules]
    )
    return host


async def make_event_type(db, host, slug="intro", **fields):
    data = {"host_id": host.id, "title": slug.title(), "slug": slug, "duration": 30}
    data.update(fields)
    return await db.create_event_type(data)


@pytest.fixture
def failure_policy():
    return "strict"


@pytest.fixture
async def client(tables, fake_calendar, failure_policy):
    async def _slot_service(db: DBService = Depends(get_db_service)):
        return SlotService(db, failure_policy=failure_policy, clock=fixed_clock)

    async def _booking_service(db: DBService = Depends(get_db_service)):
        return BookingService(db.session, clock=fixed_clock)

    app.dependency_overrides[get_slot_service] = _slot_service
    app.dependency_overrides[get_booking_service] = _booking_service
    booking_rate_limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    booking_rate_limiter.reset()
