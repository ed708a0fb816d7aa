"""
Pytest fixtures for test database, client, and authentication.

Every test gets fresh tables in an async SQLite file database (set
TEST_DATABASE_URL to run against Postgres instead). Each HTTP request
opens its own session, as in production, so concurrent requests really
race on the events row.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="eventbooking-tests-")

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/app.db")
os.environ["REDIS_ENABLED"] = "false"
os.environ["GEOCODER_ENABLED"] = "false"

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from eventbooking.main import app
from eventbooking.db.base import Base
from eventbooking.db.session import get_db
from eventbooking.core.security import create_access_token, hash_password
from eventbooking.models.user import User, UserRole
from eventbooking.models.event import Event
from eventbooking.services.location_service import LocationResolver
from eventbooking.services.rate_limiter import SlidingWindowRateLimiter

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/test.db")

GEOCODER_PAYLOAD = {
    "display_name": "Lisbon, Portugal",
    "address": {"city": "Lisbon", "state": "Lisboa", "country": "Portugal"},
}


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Create tables, yield the engine, then drop tables for isolation."""
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def geocoder_handler():
    """Mock Nominatim. Tests override this fixture to simulate failures."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/reverse"
        return httpx.Response(200, json=GEOCODER_PAYLOAD)

    return handler


@pytest_asyncio.fixture
async def location_resolver(geocoder_handler) -> AsyncGenerator[LocationResolver, None]:
    resolver = LocationResolver(
        base_url="http://geocoder.test",
        transport=httpx.MockTransport(geocoder_handler),
    )
    yield resolver
    await resolver.aclose()


@pytest.fixture
def rate_limiter() -> SlidingWindowRateLimiter:
    return SlidingWindowRateLimiter(max_requests=5, window_seconds=60)


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, rate_limiter, location_resolver) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test database and process-scoped test collaborators."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.admission = rate_limiter
    app.state.location_resolver = location_resolver

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db: AsyncSession, email: str, username: str, role: UserRole = UserRole.USER) -> User:
    user = User(
        email=email,
        username=username,
        name=username.title(),
        hashed_password=hash_password("testpassword123"),
        role=role.value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def _headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "test@example.com", "testuser")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@example.com", "otheruser")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "admin@example.com", "adminuser", UserRole.ADMIN)


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return _headers_for(test_user)


@pytest.fixture
def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)


async def make_event(
    db: AsyncSession,
    *,
    title: str = "Test Concert",
    capacity: int = 100,
    available_seats: int | None = None,
    price: str = "25.00",
    days_ahead: float = 30,
    category: str = "Music",
    location: str = "Test Venue",
) -> Event:
    event = Event(
        title=title,
        description="A test event",
        date=datetime.now(timezone.utc) + timedelta(days=days_ahead),
        location=location,
        category=category,
        price=Decimal(price),
        capacity=capacity,
        available_seats=capacity if available_seats is None else available_seats,
        is_active=True,
        version=1,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """Upcoming event with 100 seats at 25.00."""
    return await make_event(db_session)


@pytest_asyncio.fixture
async def small_event(db_session: AsyncSession) -> Event:
    """Upcoming event with 10 seats."""
    return await make_event(db_session, title="Small Club Gig", capacity=10, price="40.00")


@pytest_asyncio.fixture
async def sold_out_event(db_session: AsyncSession) -> Event:
    return await make_event(db_session, title="Sold Out Show", capacity=50, available_seats=0)


@pytest_asyncio.fixture
async def past_event(db_session: AsyncSession) -> Event:
    """Event that already happened, with plenty of seats left."""
    return await make_event(db_session, title="Yesterday's Show", capacity=50, days_ahead=-1)


def booking_payload(event_id: int, tickets: int = 1, **overrides) -> dict:
    payload = {"eventId": event_id, "tickets": tickets, "latitude": 38.7223, "longitude": -9.1393}
    payload.update(overrides)
    return payload
