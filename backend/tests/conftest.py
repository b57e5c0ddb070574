"""
Pytest configuration and fixtures.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from blog_analytics.api.v1.deps import get_api_rate_limiter, get_ingest_rate_limiter
from blog_analytics.db.database import Base, get_db
from blog_analytics.main import app
from blog_analytics.services.event_store import EventFilters, StoredEvent
from blog_analytics.services.rate_limiter import FixedWindowRateLimiter

# Import models to register with Base.metadata
from blog_analytics.models import analytics_event  # noqa: F401


# Use test database URL from env, or default to SQLite in-memory
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")


class FakeClock:
    """Manually advanced clock usable as both a monotonic and a datetime clock."""

    def __init__(self, start: datetime = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def monotonic(self) -> float:
        return self.now.timestamp()

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class InMemoryEventStore:
    """EventStore fake holding events in a list."""

    def __init__(self):
        self.events: List[StoredEvent] = []
        self._next_id = 1

    def create(self, draft, timestamp, page) -> StoredEvent:
        event = StoredEvent(
            id=f"evt-{self._next_id}",
            timestamp=timestamp,
            type=draft.type,
            session_id=draft.session_id,
            country=draft.country,
            page=page,
            extra=dict(draft.extra),
        )
        self._next_id += 1
        self.events.append(event)
        return event

    def query(self, filters: EventFilters) -> List[StoredEvent]:
        matches = [
            e
            for e in self.events
            if (not filters.type or e.type == filters.type)
            and (not filters.country or e.country == filters.country)
            and (not filters.session_id or e.session_id == filters.session_id)
            and (filters.start is None or e.timestamp >= filters.start)
            and (filters.end is None or e.timestamp <= filters.end)
        ]
        matches.sort(key=lambda e: e.timestamp, reverse=True)
        return matches[: filters.limit]

    def scan(self) -> Iterator[StoredEvent]:
        return iter(list(self.events))


@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # SQLite in-memory for fast tests
        engine = create_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    else:
        # Postgres for more realistic integration tests
        engine = create_engine(TEST_DATABASE_URL, echo=False)

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine):
    """Create a test database session."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSessionLocal()

    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def override_get_db(test_db):
    """Override get_db dependency for FastAPI."""

    def _get_db():
        try:
            yield test_db
        finally:
            pass  # Don't close, the test_db fixture handles it

    return _get_db


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return InMemoryEventStore()


@pytest.fixture
def api_limiter(clock):
    """Generous general limiter so endpoint tests are not throttled by accident."""
    return FixedWindowRateLimiter(
        limit=1000, window_seconds=900, message="slow down", name="api", clock=clock.monotonic
    )


@pytest.fixture
def ingest_limiter(clock):
    """Generous ingestion limiter; rate-limit tests build their own."""
    return FixedWindowRateLimiter(
        limit=1000, window_seconds=60, message="wait", name="ingest", clock=clock.monotonic
    )


@pytest.fixture
def client(override_get_db, api_limiter, ingest_limiter):
    """TestClient wired to the SQLite test session and fresh rate limiters."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_api_rate_limiter] = lambda: api_limiter
    app.dependency_overrides[get_ingest_rate_limiter] = lambda: ingest_limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
