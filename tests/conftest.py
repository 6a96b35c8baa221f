"""Pytest fixtures and configuration for Rhythm tests."""

import os

# Configure before rhythm.database.database builds its module-level engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["TRANSITION_SCAN_ENABLED"] = "false"

import uuid
from datetime import date, datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rhythm.database.database import Base, configure_sqlite
from rhythm.database import models  # noqa: F401
from rhythm.engine.household import Household
from rhythm.events.bus import EventBus
from rhythm.models.care_block import BlockCategory, CareBlock, Recurrence
from rhythm.models.child import Child
from rhythm.models.nap_schedule import NapSchedule


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


class FrozenClock:
    """Controllable stand-in for datetime.now."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def at(self, hour: int, minute: int = 0, on: date = None) -> None:
        """Move to a time of day (on the current date unless ``on`` is given)."""
        self.now = datetime.combine(on or self.now.date(), time(hour, minute))

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    # Create engine with StaticPool for in-memory database
    engine = configure_sqlite(create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    ))

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    """Clock frozen at Tuesday 2024-01-02 08:31."""
    return FrozenClock(datetime(2024, 1, 2, 8, 31))


@pytest.fixture
def bus(clock):
    return EventBus(clock=clock)


@pytest.fixture
def household(db_session: Session, clock, bus):
    """Repositories and engines wired to the test session and clock."""
    return Household(db_session, clock=clock, bus=bus)


@pytest.fixture
def make_child(household):
    """Factory that stores a child and returns it."""
    def _make(name="Milo", child_id=None, **overrides):
        child = Child(**{
            "id": child_id or name.lower(),
            "name": name,
            "birthdate": date(2021, 5, 4),
            "is_napping_age": False,
            **overrides,
        })
        return household.children.add(child)
    return _make


@pytest.fixture
def sample_block_base():
    """Base care block data; override per test."""
    return {
        "id": str(uuid.uuid4()),
        "child_ids": ["milo"],
        "name": "Daycare",
        "category": BlockCategory.CHILDCARE,
        "recurrence": Recurrence.WEEKDAYS,
        "start_time": time(8, 30),
        "end_time": time(15, 0),
    }


@pytest.fixture
def make_block(household, sample_block_base):
    """Factory that stores a care block and returns it."""
    def _make(**overrides):
        block = CareBlock(**{**sample_block_base, "id": str(uuid.uuid4()), **overrides})
        return household.care_blocks.add(block)
    return _make


@pytest.fixture
def make_nap_schedule(household):
    def _make(child_id="milo", nap_number=1, typical_start=time(12, 30), typical_end=time(14, 0)):
        schedule = NapSchedule(
            id=str(uuid.uuid4()),
            child_id=child_id,
            nap_number=nap_number,
            typical_start=typical_start,
            typical_end=typical_end,
        )
        return household.nap_schedules.add(schedule)
    return _make


@pytest.fixture
def test_client(db_session: Session, clock, bus):
    """Create a FastAPI test client with overridden database, clock and bus dependencies."""
    from rhythm.api.app import app
    from rhythm.api.dependencies import get_bus, get_clock
    from rhythm.database.database import get_db

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_bus] = lambda: bus

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()
