"""
Test configuration and fixtures.
"""
import os
import pytest
from datetime import datetime, time, timezone
from typing import Generator, Iterable, Optional
from uuid import UUID

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test settings before importing app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PUBLISH_SWEEP_ENABLED"] = "false"

from daypart_scheduler.main import app
from daypart_scheduler.core.clock import FixedClock
from daypart_scheduler.core.deps import get_clock
from daypart_scheduler.db.base import Base
from daypart_scheduler.db.session import get_db
from daypart_scheduler.models import (
    DaypartDefinition,
    DaypartSchedule,
    Placement,
    PlacementDaypartOverride,
    Store,
)


# One in-memory database shared by every connection of a test
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday 2024-01-10 07:00 UTC
WEDNESDAY_7AM = datetime(2024, 1, 10, 7, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a database session on freshly created tables."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(WEDNESDAY_7AM)


@pytest.fixture(scope="function")
def client(db: Session, clock: FixedClock) -> Generator[TestClient, None, None]:
    """Create test client with database session and clock overrides."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# ============ Row factories ============

def make_store(db: Session, name: str = "Test Store", concept_id: Optional[UUID] = None,
               timezone_name: str = "UTC") -> Store:
    store = Store(name=name, concept_id=concept_id, timezone=timezone_name)
    db.add(store)
    db.commit()
    db.refresh(store)
    return store


def make_placement(db: Session, store: Store, name: str = "Drive Thru") -> Placement:
    placement = Placement(store_id=store.id, name=name)
    db.add(placement)
    db.commit()
    db.refresh(placement)
    return placement


def make_definition(db: Session, name: str, display_label: Optional[str] = None, sort_order: int = 0,
                    store_id: Optional[UUID] = None, concept_id: Optional[UUID] = None) -> DaypartDefinition:
    definition = DaypartDefinition(
        name=name,
        display_label=display_label or name.replace("_", " ").title(),
        sort_order=sort_order,
        store_id=store_id,
        concept_id=concept_id,
    )
    db.add(definition)
    db.commit()
    db.refresh(definition)
    return definition


def make_schedule(db: Session, definition: DaypartDefinition, days: Iterable[int],
                  start: time, end: time) -> DaypartSchedule:
    rule = DaypartSchedule(daypart_id=definition.id, days_of_week=sorted(days), start_time=start, end_time=end)
    db.add(rule)
    db.commit()
    db.refresh(rule)
    return rule


def make_override(db: Session, placement: Placement, definition: Optional[DaypartDefinition],
                  days: Iterable[int], start: time, end: time,
                  daypart_name: Optional[str] = None) -> PlacementDaypartOverride:
    override = PlacementDaypartOverride(
        placement_id=placement.id,
        daypart_id=definition.id if definition is not None else None,
        daypart_name=daypart_name,
        days_of_week=sorted(days),
        start_time=start,
        end_time=end,
    )
    db.add(override)
    db.commit()
    db.refresh(override)
    return override
