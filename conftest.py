from datetime import datetime, timedelta, timezone

import pytest

from db.session import init_db, make_engine
from models.coordinate import Coordinate
from services.clock_engine import ClockEngine
from services.perimeter_registry import PerimeterRegistry
from services.shift_store import ShiftStore

ORG_ID = "sunrise-healthcare"
# Times Square, the demo site used throughout
SITE = Coordinate(latitude=40.7589, longitude=-73.9851)


class FakeClock:
    """Stand-in for the engine's `now` callable; moves only when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def db_engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'careclock.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(db_engine):
    return ShiftStore(db_engine, lock_timeout=5.0)


@pytest.fixture
def registry(db_engine):
    return PerimeterRegistry(db_engine)


@pytest.fixture
def site_perimeter(registry):
    return registry.set_perimeter(
        organization_id=ORG_ID,
        center=SITE,
        radius_meters=100.0,
        display_name="Main Building",
        updated_by="manager-1",
    )


@pytest.fixture
def clock_engine(store, registry, clock):
    return ClockEngine(store, registry, now=clock)
