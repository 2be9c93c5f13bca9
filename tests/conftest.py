"""Shared fixtures: a throwaway SQLite database per test and a recording emitter."""

from datetime import date, time

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from unipool.core.database import Base, enable_sqlite_foreign_keys
from unipool.models import chat, notification, rating, user  # noqa: F401  (register tables)
from unipool.services.booking import BookingWorkflow
from unipool.services.notifications import NotificationEmitter
from unipool.services.rides import RideInventory, RideSpec

DRIVER_ID = "driver-1"
RIDER_A = "rider-a"
RIDER_B = "rider-b"


class RecordingEmitter(NotificationEmitter):
    """Keeps emitted notifications in memory so tests can assert on them."""

    def __init__(self):
        self.sent = []

    async def emit(self, user_id, type, title, message, payload=None):
        self.sent.append({
            "user_id": user_id,
            "type": type,
            "title": title,
            "message": message,
            "payload": payload or {},
        })

    def for_user(self, user_id, type=None):
        return [
            n for n in self.sent
            if n["user_id"] == user_id and (type is None or n["type"] == type)
        ]


@pytest.fixture
async def engine(tmp_path):
    """File-backed so separate sessions really run as separate connections."""
    engine = enable_sqlite_foreign_keys(
        create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'unipool-test.db'}")
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def inventory(session):
    return RideInventory(session)


@pytest.fixture
def workflow(session, emitter):
    return BookingWorkflow(session, emitter)


def ride_spec(**overrides):
    data = dict(
        driver_id=DRIVER_ID,
        driver_name="Dana Driver",
        origin="North Campus",
        destination="City Centre",
        date=date(2026, 11, 2),
        time=time(8, 30),
        total_seats=3,
        price=2.5,
    )
    data.update(overrides)
    return RideSpec(**data)


@pytest.fixture
def make_ride(inventory):
    """Post a ride through the inventory, overriding any RideSpec field."""

    async def _make_ride(**overrides):
        return await inventory.create_ride(ride_spec(**overrides))

    return _make_ride
