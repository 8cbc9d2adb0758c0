# tests/conftest.py
import itertools
import json
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from factories import HOUSE_POINT, MILES_PER_DEG_LAT, NOW, SUNDAY_MORNING
from swishmatch.adapters.repos.bookings import dump_options
from swishmatch.config import Settings
from swishmatch.domain.types import AccountStatus, JobStatus, VerificationStatus
from swishmatch.models import Base, Booking, Cleaner, House, Job
from swishmatch.service_layer.unit_of_work import uow_factory as make_uow_factory


HOUSE_LAT = HOUSE_POINT.lat
HOUSE_LNG = HOUSE_POINT.lng

ALL_SLOTS_EVERY_DAY = {
    d: {"morning": True, "afternoon": True, "evening": True}
    for d in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
}


def north_of(lat: float, miles: float) -> float:
    return lat + miles / MILES_PER_DEG_LAT


@pytest.fixture
def now():
    return NOW


@pytest.fixture
async def engine(tmp_path):
    """
    Fresh file-backed DB per test. NullPool gives every session its own
    connection, so concurrent units of work really race on the database.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest.fixture
def cfg():
    return Settings(_env_file=None, API_KEY=None, OUTBOX_WEBHOOK_RPS=0.0)


@pytest.fixture
def uow_factory(async_session_maker, cfg):
    return make_uow_factory(async_session_maker, cfg)


class Seeder:
    """Inserts marketplace rows with sane defaults; kwargs override columns."""

    def __init__(self, session_maker):
        self.session_maker = session_maker
        self._user_ids = itertools.count(1000)

    async def _add(self, row):
        async with self.session_maker() as session:
            session.add(row)
            await session.commit()
            await session.refresh(row)
            return row

    async def house(self, **kw) -> House:
        data = dict(
            owner_id=500,
            lat=HOUSE_LAT,
            lng=HOUSE_LNG,
            street="100 Congress Ave",
            city="Austin",
            state="TX",
            sqft=1500,
            bedrooms=3,
            bathrooms=2.0,
        )
        data.update(kw)
        return await self._add(House(**data))

    async def cleaner(self, *, miles_north: float = 0.0, availability=None, service_types=None, **kw) -> Cleaner:
        data = dict(
            user_id=next(self._user_ids),
            name="Cleaner",
            verification_status=VerificationStatus.approved,
            account_status=AccountStatus.active,
            profile_complete=True,
            photo_uploaded=True,
            location_set=True,
            availability_set=True,
            background_check_complete=True,
            bank_connected=True,
            base_lat=north_of(HOUSE_LAT, miles_north),
            base_lng=HOUSE_LNG,
            service_radius_mi=15.0,
            availability_json=json.dumps(ALL_SLOTS_EVERY_DAY if availability is None else availability),
            service_types_json=json.dumps(service_types or ["regular", "deep"]),
            specialties_json="[]",
            rating=4.8,
            total_reviews=20,
            acceptance_rate=0.85,
            reliability_score=0.9,
            last_active_at=NOW - timedelta(minutes=1),
            upcoming_job_count=0,
        )
        data.update(kw)
        return await self._add(Cleaner(**data))

    async def booking(self, house: House, *, date_options=None, **kw) -> Booking:
        options = date_options or [{"date": SUNDAY_MORNING, "time_slot": "morning", "priority": 1}]
        data = dict(
            customer_id=house.owner_id,
            house_id=house.id,
            service_type="regular",
            date_options_json=dump_options(options),
            subtotal=100.0,
            taxes=8.25,
            total=108.25,
            version=0,
        )
        data.update(kw)
        return await self._add(Booking(**data))

    async def job(self, cleaner: Cleaner, house: House, *, start: datetime, status=JobStatus.scheduled, **kw) -> Job:
        data = dict(
            customer_id=house.owner_id,
            cleaner_id=cleaner.id,
            house_id=house.id,
            service_type="regular",
            status=status,
            scheduled_date=start,
            start_time=start,
            earnings=0.0,
        )
        data.update(kw)
        return await self._add(Job(**data))


@pytest.fixture
def seed(async_session_maker):
    return Seeder(async_session_maker)


@pytest.fixture
def sunday_morning():
    return SUNDAY_MORNING
