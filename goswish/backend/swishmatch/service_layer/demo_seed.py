# swishmatch/service_layer/demo_seed.py
from __future__ import annotations

import json
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..adapters.repos.bookings import BookingRepository
from ..adapters.repos.settings import AppSettingsRepository
from ..domain.types import AccountStatus, BookingStatus, VerificationStatus
from ..models import Booking, Cleaner, House, Integration, IntegrationType

DEMO_CUSTOMER_ID = 9000
DEMO_CLEANER_USER_BASE = 9100

# Around Austin, TX.
DEMO_HOUSE = {"lat": 30.2672, "lng": -97.7431, "street": "100 Congress Ave", "city": "Austin", "state": "TX"}
DEMO_CLEANERS = [
    ("Ana", 0.01, 0.01, 4.9, 42),
    ("Ben", 0.05, -0.02, 4.6, 18),
    ("Cleo", -0.04, 0.06, 5.0, 2),
    ("Dev", 0.12, 0.10, 4.2, 65),
    ("Eli", 0.30, 0.30, 4.8, 30),  # ~27 mi out: outside the default radius
]


def _week_all_day() -> dict[str, Any]:
    days = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
    return {d: {"morning": True, "afternoon": True, "evening": False} for d in days}


async def seed_demo(
    session: AsyncSession,
    *,
    url: str = "https://example.com",
    enable_demo_webhooks: bool = False,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Idempotent demo seed:
    - app settings row, one house, five cleaners, one open booking
    - one webhook integration (disabled unless asked)
    safe to run multiple times
    """
    now = now or datetime.utcnow()

    await AppSettingsRepository(session).upsert(cleaner_earnings_rate=0.90, default_service_radius_mi=15.0)

    house = (await session.execute(select(House).where(House.owner_id == DEMO_CUSTOMER_ID))).scalars().first()
    if house is None:
        house = House(owner_id=DEMO_CUSTOMER_ID, sqft=1800, bedrooms=3, bathrooms=2.0, has_pets=False, **DEMO_HOUSE)
        session.add(house)
        await session.flush()

    created_cleaners = 0
    for i, (name, dlat, dlng, rating, reviews) in enumerate(DEMO_CLEANERS):
        user_id = DEMO_CLEANER_USER_BASE + i
        row = (await session.execute(select(Cleaner).where(Cleaner.user_id == user_id))).scalars().first()
        if row is not None:
            continue
        session.add(
            Cleaner(
                user_id=user_id,
                name=name,
                verification_status=VerificationStatus.approved,
                account_status=AccountStatus.active,
                profile_complete=True,
                photo_uploaded=True,
                location_set=True,
                availability_set=True,
                background_check_complete=True,
                bank_connected=True,
                base_lat=DEMO_HOUSE["lat"] + dlat,
                base_lng=DEMO_HOUSE["lng"] + dlng,
                service_radius_mi=15.0,
                availability_json=json.dumps(_week_all_day()),
                service_types_json=json.dumps(["regular", "deep"]),
                specialties_json=json.dumps(["deep"] if i % 2 == 0 else []),
                rating=rating,
                total_reviews=reviews,
                acceptance_rate=0.85,
                reliability_score=0.9,
                last_active_at=now - timedelta(minutes=3 * (i + 1)),
                upcoming_job_count=i,
            )
        )
        created_cleaners += 1
    await session.flush()

    booking = (
        await session.execute(
            select(Booking).where(Booking.customer_id == DEMO_CUSTOMER_ID).where(Booking.status == BookingStatus.placed)
        )
    ).scalars().first()
    if booking is None:
        first_day = (now + timedelta(days=3)).replace(hour=9, minute=0, second=0, microsecond=0)
        booking = await BookingRepository(session).add(
            customer_id=DEMO_CUSTOMER_ID,
            house_id=house.id,
            service_type="deep",
            date_options=[
                {"date": first_day, "time_slot": "morning", "priority": 1},
                {"date": first_day + timedelta(days=1, hours=4), "time_slot": "afternoon", "priority": 2},
            ],
            subtotal=150.0,
            taxes=12.38,
            total=162.38,
        )

    integ = (await session.execute(select(Integration).where(Integration.name == "demo_webhook"))).scalars().first()
    cfg = {"url": url, "secret": None}
    if integ:
        integ.type = IntegrationType.webhook
        integ.enabled = enable_demo_webhooks
        integ.config_json = json.dumps(cfg)
    else:
        session.add(
            Integration(
                name="demo_webhook",
                type=IntegrationType.webhook,
                enabled=enable_demo_webhooks,
                config_json=json.dumps(cfg),
            )
        )
    await session.flush()

    return {
        "house_id": house.id,
        "booking_id": booking.id,
        "cleaners_created": created_cleaners,
        "enable_demo_webhooks": enable_demo_webhooks,
    }
