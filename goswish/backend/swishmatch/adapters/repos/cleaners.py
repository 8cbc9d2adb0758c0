# swishmatch/adapters/repos/cleaners.py
from __future__ import annotations

import json

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.timeslots import parse_availability
from ...domain.types import CleanerProfile, CleanerStats, GeoPoint, OnboardingFlags
from ...models import Cleaner


def to_profile(c: Cleaner) -> CleanerProfile:
    # availability is parsed once here; domain code only sees the tagged variant
    base = None
    if c.base_lat is not None and c.base_lng is not None:
        base = GeoPoint(lat=c.base_lat, lng=c.base_lng)

    return CleanerProfile(
        id=c.id,
        user_id=c.user_id,
        name=c.name or "",
        verification_status=c.verification_status,
        account_status=c.account_status,
        onboarding=OnboardingFlags(
            profile_complete=bool(c.profile_complete),
            photo_uploaded=bool(c.photo_uploaded),
            location_set=bool(c.location_set),
            availability_set=bool(c.availability_set),
            background_check_complete=bool(c.background_check_complete),
            bank_connected=bool(c.bank_connected),
        ),
        base_location=base,
        service_radius_mi=c.service_radius_mi,
        availability=parse_availability(json.loads(c.availability_json or "{}")),
        service_types=frozenset(str(s).strip().lower() for s in json.loads(c.service_types_json or "[]")),
        specialties=tuple(json.loads(c.specialties_json or "[]")),
        stats=CleanerStats(
            rating=c.rating,
            total_reviews=c.total_reviews or 0,
            acceptance_rate=c.acceptance_rate,
            reliability_score=c.reliability_score,
        ),
        last_active_at=c.last_active_at,
        upcoming_job_count=c.upcoming_job_count or 0,
    )


class CleanerRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_pool(self) -> list[CleanerProfile]:
        # ordered by id so tie-breaking downstream is deterministic
        rows = (await self.session.execute(select(Cleaner).order_by(Cleaner.id.asc()))).scalars().all()
        return [to_profile(r) for r in rows]

    async def get(self, cleaner_id: int) -> CleanerProfile | None:
        row = (await self.session.execute(select(Cleaner).where(Cleaner.id == cleaner_id))).scalars().first()
        return to_profile(row) if row else None
