# swishmatch/adapters/repos/jobs.py
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.types import ACTIVE_JOB_STATUSES, GeoPoint, JobRecord, JobStatus
from ...models import House, Job


def _record(j: Job, lat: float | None = None, lng: float | None = None) -> JobRecord:
    loc = GeoPoint(lat=lat, lng=lng) if lat is not None and lng is not None else None
    return JobRecord(
        id=j.id,
        cleaner_id=j.cleaner_id,
        status=j.status,
        start=j.start_time or j.scheduled_date,
        location=loc,
        rating=j.rating,
    )


class JobRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def by_cleaner(self, cleaner_ids: Iterable[int]) -> dict[int, list[JobRecord]]:
        """
        Every job for the given cleaners, each tagged with its house location.
        Used both for calendar conflicts and for scoring history.
        """
        ids = list(cleaner_ids)
        if not ids:
            return {}

        q = (
            select(Job, House.lat, House.lng)
            .outerjoin(House, House.id == Job.house_id)
            .where(Job.cleaner_id.in_(ids))
            .order_by(Job.id.asc())
        )
        out: dict[int, list[JobRecord]] = defaultdict(list)
        for job, lat, lng in (await self.session.execute(q)).all():
            out[job.cleaner_id].append(_record(job, lat, lng))
        return dict(out)

    async def active_for_cleaner(self, cleaner_id: int) -> list[JobRecord]:
        q = (
            select(Job)
            .where(Job.cleaner_id == cleaner_id)
            .where(Job.status.in_(list(ACTIVE_JOB_STATUSES)))
            .order_by(Job.id.asc())
        )
        rows = (await self.session.execute(q)).scalars().all()
        return [_record(j) for j in rows]

    async def add(
        self,
        *,
        booking_id: int | None,
        customer_id: int,
        cleaner_id: int,
        house_id: int,
        service_type: str,
        scheduled_date: datetime,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        duration_hours: float | None = None,
        amount: float | None = None,
        earnings: float = 0.0,
        status: JobStatus = JobStatus.scheduled,
        rating: float | None = None,
    ) -> Job:
        job = Job(
            booking_id=booking_id,
            customer_id=customer_id,
            cleaner_id=cleaner_id,
            house_id=house_id,
            service_type=service_type,
            status=status,
            scheduled_date=scheduled_date,
            start_time=start_time,
            end_time=end_time,
            duration_hours=duration_hours,
            amount=amount,
            earnings=earnings,
            rating=rating,
            created_at=datetime.utcnow(),
        )
        self.session.add(job)
        await self.session.flush()
        return job
