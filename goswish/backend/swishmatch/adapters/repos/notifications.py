# swishmatch/adapters/repos/notifications.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import Notification, NotificationType


class NotificationRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        *,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        related_id: int | None = None,
        cleaner_id: int | None = None,
        rank: int | None = None,
        score: float | None = None,
        match_tier: str | None = None,
        earnings_estimate: float | None = None,
    ) -> Notification:
        n = Notification(
            user_id=user_id,
            cleaner_id=cleaner_id,
            type=type,
            title=title,
            message=message,
            related_id=related_id,
            rank=rank,
            score=score,
            match_tier=match_tier,
            earnings_estimate=earnings_estimate,
            read=False,
            created_at=datetime.utcnow(),
        )
        self.session.add(n)
        await self.session.flush()
        return n

    async def list_offers(self, booking_id: int) -> list[Notification]:
        q = (
            select(Notification)
            .where(Notification.type == NotificationType.job_offer)
            .where(Notification.related_id == booking_id)
            .order_by(Notification.rank.asc(), Notification.id.asc())
        )
        return list((await self.session.execute(q)).scalars().all())

    async def count_offers(self, booking_id: int) -> int:
        q = (
            select(func.count(Notification.id))
            .where(Notification.type == NotificationType.job_offer)
            .where(Notification.related_id == booking_id)
        )
        return int((await self.session.execute(q)).scalar_one())

    async def delete_job_offers(self, booking_id: int) -> int:
        """Remove every job_offer for this booking; other bookings are untouched."""
        stmt = (
            delete(Notification)
            .where(Notification.type == NotificationType.job_offer)
            .where(Notification.related_id == booking_id)
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(stmt)
        return int(res.rowcount or 0)
