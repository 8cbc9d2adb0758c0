# swishmatch/adapters/repos/events.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import MatchingEvent


class MatchingEventRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, booking_id: int, event_type: str, payload: dict[str, Any] | None = None) -> MatchingEvent:
        ev = MatchingEvent(
            booking_id=booking_id,
            event_type=event_type,
            payload_json=json.dumps(payload or {}, default=str),
            created_at=datetime.utcnow(),
        )
        self.session.add(ev)
        await self.session.flush()
        return ev

    async def for_booking(self, booking_id: int) -> list[MatchingEvent]:
        q = select(MatchingEvent).where(MatchingEvent.booking_id == booking_id).order_by(MatchingEvent.id.asc())
        return list((await self.session.execute(q)).scalars().all())
