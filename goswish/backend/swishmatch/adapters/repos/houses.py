# swishmatch/adapters/repos/houses.py
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.types import GeoPoint, HouseSnapshot
from ...models import House


def to_snapshot(h: House) -> HouseSnapshot:
    loc = None
    if h.lat is not None and h.lng is not None:
        loc = GeoPoint(lat=h.lat, lng=h.lng)
    return HouseSnapshot(
        id=h.id,
        owner_id=h.owner_id,
        location=loc,
        street=h.street,
        city=h.city,
        state=h.state,
        sqft=h.sqft,
        bedrooms=h.bedrooms,
        bathrooms=h.bathrooms,
        has_pets=bool(h.has_pets),
    )


class HouseRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, house_id: int) -> HouseSnapshot | None:
        row = (await self.session.execute(select(House).where(House.id == house_id))).scalars().first()
        return to_snapshot(row) if row else None
