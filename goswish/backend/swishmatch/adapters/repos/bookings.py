# swishmatch/adapters/repos/bookings.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.timeslots import wall_clock
from ...domain.types import BookingSnapshot, BookingStatus, DateOption, Pricing, TimeSlot
from ...models import Booking


def parse_dt(raw: Any) -> datetime | None:
    """ISO string or datetime -> naive wall-clock datetime."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    else:
        dt = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    return wall_clock(dt)


def _parse_options(raw: str | None) -> tuple[DateOption, ...]:
    items = json.loads(raw or "[]")
    out: list[DateOption] = []
    for it in items:
        dt = parse_dt(it.get("date"))
        if dt is None:
            continue
        slot = it.get("time_slot") or it.get("timeSlot")
        try:
            ts = TimeSlot(str(slot).lower()) if slot else None
        except ValueError:
            ts = None
        prio = it.get("priority")
        out.append(DateOption(date=dt, time_slot=ts, priority=int(prio) if prio is not None else None))
    return tuple(out)


def dump_options(options: list[dict[str, Any]]) -> str:
    norm = []
    for o in options:
        d = o["date"]
        norm.append(
            {
                "date": d.isoformat() if isinstance(d, datetime) else str(d),
                "time_slot": o.get("time_slot"),
                "priority": o.get("priority"),
            }
        )
    return json.dumps(norm)


def to_snapshot(b: Booking) -> BookingSnapshot:
    return BookingSnapshot(
        id=b.id,
        customer_id=b.customer_id,
        house_id=b.house_id,
        service_type=(b.service_type or "").strip().lower(),
        date_options=_parse_options(b.date_options_json),
        pricing=Pricing(subtotal=b.subtotal, total=b.total, taxes=b.taxes),
        status=b.status,
        cleaner_id=b.cleaner_id,
        version=b.version or 0,
        add_ons=tuple(json.loads(b.add_ons_json or "[]")),
    )


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, booking_id: int) -> BookingSnapshot | None:
        q = select(Booking).where(Booking.id == booking_id)
        row = (await self.session.execute(q)).scalars().first()
        return to_snapshot(row) if row else None

    async def compare_and_swap(
        self,
        booking_id: int,
        *,
        expected_version: int,
        cleaner_id: int,
        new_status: BookingStatus = BookingStatus.confirmed,
        require_status: BookingStatus | None = None,
    ) -> bool:
        """
        Claim a booking iff it is still unassigned and unchanged since we read it.

        Single conditional UPDATE; the WHERE clause is the whole concurrency
        contract. Returns True iff exactly one row changed.
        """
        now = datetime.utcnow()
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id)
            .where(Booking.cleaner_id.is_(None))
            .where(Booking.version == expected_version)
        )
        if require_status is not None:
            stmt = stmt.where(Booking.status == require_status)

        stmt = stmt.values(
            cleaner_id=cleaner_id,
            status=new_status,
            version=Booking.version + 1,
            accepted_at=now,
            updated_at=now,
        ).execution_options(synchronize_session=False)

        res = await self.session.execute(stmt)
        return res.rowcount == 1

    async def list_unclaimed(self, limit: int = 100) -> list[BookingSnapshot]:
        q = (
            select(Booking)
            .where(Booking.status == BookingStatus.placed)
            .where(Booking.cleaner_id.is_(None))
            .order_by(Booking.id.asc())
            .limit(limit)
        )
        rows = (await self.session.execute(q)).scalars().all()
        return [to_snapshot(r) for r in rows]

    async def count_open(self) -> int:
        q = (
            select(func.count(Booking.id))
            .where(Booking.status == BookingStatus.placed)
            .where(Booking.cleaner_id.is_(None))
        )
        return int((await self.session.execute(q)).scalar_one())

    async def add(
        self,
        *,
        customer_id: int,
        house_id: int,
        service_type: str,
        date_options: list[dict[str, Any]],
        subtotal: float | None = None,
        total: float | None = None,
        taxes: float | None = None,
        add_ons: list[str] | None = None,
    ) -> Booking:
        b = Booking(
            customer_id=customer_id,
            house_id=house_id,
            service_type=service_type,
            date_options_json=dump_options(date_options),
            add_ons_json=json.dumps(add_ons or []),
            subtotal=subtotal,
            total=total,
            taxes=taxes,
            status=BookingStatus.placed,
            version=0,
        )
        self.session.add(b)
        await self.session.flush()
        return b
