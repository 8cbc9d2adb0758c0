# scripts/seed_demo.py
from __future__ import annotations

import argparse
import asyncio

from swishmatch.db import async_session, engine
from swishmatch.models import Base
from swishmatch.service_layer.demo_seed import seed_demo


async def _ensure_schema() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--enable", action="store_true", help="Enable the demo webhook integration (off by default)")
    parser.add_argument("--url", default="https://example.com", help="Demo webhook URL")
    args = parser.parse_args()

    await _ensure_schema()

    async with async_session() as session:
        res = await seed_demo(session, url=args.url, enable_demo_webhooks=args.enable)
        await session.commit()

    print(f"Seeded demo data: {res}")
    print(f"Try: POST /bookings/{res['booking_id']}/broadcast")


if __name__ == "__main__":
    asyncio.run(main())
