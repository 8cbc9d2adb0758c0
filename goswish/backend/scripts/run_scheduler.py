# scripts/run_scheduler.py
from __future__ import annotations

import argparse
import asyncio
import logging

from swishmatch.jobs.scheduler import build_scheduler, run_once


def _quiet_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
    )
    for name in ("httpx", "apscheduler", "aiosqlite", "sqlalchemy.engine"):
        logging.getLogger(name).setLevel(logging.WARNING)


async def main(once: bool) -> None:
    _quiet_logging()
    log = logging.getLogger(__name__)

    if once:
        await run_once()
        return

    scheduler = build_scheduler()
    scheduler.start()
    log.info("Scheduler started (sweep + outbox dispatch)")

    try:
        while True:
            await asyncio.sleep(3600)
    except (KeyboardInterrupt, asyncio.CancelledError):
        scheduler.shutdown()
        log.info("Scheduler stopped")


if __name__ == "__main__":
    ap = argparse.ArgumentParser()
    ap.add_argument("--once", action="store_true", help="Run one sweep and one dispatch, then exit")
    args = ap.parse_args()
    asyncio.run(main(args.once))
