# swishmatch/jobs/scheduler.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import func, or_, select

from ..config import settings
from ..db import async_session
from ..models import Integration, OutboxEvent, OutboxStatus
from ..service_layer.jobruns import finish_job_fail, finish_job_success, start_job
from .dispatch import run_dispatch
from .sweep import sweep_unclaimed_bookings

log = logging.getLogger(__name__)


async def _run_sweep() -> None:
    async with async_session() as session:
        jr = await start_job(session, "sweep")
        await session.commit()

    try:
        summary = await sweep_unclaimed_bookings()
    except Exception as e:
        log.exception("sweep job failed")
        async with async_session() as session:
            jr = await session.merge(jr)
            await finish_job_fail(session, jr, e)
            await session.commit()
        return

    async with async_session() as session:
        jr = await session.merge(jr)
        await finish_job_success(session, jr, summary)
        await session.commit()


async def _run_dispatch_quiet() -> None:
    """
    Nothing enabled or nothing due -> return without opening a write transaction.
    """
    async with async_session() as session:
        enabled_sinks = (
            await session.execute(select(func.count()).select_from(Integration).where(Integration.enabled == True))  # noqa: E712
        ).scalar_one()
        if int(enabled_sinks) == 0:
            return

        pending = (
            await session.execute(
                select(func.count())
                .select_from(OutboxEvent)
                .where(OutboxEvent.status == OutboxStatus.pending)
                .where(or_(OutboxEvent.next_attempt_at.is_(None), OutboxEvent.next_attempt_at <= datetime.utcnow()))
            )
        ).scalar_one()
        if int(pending) == 0:
            return

    async with async_session() as session:
        await run_dispatch(session=session, batch_size=settings.SCHED_DISPATCH_BATCH_SIZE)
        await session.commit()


async def run_once() -> None:
    """One sweep then one dispatch, in that order (cron / manual use)."""
    await _run_sweep()
    await _run_dispatch_quiet()


def build_scheduler() -> AsyncIOScheduler:
    sched = AsyncIOScheduler()

    sched.add_job(
        lambda: asyncio.create_task(_run_sweep()),
        "interval",
        minutes=settings.SWEEP_INTERVAL_MINUTES,
        id="sweep_unclaimed",
    )
    sched.add_job(
        lambda: asyncio.create_task(_run_dispatch_quiet()),
        "interval",
        minutes=settings.SCHED_DISPATCH_INTERVAL_MINUTES,
        id="outbox_dispatch",
    )
    return sched
