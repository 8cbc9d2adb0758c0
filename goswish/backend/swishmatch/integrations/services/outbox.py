# swishmatch/integrations/services/outbox.py
from __future__ import annotations

import asyncio
import json
import logging
import random
from datetime import datetime, timedelta
from typing import Any, Sequence

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import Settings, settings as default_settings
from ...models import Integration, IntegrationType, OutboxEvent, OutboxStatus
from ..base import EventSink
from ..webhook import WebhookSink

log = logging.getLogger(__name__)

EVENT_BOOKING_CLAIMED = "booking.claimed"
EVENT_BOOKING_BROADCAST = "booking.broadcast"


async def enqueue_event(session: AsyncSession, event_type: str, payload: dict[str, Any]) -> OutboxEvent:
    """Written in the caller's transaction; delivered later by dispatch_pending_events."""
    ev = OutboxEvent(
        event_type=event_type,
        payload_json=json.dumps(payload, default=str),
        status=OutboxStatus.pending,
        attempts=0,
        last_error=None,
        next_attempt_at=None,
        created_at=datetime.utcnow(),
    )
    session.add(ev)
    await session.flush()
    return ev


async def build_sinks(session: AsyncSession, cfg: Settings | None = None) -> list[EventSink]:
    cfg = cfg or default_settings
    sinks: list[EventSink] = []
    rows = (await session.execute(select(Integration).where(Integration.enabled == True))).scalars().all()  # noqa: E712
    for integ in rows:
        if integ.type != IntegrationType.webhook:
            continue
        conf = json.loads(integ.config_json or "{}")
        url = conf.get("url")
        if not url:
            continue
        sinks.append(WebhookSink(url=url, secret=conf.get("secret"), timeout_s=cfg.WEBHOOK_TIMEOUT_S))
    return sinks


def compute_backoff_seconds(attempts_after_increment: int, *, base: float, cap: float) -> float:
    """
    Exponential backoff with jitter.
    attempts_after_increment: 1,2,3,...
    """
    exp = base * (2 ** max(0, attempts_after_increment - 1))
    capped = min(exp, cap)
    jitter = random.uniform(0.0, min(base, capped))
    return capped + jitter


async def dispatch_pending_events(
    session: AsyncSession,
    batch_size: int | None = None,
    *,
    cfg: Settings | None = None,
    sinks: Sequence[EventSink] | None = None,
) -> dict[str, Any]:
    """
    Deliver pending outbox events to every enabled sink.
    No sinks -> no-op (events stay pending).
    Failures back off exponentially; at max attempts the event is marked failed.
    """
    cfg = cfg or default_settings
    batch_size = batch_size or cfg.SCHED_DISPATCH_BATCH_SIZE
    max_attempts = cfg.OUTBOX_MAX_ATTEMPTS
    rps = cfg.OUTBOX_WEBHOOK_RPS

    if sinks is None:
        sinks = await build_sinks(session, cfg)
    if not sinks:
        return {"delivered": 0, "failed": 0, "sinks": 0, "events": 0, "skipped_no_sinks": 1}

    now = datetime.utcnow()
    stmt = (
        select(OutboxEvent)
        .where(OutboxEvent.status == OutboxStatus.pending)
        .where(OutboxEvent.attempts < max_attempts)
        .where(or_(OutboxEvent.next_attempt_at.is_(None), OutboxEvent.next_attempt_at <= now))
        .order_by(OutboxEvent.id.asc())
        .limit(batch_size)
    )
    events = (await session.execute(stmt)).scalars().all()

    delivered = 0
    failed = 0
    delay = 0.0 if rps <= 0 else (1.0 / rps)

    for ev in events:
        payload = json.loads(ev.payload_json)

        ok_all = True
        last_err = None
        for sink in sinks:
            res = await sink.deliver(ev.event_type, {"event_id": ev.id, **payload})
            if delay > 0:
                await asyncio.sleep(delay)
            if not res.ok:
                ok_all = False
                last_err = res.error

        ev.attempts += 1
        ev.last_error = last_err

        if ok_all:
            ev.status = OutboxStatus.delivered
            ev.delivered_at = datetime.utcnow()
            ev.next_attempt_at = None
            delivered += 1
        elif ev.attempts >= max_attempts:
            ev.status = OutboxStatus.failed
            ev.next_attempt_at = None
            failed += 1
            log.warning("outbox event %s (%s) gave up after %s attempts: %s", ev.id, ev.event_type, ev.attempts, last_err)
        else:
            backoff_s = compute_backoff_seconds(
                ev.attempts,
                base=cfg.OUTBOX_BACKOFF_BASE_SECONDS,
                cap=cfg.OUTBOX_BACKOFF_CAP_SECONDS,
            )
            ev.next_attempt_at = datetime.utcnow() + timedelta(seconds=backoff_s)

        await session.flush()

    return {
        "delivered": delivered,
        "failed": failed,
        "sinks": len(sinks),
        "events": len(events),
        "skipped_no_sinks": 0,
    }
