# tests/test_outbox.py
import hashlib
import hmac
import json

import pytest
from sqlalchemy import select

from swishmatch.integrations.base import SinkDeliveryResult
from swishmatch.integrations.services.outbox import (
    EVENT_BOOKING_CLAIMED,
    build_sinks,
    compute_backoff_seconds,
    dispatch_pending_events,
    enqueue_event,
)
from swishmatch.integrations.webhook import WebhookSink
from swishmatch.models import Integration, IntegrationType, OutboxEvent, OutboxStatus


class RecordingSink:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.calls = []

    async def deliver(self, event_type, payload):
        self.calls.append((event_type, payload))
        return SinkDeliveryResult(ok=self.ok, error=None if self.ok else "HTTP 500: nope")


async def _enqueue_one(session_maker):
    async with session_maker() as session:
        ev = await enqueue_event(session, EVENT_BOOKING_CLAIMED, {"booking_id": 1, "cleaner_id": 2})
        await session.commit()
        return ev.id


@pytest.mark.asyncio
async def test_no_sinks_is_a_noop(async_session_maker, cfg):
    ev_id = await _enqueue_one(async_session_maker)

    async with async_session_maker() as session:
        res = await dispatch_pending_events(session, cfg=cfg)
        await session.commit()
    assert res["skipped_no_sinks"] == 1

    async with async_session_maker() as session:
        ev = await session.get(OutboxEvent, ev_id)
        assert ev.status == OutboxStatus.pending
        assert ev.attempts == 0


@pytest.mark.asyncio
async def test_delivers_to_sink(async_session_maker, cfg):
    ev_id = await _enqueue_one(async_session_maker)
    sink = RecordingSink()

    async with async_session_maker() as session:
        res = await dispatch_pending_events(session, cfg=cfg, sinks=[sink])
        await session.commit()

    assert res["delivered"] == 1
    assert sink.calls == [(EVENT_BOOKING_CLAIMED, {"event_id": ev_id, "booking_id": 1, "cleaner_id": 2})]

    async with async_session_maker() as session:
        ev = await session.get(OutboxEvent, ev_id)
        assert ev.status == OutboxStatus.delivered
        assert ev.delivered_at is not None


@pytest.mark.asyncio
async def test_failure_backs_off_then_gives_up(async_session_maker, cfg):
    ev_id = await _enqueue_one(async_session_maker)

    async with async_session_maker() as session:
        await dispatch_pending_events(session, cfg=cfg, sinks=[RecordingSink(ok=False)])
        await session.commit()

    async with async_session_maker() as session:
        ev = await session.get(OutboxEvent, ev_id)
        assert ev.status == OutboxStatus.pending
        assert ev.attempts == 1
        assert ev.next_attempt_at is not None
        assert ev.last_error.startswith("HTTP 500")

    one_shot = cfg.model_copy(update={"OUTBOX_MAX_ATTEMPTS": 1})
    ev2 = await _enqueue_one(async_session_maker)
    async with async_session_maker() as session:
        res = await dispatch_pending_events(session, cfg=one_shot, sinks=[RecordingSink(ok=False)])
        await session.commit()
    assert res["failed"] == 1

    async with async_session_maker() as session:
        assert (await session.get(OutboxEvent, ev2)).status == OutboxStatus.failed


def test_backoff_is_capped():
    assert 5.0 <= compute_backoff_seconds(1, base=5, cap=3600) <= 10.0
    assert 3600.0 <= compute_backoff_seconds(20, base=5, cap=3600) <= 3605.0


@pytest.mark.asyncio
async def test_build_sinks_only_enabled_webhooks(async_session_maker, cfg):
    async with async_session_maker() as session:
        session.add(
            Integration(
                name="on",
                type=IntegrationType.webhook,
                enabled=True,
                config_json=json.dumps({"url": "https://hooks.example.com/a", "secret": "s"}),
            )
        )
        session.add(
            Integration(
                name="off",
                type=IntegrationType.webhook,
                enabled=False,
                config_json=json.dumps({"url": "https://hooks.example.com/b"}),
            )
        )
        session.add(Integration(name="nourl", type=IntegrationType.webhook, enabled=True, config_json="{}"))
        await session.commit()

        sinks = await build_sinks(session, cfg)

    assert len(sinks) == 1
    assert sinks[0].url == "https://hooks.example.com/a"


def test_webhook_signature():
    body = b'{"type": "booking.claimed", "data": {}}'
    sink = WebhookSink(url="https://hooks.example.com", secret="topsecret")
    assert sink.sign(body) == hmac.new(b"topsecret", body, hashlib.sha256).hexdigest()
    assert WebhookSink(url="https://hooks.example.com").sign(body) is None


@pytest.mark.asyncio
async def test_enqueue_is_transactional(async_session_maker):
    async with async_session_maker() as session:
        await enqueue_event(session, EVENT_BOOKING_CLAIMED, {"booking_id": 1})
        await session.rollback()

    async with async_session_maker() as session:
        rows = (await session.execute(select(OutboxEvent))).scalars().all()
    assert rows == []
