# tests/test_integrations.py
import json

import httpx
import pytest
from sqlalchemy.exc import IntegrityError

from swishmatch.entrypoints.api import deps
from swishmatch.entrypoints.fastapi_app import create_app
from swishmatch.integrations.services.outbox import build_sinks
from swishmatch.models import Integration, IntegrationType


@pytest.fixture
async def client(async_session_maker):
    app = create_app(create_tables=False)

    async def _session():
        async with async_session_maker() as session:
            yield session

    app.dependency_overrides[deps.get_session] = _session
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.mark.asyncio
async def test_integration_name_unique_soft_guard(client, async_session_maker):
    body = {"name": "dup", "url": "https://hooks.example.com", "secret": "x"}
    r = await client.post("/integrations", json=body)
    assert r.status_code == 200
    assert r.json()["signed"] is True

    r = await client.post("/integrations", json=body)
    assert r.status_code == 409

    # and the DB constraint backs it up
    async with async_session_maker() as session:
        session.add(
            Integration(
                name="dup",
                type=IntegrationType.webhook,
                enabled=True,
                config_json=json.dumps({"url": "https://hooks.example.com"}),
            )
        )
        with pytest.raises(IntegrityError):
            await session.commit()


@pytest.mark.asyncio
async def test_disable_integration_flag(client, async_session_maker, cfg):
    r = await client.post("/integrations", json={"name": "toggle", "url": "https://hooks.example.com"})
    integ_id = r.json()["id"]

    async with async_session_maker() as session:
        assert len(await build_sinks(session, cfg)) == 1

    r = await client.patch(f"/integrations/{integ_id}", json={"enabled": False})
    assert r.status_code == 200
    assert r.json()["enabled"] is False

    async with async_session_maker() as session:
        assert await build_sinks(session, cfg) == []

    r = await client.get("/integrations", params={"enabled": "false"})
    assert [i["name"] for i in r.json()] == ["toggle"]

    r = await client.patch("/integrations/999", json={"enabled": True})
    assert r.status_code == 404
