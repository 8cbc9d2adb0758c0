# swishmatch/entrypoints/api/routers/integrations.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ....models import Integration, IntegrationType
from ....schemas import IntegrationCreate, IntegrationOut, IntegrationPatch
from ..deps import get_session, require_api_key

router = APIRouter(tags=["integrations"])


def _out(integ: Integration) -> IntegrationOut:
    conf = json.loads(integ.config_json or "{}")
    return IntegrationOut(
        id=integ.id,
        name=integ.name,
        type=integ.type.value,
        enabled=integ.enabled,
        url=conf.get("url"),
        signed=bool(conf.get("secret")),
        created_at=integ.created_at,
    )


@router.post("/integrations", response_model=IntegrationOut, dependencies=[Depends(require_api_key)])
async def create_integration(
    body: IntegrationCreate,
    session: AsyncSession = Depends(get_session),
) -> IntegrationOut:
    """Register a webhook sink for booking.claimed / booking.broadcast events."""
    existing = (await session.execute(select(Integration).where(Integration.name == body.name))).scalars().first()
    if existing:
        raise HTTPException(status_code=409, detail="Integration name already exists. Use PATCH to update/disable.")

    integ = Integration(
        name=body.name,
        type=IntegrationType.webhook,
        enabled=body.enabled,
        config_json=json.dumps({"url": body.url, "secret": body.secret}),
    )
    session.add(integ)
    await session.commit()
    return _out(integ)


@router.patch("/integrations/{integration_id}", response_model=IntegrationOut, dependencies=[Depends(require_api_key)])
async def update_integration(
    integration_id: int,
    body: IntegrationPatch,
    session: AsyncSession = Depends(get_session),
) -> IntegrationOut:
    integ = await session.get(Integration, integration_id)
    if integ is None:
        raise HTTPException(status_code=404, detail="Integration not found")

    if body.enabled is not None:
        integ.enabled = body.enabled

    if body.url is not None or body.secret is not None:
        conf = json.loads(integ.config_json or "{}")
        if body.url is not None:
            conf["url"] = body.url
        if body.secret is not None:
            conf["secret"] = body.secret or None
        integ.config_json = json.dumps(conf)

    await session.commit()
    return _out(integ)


@router.get("/integrations", response_model=list[IntegrationOut], dependencies=[Depends(require_api_key)])
async def list_integrations(
    enabled: bool | None = Query(None, description="Only enabled (true) or disabled (false) sinks"),
    session: AsyncSession = Depends(get_session),
) -> list[IntegrationOut]:
    q = select(Integration).order_by(Integration.id.asc())
    if enabled is not None:
        q = q.where(Integration.enabled == enabled)
    rows = (await session.execute(q)).scalars().all()
    return [_out(i) for i in rows]
