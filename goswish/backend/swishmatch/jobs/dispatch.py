# swishmatch/jobs/dispatch.py
from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..integrations.services.outbox import dispatch_pending_events


async def run_dispatch(session: AsyncSession, batch_size: int = 50, cfg: Settings | None = None) -> dict[str, Any]:
    return await dispatch_pending_events(session=session, batch_size=batch_size, cfg=cfg)
