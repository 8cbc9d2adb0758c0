# swishmatch/entrypoints/api/routers/jobs.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_broadcaster, require_api_key
from ....db import get_session
from ....jobs.dispatch import run_dispatch
from ....jobs.sweep import sweep_unclaimed_bookings
from ....schemas import DispatchResult, SweepResult
from ....service_layer.jobruns import finish_job_fail, finish_job_success, start_job
from ....service_layer.use_cases.broadcast import OfferBroadcaster

router = APIRouter(tags=["jobs"])


@router.post("/jobs/dispatch", response_model=DispatchResult, dependencies=[Depends(require_api_key)])
async def dispatch_outbox(
    batch_size: int = Query(50, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
) -> DispatchResult:
    jr = await start_job(session, "dispatch_api")
    try:
        result = await run_dispatch(session=session, batch_size=batch_size)
        await finish_job_success(session, jr, result)
        await session.commit()
        return DispatchResult(**result)
    except Exception as e:
        await finish_job_fail(session, jr, e)
        await session.commit()
        raise


@router.post("/jobs/sweep", response_model=SweepResult, dependencies=[Depends(require_api_key)])
async def sweep_bookings(
    limit: int = Query(100, ge=1, le=1000),
    broadcaster: OfferBroadcaster = Depends(get_broadcaster),
) -> SweepResult:
    result = await sweep_unclaimed_bookings(
        broadcaster,
        uow_factory=broadcaster.uow_factory,
        cfg=broadcaster.cfg,
        limit=limit,
    )
    return SweepResult(**result)
