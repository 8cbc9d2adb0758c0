# swishmatch/entrypoints/api/routers/debug.py
from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_matching_service, http_error, require_api_key
from ....adapters.repos.events import MatchingEventRepository
from ....config import settings
from ....db import get_session
from ....domain.errors import MatchingError
from ....models import JobRun
from ....schemas import EligibilityExplainOut, ScoreExplainOut
from ....service_layer.use_cases.matching import MatchingService

router = APIRouter(tags=["debug"])


@router.get(
    "/debug/eligibility/{booking_id}/{cleaner_id}",
    response_model=EligibilityExplainOut,
    dependencies=[Depends(require_api_key)],
)
async def debug_eligibility(
    booking_id: int,
    cleaner_id: int,
    svc: MatchingService = Depends(get_matching_service),
) -> EligibilityExplainOut:
    try:
        ex = await svc.explain_eligibility(booking_id, cleaner_id)
    except MatchingError as e:
        raise http_error(e)
    return EligibilityExplainOut(
        booking_id=ex.booking_id,
        cleaner_id=ex.cleaner_id,
        eligible=ex.eligible,
        distance_mi=ex.distance_mi,
        radius_mi=ex.radius_mi,
        reasons=list(ex.reasons),
        failed_stages=list(ex.failed_stages),
    )


@router.get(
    "/debug/score/{booking_id}/{cleaner_id}",
    response_model=ScoreExplainOut,
    dependencies=[Depends(require_api_key)],
)
async def debug_score(
    booking_id: int,
    cleaner_id: int,
    svc: MatchingService = Depends(get_matching_service),
) -> ScoreExplainOut:
    try:
        ex = await svc.explain_score(booking_id, cleaner_id)
    except MatchingError as e:
        raise http_error(e)
    return ScoreExplainOut(
        booking_id=ex.booking_id,
        cleaner_id=ex.cleaner_id,
        total=ex.total,
        breakdown=ex.breakdown.as_dict(),
        drivers=dict(ex.drivers),
    )


@router.get("/debug/matching_events/{booking_id}", dependencies=[Depends(require_api_key)])
async def debug_matching_events(booking_id: int, session: AsyncSession = Depends(get_session)) -> dict[str, Any]:
    rows = await MatchingEventRepository(session).for_booking(booking_id)
    return {
        "items": [
            {
                "id": r.id,
                "event_type": r.event_type,
                "payload": json.loads(r.payload_json or "{}"),
                "created_at": str(r.created_at),
            }
            for r in rows
        ]
    }


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config() -> dict[str, Any]:
    """Running server's settings. Secrets are reported as set/unset only."""
    return {
        "ENV": settings.ENV,
        "SWISH_DB_URL": settings.SWISH_DB_URL,
        "CLEANER_EARNINGS_RATE": settings.CLEANER_EARNINGS_RATE,
        "DEFAULT_SERVICE_RADIUS_MI": settings.DEFAULT_SERVICE_RADIUS_MI,
        "BROADCAST_TOP_K": settings.BROADCAST_TOP_K,
        "LOW_SUPPLY_THRESHOLD": settings.LOW_SUPPLY_THRESHOLD,
        "CLAIM_REQUIRE_PLACED_STATUS": settings.CLAIM_REQUIRE_PLACED_STATUS,
        "API_KEY_SET": bool(settings.API_KEY),
    }


@router.get("/debug/job_runs/latest", dependencies=[Depends(require_api_key)])
async def debug_job_runs_latest(limit: int = Query(default=5, ge=1, le=50), session: AsyncSession = Depends(get_session)) -> dict[str, Any]:
    rows = (
        (await session.execute(select(JobRun).order_by(JobRun.id.desc()).limit(int(limit))))
        .scalars()
        .all()
    )

    def _row(r: JobRun) -> dict[str, Any]:
        return {
            "id": r.id,
            "job_name": r.job_name,
            "status": r.status.value,
            "started_at": str(r.started_at),
            "finished_at": str(r.finished_at) if r.finished_at else None,
            "error": (r.error or "")[:1200],
            "summary": json.loads(r.summary_json) if r.summary_json else None,
        }

    return {"items": [_row(r) for r in rows]}
