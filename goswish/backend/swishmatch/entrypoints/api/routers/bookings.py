# swishmatch/entrypoints/api/routers/bookings.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ....adapters.repos.notifications import NotificationRepository
from ....domain.errors import MatchingError
from ....schemas import (
    AcceptIn,
    BroadcastOut,
    CandidateOut,
    EligibilityOut,
    ExclusionOut,
    FunnelOut,
    JobOut,
    OfferOut,
    RankedOut,
    RankingOut,
)
from ....service_layer.use_cases.broadcast import BroadcastResult, OfferBroadcaster
from ....service_layer.use_cases.claim import ClaimCoordinator, JobDetails
from ....service_layer.use_cases.matching import MatchingService
from ..deps import get_broadcaster, get_claim_coordinator, get_matching_service, get_session, http_error

router = APIRouter(tags=["bookings"])


def _broadcast_out(res: BroadcastResult) -> BroadcastOut:
    return BroadcastOut(
        booking_id=res.booking_id,
        skipped=res.skipped,
        offers=[
            OfferOut(
                notification_id=o.notification_id,
                cleaner_id=o.cleaner_id,
                rank=o.rank,
                score=o.score,
                match_tier=o.match_tier,
                earnings_estimate=o.earnings_estimate,
            )
            for o in res.offers
        ],
        funnel=FunnelOut(**res.stats.as_dict()) if res.stats else None,
        low_supply=res.low_supply,
        search_radius_mi=res.search_radius_mi,
        eligible_count=res.eligible_count,
        replaced_offers=res.replaced_offers,
        market_condition=res.market_condition,
        surge_multiplier=res.surge_multiplier,
        expansions=res.expansions,
    )


@router.get("/bookings/{booking_id}/eligible", response_model=EligibilityOut)
async def eligible_cleaners(
    booking_id: int,
    radius: float | None = Query(None, gt=0, description="Search radius override (miles)"),
    svc: MatchingService = Depends(get_matching_service),
) -> EligibilityOut:
    try:
        res = await svc.find_eligible(booking_id, radius_override=radius)
    except MatchingError as e:
        raise http_error(e)

    return EligibilityOut(
        booking_id=res.booking_id,
        candidates=[
            CandidateOut(cleaner_id=c.cleaner.id, name=c.cleaner.name, distance_mi=c.distance_mi, radius_mi=c.radius_mi)
            for c in res.candidates
        ],
        excluded=[ExclusionOut(cleaner_id=x.cleaner_id, stage=x.stage, reason=x.reason) for x in res.excluded],
        funnel=FunnelOut(**res.stats.as_dict()),
        low_supply=res.low_supply,
        warnings=list(res.warnings),
    )


@router.get("/bookings/{booking_id}/ranked", response_model=RankingOut)
async def ranked_cleaners(
    booking_id: int,
    limit: int | None = Query(None, ge=1, le=500),
    svc: MatchingService = Depends(get_matching_service),
) -> RankingOut:
    try:
        res = await svc.rank(booking_id, limit=limit)
    except MatchingError as e:
        raise http_error(e)

    return RankingOut(
        booking_id=booking_id,
        ranked=[
            RankedOut(
                rank=r.rank,
                cleaner_id=r.cleaner_id,
                name=r.candidate.cleaner.name,
                distance_mi=r.candidate.distance_mi,
                total=r.score.total,
                breakdown=r.score.breakdown.as_dict(),
            )
            for r in res.ranked
        ],
        funnel=FunnelOut(**res.eligibility.stats.as_dict()),
        low_supply=res.eligibility.low_supply,
    )


@router.post("/bookings/{booking_id}/broadcast", response_model=BroadcastOut)
async def broadcast_booking(
    booking_id: int,
    expand: bool = Query(False, description="Widen the radius while supply is low"),
    broadcaster: OfferBroadcaster = Depends(get_broadcaster),
) -> BroadcastOut:
    try:
        if expand:
            res = await broadcaster.broadcast_with_expansion(booking_id)
        else:
            res = await broadcaster.broadcast(booking_id)
    except MatchingError as e:
        raise http_error(e)
    return _broadcast_out(res)


@router.get("/bookings/{booking_id}/offers", response_model=list[OfferOut])
async def booking_offers(booking_id: int, session: AsyncSession = Depends(get_session)) -> list[OfferOut]:
    """Outstanding job offers for a booking, best rank first. Empty once claimed."""
    rows = await NotificationRepository(session).list_offers(booking_id)
    return [
        OfferOut(
            notification_id=n.id,
            cleaner_id=n.cleaner_id,
            rank=n.rank,
            score=n.score,
            match_tier=n.match_tier,
            earnings_estimate=n.earnings_estimate,
        )
        for n in rows
    ]


@router.post("/bookings/{booking_id}/accept", response_model=JobOut)
async def accept_booking(
    booking_id: int,
    body: AcceptIn,
    coordinator: ClaimCoordinator = Depends(get_claim_coordinator),
) -> JobOut:
    details = JobDetails(date=body.date, start_time=body.start_time, end_time=body.end_time)
    try:
        job = await coordinator.accept(booking_id, body.cleaner_id, details)
    except MatchingError as e:
        raise http_error(e)

    return JobOut(
        job_id=job.job_id,
        booking_id=job.booking_id,
        cleaner_id=job.cleaner_id,
        customer_id=job.customer_id,
        house_id=job.house_id,
        service_type=job.service_type,
        status=job.status.value,
        scheduled_date=job.scheduled_date,
        start_time=job.start_time,
        end_time=job.end_time,
        duration_hours=job.duration_hours,
        amount=job.amount,
        earnings=job.earnings,
    )
