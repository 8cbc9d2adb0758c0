# swishmatch/service_layer/use_cases/broadcast.py
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from ...config import Settings, settings as default_settings
from ...domain.eligibility import FunnelStats
from ...domain.policies import market_condition, match_tier, offer_earnings_estimate, surge_multiplier
from ...domain.types import BookingSnapshot, BookingStatus
from ...integrations.services.outbox import EVENT_BOOKING_BROADCAST, enqueue_event
from ...models import NotificationType
from ..unit_of_work import UnitOfWorkFactory, uow_factory as make_uow_factory
from .matching import Clock, MatchingEngine, load_match_context

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class OfferSummary:
    notification_id: int
    cleaner_id: int
    user_id: int
    rank: int
    score: float
    match_tier: str
    earnings_estimate: float


@dataclass(frozen=True)
class BroadcastResult:
    booking_id: int
    offers: tuple[OfferSummary, ...] = ()
    skipped: str | None = None
    stats: FunnelStats | None = None
    warnings: tuple[str, ...] = ()
    search_radius_mi: float | None = None
    eligible_count: int = 0
    replaced_offers: int = 0
    market_condition: str | None = None
    surge_multiplier: float | None = None
    expansions: int = 0

    @property
    def low_supply(self) -> bool:
        return bool(self.warnings)


def offer_message(booking: BookingSnapshot, earnings: float, score: float) -> str:
    return f"New {booking.service_type} job near you (${earnings:.0f}). Match score: {score:g}%"


class OfferBroadcaster:
    """
    Fresh eligibility + scoring on every call, then one job_offer notification
    per top-K candidate. Re-broadcasting replaces the booking's earlier offers.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory | None = None,
        cfg: Settings | None = None,
        *,
        engine: MatchingEngine | None = None,
        clock: Clock = datetime.utcnow,
    ) -> None:
        self.cfg = cfg or default_settings
        self.uow_factory = uow_factory or make_uow_factory(cfg=self.cfg)
        self.engine = engine or MatchingEngine(self.cfg)
        self.clock = clock

    async def broadcast(self, booking_id: int, *, radius_override: float | None = None) -> BroadcastResult:
        cfg = self.cfg
        async with self.uow_factory() as uow:
            repos = uow.repos
            ctx = await load_match_context(repos, booking_id)
            booking = ctx.booking

            if booking.cleaner_id is not None:
                log.info("broadcast skipped booking=%s: already claimed by cleaner=%s", booking.id, booking.cleaner_id)
                return BroadcastResult(booking_id=booking.id, skipped="already_claimed")
            if booking.status != BookingStatus.placed:
                log.info("broadcast skipped booking=%s: status=%s", booking.id, booking.status.value)
                return BroadcastResult(booking_id=booking.id, skipped=f"status_{booking.status.value}")

            result = self.engine.evaluate(ctx, self.clock(), limit=cfg.BROADCAST_TOP_K, radius_override=radius_override)
            elig = result.eligibility

            replaced = await repos.notifications.delete_job_offers(booking.id)

            earnings = offer_earnings_estimate(booking.pricing, ctx.app_settings.cleaner_earnings_rate)
            offers: list[OfferSummary] = []
            for rc in result.ranked:
                tier = match_tier(
                    rc.score.total,
                    premier=cfg.MATCH_TIER_PREMIER,
                    highly_recommended=cfg.MATCH_TIER_HIGHLY_RECOMMENDED,
                )
                cleaner = rc.candidate.cleaner
                n = await repos.notifications.add(
                    user_id=cleaner.user_id,
                    cleaner_id=cleaner.id,
                    type=NotificationType.job_offer,
                    title=f"New Match: {tier}",
                    message=offer_message(booking, earnings, rc.score.total),
                    related_id=booking.id,
                    rank=rc.rank,
                    score=rc.score.total,
                    match_tier=tier,
                    earnings_estimate=earnings,
                )
                offers.append(
                    OfferSummary(
                        notification_id=n.id,
                        cleaner_id=cleaner.id,
                        user_id=cleaner.user_id,
                        rank=rc.rank,
                        score=rc.score.total,
                        match_tier=tier,
                        earnings_estimate=earnings,
                    )
                )

            open_bookings = await repos.bookings.count_open()
            eligible = len(elig.candidates)
            condition = market_condition(eligible, open_bookings)
            surge = surge_multiplier(eligible, open_bookings)

            await repos.events.record(
                booking.id,
                "eligible_found",
                {"funnel": elig.stats.as_dict(), "radius_override_mi": radius_override},
            )
            await repos.events.record(
                booking.id,
                "scored",
                {
                    "top": [{"cleaner_id": rc.cleaner_id, "total": rc.score.total} for rc in result.ranked[:3]],
                    "failures": [f.cleaner_id for f in result.scoring_failures],
                },
            )
            await repos.events.record(
                booking.id,
                "broadcast",
                {
                    "offers": [{"cleaner_id": o.cleaner_id, "rank": o.rank, "score": o.score} for o in offers],
                    "replaced": replaced,
                    "market_condition": condition,
                },
            )
            await enqueue_event(
                uow.session,
                EVENT_BOOKING_BROADCAST,
                {
                    "booking_id": booking.id,
                    "offer_count": len(offers),
                    "eligible_count": eligible,
                    "low_supply": elig.low_supply,
                },
            )

            log.info(
                "broadcast booking=%s offers=%s eligible=%s replaced=%s market=%s",
                booking.id,
                len(offers),
                eligible,
                replaced,
                condition,
            )

            search_radius = radius_override if radius_override is not None else ctx.app_settings.default_service_radius_mi
            return BroadcastResult(
                booking_id=booking.id,
                offers=tuple(offers),
                stats=elig.stats,
                warnings=elig.warnings,
                search_radius_mi=search_radius,
                eligible_count=eligible,
                replaced_offers=replaced,
                market_condition=condition,
                surge_multiplier=surge,
            )

    async def broadcast_with_expansion(self, booking_id: int, *, max_expansions: int | None = None) -> BroadcastResult:
        """
        Broadcast, then widen the radius by one step and re-broadcast while supply
        stays low, up to max_expansions extra rounds.
        """
        if max_expansions is None:
            max_expansions = self.cfg.SWEEP_MAX_EXPANSIONS

        result = await self.broadcast(booking_id)
        expansions = 0
        filt = self.engine.eligibility_filter()
        while result.skipped is None and result.low_supply and expansions < max_expansions:
            radius = filt.expand_radius(result.search_radius_mi or self.cfg.DEFAULT_SERVICE_RADIUS_MI)
            expansions += 1
            log.info("low supply booking=%s; expanding radius to %s mi (round %s)", booking_id, radius, expansions)
            result = await self.broadcast(booking_id, radius_override=radius)

        return replace(result, expansions=expansions)
