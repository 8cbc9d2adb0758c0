# swishmatch/service_layer/use_cases/matching.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Mapping, Sequence

from ...adapters.repos.sqlalchemy_repos import SqlAlchemyRepos
from ...config import Settings, settings as default_settings
from ...domain.eligibility import (
    EligibilityExplanation,
    EligibilityFilter,
    EligibilityResult,
    EligibleCandidate,
    IneligibleCandidate,
)
from ...domain.errors import BookingNotFound, CleanerNotFound, HouseNotFound
from ...domain.geo import distance_miles
from ...domain.ranking import CandidateRanker, RankedCandidate
from ...domain.scoring import MatchScore, ScoreExplanation, ScoringEngine
from ...domain.types import AppSettingsSnapshot, BookingSnapshot, CleanerProfile, HouseSnapshot, JobRecord
from ..unit_of_work import UnitOfWorkFactory, uow_factory as make_uow_factory

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class MatchContext:
    """Everything eligibility + scoring need, read in one unit of work."""
    booking: BookingSnapshot
    house: HouseSnapshot
    pool: Sequence[CleanerProfile]
    jobs: Mapping[int, Sequence[JobRecord]]
    app_settings: AppSettingsSnapshot


@dataclass(frozen=True)
class RankingResult:
    eligibility: EligibilityResult
    ranked: list[RankedCandidate]
    # candidates that passed eligibility but could not be scored
    scoring_failures: tuple[IneligibleCandidate, ...] = ()


async def load_match_context(repos: SqlAlchemyRepos, booking_id: int) -> MatchContext:
    booking = await repos.bookings.get(booking_id)
    if booking is None:
        raise BookingNotFound(booking_id)

    house = await repos.houses.get(booking.house_id)
    if house is None:
        raise HouseNotFound(booking.house_id)

    pool = await repos.cleaners.list_pool()
    jobs = await repos.jobs.by_cleaner(c.id for c in pool)
    app_settings = await repos.app_settings.get()
    return MatchContext(booking=booking, house=house, pool=pool, jobs=jobs, app_settings=app_settings)


class MatchingEngine:
    """
    Eligibility -> scoring -> ranking over an already-loaded MatchContext.
    No I/O; the service classes own the units of work.
    """

    def __init__(
        self,
        cfg: Settings | None = None,
        *,
        scoring: ScoringEngine | None = None,
        ranker: CandidateRanker | None = None,
    ) -> None:
        self.cfg = cfg or default_settings
        self.scoring = scoring or ScoringEngine()
        self.ranker = ranker or CandidateRanker()

    def eligibility_filter(self, app_settings: AppSettingsSnapshot | None = None) -> EligibilityFilter:
        radius = app_settings.default_service_radius_mi if app_settings else self.cfg.DEFAULT_SERVICE_RADIUS_MI
        return EligibilityFilter(
            default_radius_mi=radius,
            low_supply_threshold=self.cfg.LOW_SUPPLY_THRESHOLD,
            expansion_step_mi=self.cfg.RADIUS_EXPANSION_STEP_MI,
        )

    def find_eligible(self, ctx: MatchContext, *, radius_override: float | None = None) -> EligibilityResult:
        return self.eligibility_filter(ctx.app_settings).find_eligible(
            ctx.booking,
            ctx.house,
            ctx.pool,
            ctx.jobs,
            radius_override=radius_override,
        )

    def evaluate(
        self,
        ctx: MatchContext,
        now: datetime,
        *,
        limit: int | None = None,
        radius_override: float | None = None,
    ) -> RankingResult:
        elig = self.find_eligible(ctx, radius_override=radius_override)

        scored: list[tuple[EligibleCandidate, MatchScore]] = []
        failures: list[IneligibleCandidate] = []
        for cand in elig.candidates:
            try:
                s = self.scoring.score(cand, ctx.booking, ctx.house, ctx.jobs.get(cand.cleaner.id, ()), now)
            except Exception as e:
                log.warning(
                    "scoring failed for cleaner=%s booking=%s; excluded",
                    cand.cleaner.id,
                    ctx.booking.id,
                    exc_info=True,
                )
                failures.append(IneligibleCandidate(cleaner_id=cand.cleaner.id, stage="scoring", reason=f"error: {e}"))
                continue
            scored.append((cand, s))

        ranked = self.ranker.rank(scored, limit=limit)
        return RankingResult(eligibility=elig, ranked=ranked, scoring_failures=tuple(failures))

    def candidate_for(self, ctx: MatchContext, cleaner: CleanerProfile) -> EligibleCandidate:
        """Distance/radius annotation for a single cleaner, eligible or not (debug scoring)."""
        filt = self.eligibility_filter(ctx.app_settings)
        return EligibleCandidate(
            cleaner=cleaner,
            distance_mi=round(distance_miles(cleaner.base_location, ctx.house.location), 1),
            radius_mi=filt.radius_for(cleaner),
        )


class MatchingService:
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

    async def _context(self, booking_id: int) -> MatchContext:
        async with self.uow_factory() as uow:
            return await load_match_context(uow.repos, booking_id)

    async def find_eligible(self, booking_id: int, *, radius_override: float | None = None) -> EligibilityResult:
        ctx = await self._context(booking_id)
        return self.engine.find_eligible(ctx, radius_override=radius_override)

    async def rank(
        self,
        booking_id: int,
        *,
        limit: int | None = None,
        radius_override: float | None = None,
    ) -> RankingResult:
        ctx = await self._context(booking_id)
        return self.engine.evaluate(ctx, self.clock(), limit=limit, radius_override=radius_override)

    async def explain_eligibility(self, booking_id: int, cleaner_id: int) -> EligibilityExplanation:
        ctx = await self._context(booking_id)
        cleaner = _pick(ctx, cleaner_id)
        return self.engine.eligibility_filter(ctx.app_settings).explain(
            ctx.booking,
            ctx.house,
            cleaner,
            ctx.jobs.get(cleaner.id, ()),
        )

    async def explain_score(self, booking_id: int, cleaner_id: int) -> ScoreExplanation:
        ctx = await self._context(booking_id)
        cleaner = _pick(ctx, cleaner_id)
        cand = self.engine.candidate_for(ctx, cleaner)
        return self.engine.scoring.explain(cand, ctx.booking, ctx.house, ctx.jobs.get(cleaner.id, ()), self.clock())


def _pick(ctx: MatchContext, cleaner_id: int) -> CleanerProfile:
    for c in ctx.pool:
        if c.id == cleaner_id:
            return c
    raise CleanerNotFound(cleaner_id)
