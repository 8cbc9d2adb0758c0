# swishmatch/domain/eligibility.py
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Callable, Mapping, Sequence

from .geo import distance_miles
from .timeslots import option_available, requested_slot, same_day, slot_for_hour
from .types import (
    ACTIVE_JOB_STATUSES,
    AccountStatus,
    BookingSnapshot,
    CleanerProfile,
    DateOption,
    HouseSnapshot,
    JobRecord,
    OnboardingFlags,
    VerificationStatus,
)

log = logging.getLogger(__name__)

DEFAULT_SERVICE_RADIUS_MI = 15.0
LOW_SUPPLY_THRESHOLD = 5
RADIUS_EXPANSION_STEP_MI = 5.0


@dataclass(frozen=True)
class EligibleCandidate:
    cleaner: CleanerProfile
    distance_mi: float
    radius_mi: float


@dataclass(frozen=True)
class IneligibleCandidate:
    cleaner_id: int
    stage: str
    reason: str


@dataclass(frozen=True)
class FunnelStats:
    total: int
    after_verification: int
    after_status: int
    after_onboarding: int
    after_geography: int
    after_availability: int
    after_service_type: int
    after_conflicts: int
    final: int

    def as_dict(self) -> dict[str, int]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class EligibilityResult:
    booking_id: int
    candidates: tuple[EligibleCandidate, ...]
    excluded: tuple[IneligibleCandidate, ...]
    stats: FunnelStats
    warnings: tuple[str, ...] = ()
    radius_override_mi: float | None = None

    @property
    def low_supply(self) -> bool:
        return bool(self.warnings)


@dataclass(frozen=True)
class EligibilityExplanation:
    booking_id: int
    cleaner_id: int
    eligible: bool
    reasons: tuple[str, ...]
    failed_stages: tuple[str, ...]
    distance_mi: float
    radius_mi: float


@dataclass(frozen=True)
class _Subject:
    cleaner: CleanerProfile
    booking: BookingSnapshot
    house: HouseSnapshot
    active_jobs: Sequence[JobRecord]
    distance_mi: float
    radius_mi: float


# A check returns None on pass, or a human-readable reason on fail.
Check = Callable[[_Subject], "str | None"]


def _check_verification(s: _Subject) -> str | None:
    if s.cleaner.verification_status != VerificationStatus.approved:
        return f"Not verified (status: {s.cleaner.verification_status.value})"
    return None


def _check_status(s: _Subject) -> str | None:
    if s.cleaner.account_status != AccountStatus.active:
        return f"Account is {s.cleaner.account_status.value}"
    return None


def _check_onboarding(s: _Subject) -> str | None:
    missing = [f.name for f in fields(OnboardingFlags) if not getattr(s.cleaner.onboarding, f.name)]
    if missing:
        return "Onboarding incomplete: missing " + ", ".join(missing)
    return None


def _check_geography(s: _Subject) -> str | None:
    if s.house.location is None:
        return "House has no location"
    if s.cleaner.base_location is None:
        return "Cleaner has no base location"
    if s.distance_mi > s.radius_mi:
        return f"Outside service radius ({s.distance_mi} mi > {s.radius_mi} mi)"
    return None


def _check_availability(s: _Subject) -> str | None:
    if not s.booking.date_options:
        return "Booking has no requested dates"
    if not any(option_available(s.cleaner.availability, opt) for opt in s.booking.date_options):
        return "Not available on any requested date"
    return None


def _check_service_type(s: _Subject) -> str | None:
    wanted = s.booking.service_type.strip().lower()
    if wanted not in s.cleaner.service_types:
        return f"Does not offer {wanted} cleaning"
    return None


def _check_conflicts(s: _Subject) -> str | None:
    if has_day_conflict(s.active_jobs, s.booking.date_options):
        return "Already booked on a requested date"
    return None


# Shared by the bulk filter and explain(); order is the funnel order.
CHECKS: tuple[tuple[str, Check], ...] = (
    ("verification", _check_verification),
    ("status", _check_status),
    ("onboarding", _check_onboarding),
    ("geography", _check_geography),
    ("availability", _check_availability),
    ("service_type", _check_service_type),
    ("conflicts", _check_conflicts),
)

STAGES = tuple(name for name, _ in CHECKS)


def has_day_conflict(jobs: Sequence[JobRecord], options: Sequence[DateOption]) -> bool:
    """True if any active job lands on the same calendar day as any option."""
    for job in jobs:
        if job.status not in ACTIVE_JOB_STATUSES or job.start is None:
            continue
        for opt in options:
            if same_day(job.start, opt.date):
                return True
    return False


def has_slot_conflict(jobs: Sequence[JobRecord], options: Sequence[DateOption]) -> bool:
    """
    Stricter check used at claim time: same day AND same time slot.
    """
    for job in jobs:
        if job.status not in ACTIVE_JOB_STATUSES or job.start is None:
            continue
        job_slot = slot_for_hour(job.start.hour)
        for opt in options:
            if same_day(job.start, opt.date) and requested_slot(opt) == job_slot:
                return True
    return False


class EligibilityFilter:
    def __init__(
        self,
        *,
        default_radius_mi: float = DEFAULT_SERVICE_RADIUS_MI,
        low_supply_threshold: int = LOW_SUPPLY_THRESHOLD,
        expansion_step_mi: float = RADIUS_EXPANSION_STEP_MI,
    ) -> None:
        self.default_radius_mi = default_radius_mi
        self.low_supply_threshold = low_supply_threshold
        self.expansion_step_mi = expansion_step_mi

    def radius_for(self, cleaner: CleanerProfile, radius_override: float | None = None) -> float:
        own = cleaner.service_radius_mi or self.default_radius_mi
        if radius_override is None:
            return own
        # expansion widens the search; it never shrinks a cleaner's own radius
        return max(own, radius_override)

    def _subject(
        self,
        booking: BookingSnapshot,
        house: HouseSnapshot,
        cleaner: CleanerProfile,
        active_jobs: Sequence[JobRecord],
        radius_override: float | None,
    ) -> _Subject:
        distance = round(distance_miles(cleaner.base_location, house.location), 1)
        return _Subject(
            cleaner=cleaner,
            booking=booking,
            house=house,
            active_jobs=active_jobs,
            distance_mi=distance,
            radius_mi=self.radius_for(cleaner, radius_override),
        )

    def _first_failure(self, s: _Subject) -> tuple[int, str] | None:
        for idx, (stage, check) in enumerate(CHECKS):
            try:
                reason = check(s)
            except Exception as e:
                log.warning(
                    "eligibility check %s failed for cleaner=%s booking=%s",
                    stage,
                    s.cleaner.id,
                    s.booking.id,
                    exc_info=True,
                )
                reason = f"error: {e}"
            if reason is not None:
                return idx, reason
        return None

    def find_eligible(
        self,
        booking: BookingSnapshot,
        house: HouseSnapshot,
        pool: Sequence[CleanerProfile],
        active_jobs: Mapping[int, Sequence[JobRecord]],
        *,
        radius_override: float | None = None,
    ) -> EligibilityResult:
        """
        Run every cleaner in the pool through the seven checks in funnel order.
        Output order follows pool order.
        """
        candidates: list[EligibleCandidate] = []
        excluded: list[IneligibleCandidate] = []
        dropped_at = [0] * len(CHECKS)

        for cleaner in pool:
            s = self._subject(booking, house, cleaner, active_jobs.get(cleaner.id, ()), radius_override)
            failure = self._first_failure(s)
            if failure is None:
                candidates.append(EligibleCandidate(cleaner=cleaner, distance_mi=s.distance_mi, radius_mi=s.radius_mi))
                continue
            idx, reason = failure
            dropped_at[idx] += 1
            excluded.append(IneligibleCandidate(cleaner_id=cleaner.id, stage=CHECKS[idx][0], reason=reason))

        remaining = len(pool)
        after: list[int] = []
        for n in dropped_at:
            remaining -= n
            after.append(remaining)

        stats = FunnelStats(
            total=len(pool),
            after_verification=after[0],
            after_status=after[1],
            after_onboarding=after[2],
            after_geography=after[3],
            after_availability=after[4],
            after_service_type=after[5],
            after_conflicts=after[6],
            final=len(candidates),
        )

        log.info("eligibility booking=%s funnel=%s", booking.id, stats.as_dict())

        warnings: list[str] = []
        if stats.final < self.low_supply_threshold:
            warnings.append(
                f"Low supply: only {stats.final} eligible cleaners (threshold {self.low_supply_threshold})"
            )
            log.warning("low supply booking=%s eligible=%s", booking.id, stats.final)

        return EligibilityResult(
            booking_id=booking.id,
            candidates=tuple(candidates),
            excluded=tuple(excluded),
            stats=stats,
            warnings=tuple(warnings),
            radius_override_mi=radius_override,
        )

    def expand_radius(self, current_radius_mi: float) -> float:
        """Next search radius; callers decide how many times to retry."""
        return current_radius_mi + self.expansion_step_mi

    def explain(
        self,
        booking: BookingSnapshot,
        house: HouseSnapshot,
        cleaner: CleanerProfile,
        active_jobs: Sequence[JobRecord],
        *,
        radius_override: float | None = None,
    ) -> EligibilityExplanation:
        """
        Evaluate all seven checks (no short-circuit) so the caller sees every reason.
        eligible == True iff find_eligible() would keep this cleaner.
        """
        s = self._subject(booking, house, cleaner, active_jobs, radius_override)
        reasons: list[str] = []
        failed: list[str] = []
        for stage, check in CHECKS:
            try:
                reason = check(s)
            except Exception as e:
                log.warning("eligibility check %s failed for cleaner=%s", stage, cleaner.id, exc_info=True)
                reason = f"error: {e}"
            if reason is not None:
                failed.append(stage)
                reasons.append(reason)

        return EligibilityExplanation(
            booking_id=booking.id,
            cleaner_id=cleaner.id,
            eligible=not failed,
            reasons=tuple(reasons),
            failed_stages=tuple(failed),
            distance_mi=s.distance_mi,
            radius_mi=s.radius_mi,
        )
