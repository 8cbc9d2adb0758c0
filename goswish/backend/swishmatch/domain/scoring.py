# swishmatch/domain/scoring.py
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Mapping, Sequence

from .eligibility import EligibleCandidate
from .errors import InvalidScoringWeights
from .geo import distance_miles
from .timeslots import hours_until, minutes_since, option_available, same_day
from .types import ACTIVE_JOB_STATUSES, BookingSnapshot, CleanerProfile, HouseSnapshot, JobRecord, JobStatus

FACTORS = (
    "distance",
    "acceptance",
    "rating",
    "availability",
    "area_performance",
    "engagement",
    "scheduling",
)

NEUTRAL_RATING = 2.5
DEFAULT_JOB_VALUE = 100.0


@dataclass(frozen=True)
class ScoringWeights:
    """
    Point budget per factor plus the knobs inside each factor.
    Defaults sum to a nominal 100.
    """
    distance: float = 25.0
    acceptance: float = 20.0
    rating: float = 20.0
    availability: float = 15.0
    area_performance: float = 10.0
    engagement: float = 5.0
    scheduling: float = 5.0

    # availability: points for matching the 1st, 2nd, and any later option
    availability_points: tuple[float, float, float] = (5.0, 3.0, 2.0)
    availability_all_bonus: float = 5.0

    # area performance split; neutral is returned with no local history
    area_rating_points: float = 6.0
    area_completion_points: float = 4.0
    area_neutral: float = 5.0
    area_radius_mi: float = 5.0

    # engagement: (minutes_since_active_under, points)
    engagement_tiers: tuple[tuple[float, float], ...] = ((5.0, 5.0), (30.0, 3.0), (60.0, 1.0))

    scheduling_base: float = 3.0
    overload_job_count: int = 3

    rating_min_reviews: int = 5

    def validate(self) -> None:
        for name in FACTORS:
            if getattr(self, name) < 0:
                raise InvalidScoringWeights(f"{name} weight must be >= 0")
        if self.rating_min_reviews < 1:
            raise InvalidScoringWeights("rating_min_reviews must be >= 1")
        if self.area_radius_mi <= 0:
            raise InvalidScoringWeights("area_radius_mi must be > 0")
        if len(self.availability_points) != 3:
            raise InvalidScoringWeights("availability_points needs exactly 3 entries")


def default_weights() -> ScoringWeights:
    return ScoringWeights()


@dataclass(frozen=True)
class ScoreBreakdown:
    distance: float
    acceptance: float
    rating: float
    availability: float
    area_performance: float
    engagement: float
    scheduling: float

    def as_dict(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class MatchScore:
    cleaner_id: int
    total: float
    breakdown: ScoreBreakdown


@dataclass(frozen=True)
class ScoreExplanation:
    cleaner_id: int
    booking_id: int
    total: float
    breakdown: ScoreBreakdown
    drivers: Mapping[str, str]


def _round1(x: float) -> float:
    # half-up, not banker's rounding
    return math.floor(x * 10.0 + 0.5) / 10.0


def _clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def adjusted_rating(rating: float | None, total_reviews: int, *, min_reviews: int = 5) -> float:
    """
    Shrink a rating toward neutral when backed by fewer than min_reviews reviews.
    """
    if rating is None:
        return NEUTRAL_RATING
    if total_reviews >= min_reviews:
        return rating
    confidence = max(0, total_reviews) / min_reviews
    return rating * confidence + NEUTRAL_RATING * (1.0 - confidence)


def specialty_overlap(cleaner: CleanerProfile, service_type: str) -> bool:
    st = service_type.strip().lower()
    for s in cleaner.specialties:
        s = s.strip().lower()
        if s and (s in st or st in s):
            return True
    return False


def acceptance_probability(
    cleaner: CleanerProfile,
    booking: BookingSnapshot,
    distance_mi: float,
    now: datetime,
) -> float:
    p = 0.5

    if distance_mi < 5:
        p += 0.2
    elif distance_mi > 15:
        p -= 0.15

    earnings = booking.pricing.total or DEFAULT_JOB_VALUE
    per_mile = earnings / distance_mi if distance_mi > 0 else earnings
    if per_mile > 30:
        p += 0.15
    elif per_mile < 15:
        p -= 0.1

    if booking.date_options:
        h = hours_until(booking.date_options[0].date, now)
        if h > 48:
            p += 0.1
        elif h < 6:
            p -= 0.1

    rate = cleaner.stats.acceptance_rate
    if rate is not None:
        if rate > 0.8:
            p += 0.1
        elif rate < 0.5:
            p -= 0.15

    if specialty_overlap(cleaner, booking.service_type):
        p += 0.15

    if cleaner.upcoming_job_count < 2:
        p += 0.1
    elif cleaner.upcoming_job_count > 5:
        p -= 0.2

    return _clamp(p, 0.0, 1.0)


class ScoringEngine:
    """
    Pure 7-factor scorer. No I/O and no clock reads: `now` and the cleaner's
    job history are passed in, so identical inputs always give identical output.
    """

    def __init__(self, weights: ScoringWeights | None = None) -> None:
        self.weights = weights or default_weights()
        self.weights.validate()

    # -----------------------------
    # factors
    # -----------------------------
    def distance_points(self, distance_mi: float, radius_mi: float) -> float:
        if radius_mi <= 0:
            return 0.0
        return max(0.0, self.weights.distance * (1.0 - distance_mi / radius_mi))

    def acceptance_points(self, cleaner: CleanerProfile, booking: BookingSnapshot, distance_mi: float, now: datetime) -> float:
        return acceptance_probability(cleaner, booking, distance_mi, now) * self.weights.acceptance

    def rating_points(self, cleaner: CleanerProfile) -> float:
        r = adjusted_rating(
            cleaner.stats.rating,
            cleaner.stats.total_reviews,
            min_reviews=self.weights.rating_min_reviews,
        )
        return (r / 5.0) * self.weights.rating

    def availability_points(self, cleaner: CleanerProfile, booking: BookingSnapshot) -> float:
        w = self.weights
        first, second, rest = w.availability_points
        options = booking.date_options
        if not options:
            return 0.0

        pts = 0.0
        matched = 0
        for idx, opt in enumerate(options):
            if not option_available(cleaner.availability, opt):
                continue
            matched += 1
            if opt.priority == 1 or idx == 0:
                pts += first
            elif opt.priority == 2 or idx == 1:
                pts += second
            else:
                pts += rest

        if matched == len(options):
            pts += w.availability_all_bonus
        return min(w.availability, pts)

    def nearby_finished(self, house: HouseSnapshot, history: Sequence[JobRecord]) -> list[JobRecord]:
        if house.location is None:
            return []
        return [
            j
            for j in history
            if j.status not in ACTIVE_JOB_STATUSES
            and j.location is not None
            and distance_miles(j.location, house.location) <= self.weights.area_radius_mi
        ]

    def area_points(self, cleaner: CleanerProfile, house: HouseSnapshot, history: Sequence[JobRecord]) -> float:
        w = self.weights
        nearby = self.nearby_finished(house, history)
        if not nearby:
            return w.area_neutral

        rated = [j.rating for j in nearby if j.rating is not None]
        if rated:
            avg = sum(rated) / len(rated)
        elif cleaner.stats.rating is not None:
            avg = cleaner.stats.rating
        else:
            avg = NEUTRAL_RATING

        completed = sum(1 for j in nearby if j.status == JobStatus.completed)
        completion_rate = completed / len(nearby)

        return (avg / 5.0) * w.area_rating_points + completion_rate * w.area_completion_points

    def engagement_points(self, cleaner: CleanerProfile, now: datetime) -> float:
        if cleaner.last_active_at is None:
            return 0.0
        mins = minutes_since(cleaner.last_active_at, now)
        for under, pts in self.weights.engagement_tiers:
            if mins < under:
                return pts
        return 0.0

    def scheduling_points(self, booking: BookingSnapshot, history: Sequence[JobRecord]) -> float:
        w = self.weights
        same_day_jobs = 0
        for j in history:
            if j.status == JobStatus.cancelled or j.start is None:
                continue
            if any(same_day(j.start, opt.date) for opt in booking.date_options):
                same_day_jobs += 1

        pts = w.scheduling_base
        if same_day_jobs >= w.overload_job_count:
            pts -= 2
        elif same_day_jobs > 0:
            pts += min(2, same_day_jobs)
        return _clamp(pts, 0.0, w.scheduling)

    # -----------------------------
    # public
    # -----------------------------
    def breakdown(
        self,
        candidate: EligibleCandidate,
        booking: BookingSnapshot,
        house: HouseSnapshot,
        history: Sequence[JobRecord],
        now: datetime,
    ) -> ScoreBreakdown:
        c = candidate.cleaner
        return ScoreBreakdown(
            distance=_round1(self.distance_points(candidate.distance_mi, candidate.radius_mi)),
            acceptance=_round1(self.acceptance_points(c, booking, candidate.distance_mi, now)),
            rating=_round1(self.rating_points(c)),
            availability=_round1(self.availability_points(c, booking)),
            area_performance=_round1(self.area_points(c, house, history)),
            engagement=_round1(self.engagement_points(c, now)),
            scheduling=_round1(self.scheduling_points(booking, history)),
        )

    def score(
        self,
        candidate: EligibleCandidate,
        booking: BookingSnapshot,
        house: HouseSnapshot,
        history: Sequence[JobRecord],
        now: datetime,
    ) -> MatchScore:
        b = self.breakdown(candidate, booking, house, history, now)
        total = _round1(sum(b.as_dict().values()))
        return MatchScore(cleaner_id=candidate.cleaner.id, total=total, breakdown=b)

    def explain(
        self,
        candidate: EligibleCandidate,
        booking: BookingSnapshot,
        house: HouseSnapshot,
        history: Sequence[JobRecord],
        now: datetime,
    ) -> ScoreExplanation:
        s = self.score(candidate, booking, house, history, now)
        c = candidate.cleaner

        matched = sum(1 for opt in booking.date_options if option_available(c.availability, opt))
        if c.last_active_at is None:
            active = "never active"
        else:
            active = f"active {int(minutes_since(c.last_active_at, now))} min ago"
        rating = "unrated" if c.stats.rating is None else f"{c.stats.rating:.1f} stars"
        nearby = self.nearby_finished(house, history)
        completed = sum(1 for j in nearby if j.status == JobStatus.completed)
        if nearby:
            area = f"{completed} of {len(nearby)} finished jobs within {self.weights.area_radius_mi:g} mi completed"
        else:
            area = f"no finished jobs within {self.weights.area_radius_mi:g} mi"

        drivers = {
            "distance": f"{candidate.distance_mi} mi of {candidate.radius_mi} mi radius",
            "acceptance": f"p={acceptance_probability(c, booking, candidate.distance_mi, now):.2f}",
            "rating": f"{rating} ({c.stats.total_reviews} reviews)",
            "availability": f"matches {matched} of {len(booking.date_options)} requested dates",
            "area_performance": area,
            "engagement": active,
            "scheduling": f"{c.upcoming_job_count} upcoming jobs",
        }
        return ScoreExplanation(
            cleaner_id=c.id,
            booking_id=booking.id,
            total=s.total,
            breakdown=s.breakdown,
            drivers=drivers,
        )
