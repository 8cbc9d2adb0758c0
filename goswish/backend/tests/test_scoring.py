# tests/test_scoring.py
from datetime import timedelta

import pytest

from factories import NOW, SUNDAY_MORNING, booking, candidate, cleaner, house, job, point_north
from swishmatch.domain.errors import InvalidScoringWeights
from swishmatch.domain.ranking import CandidateRanker
from swishmatch.domain.scoring import (
    FACTORS,
    ScoringEngine,
    ScoringWeights,
    acceptance_probability,
    adjusted_rating,
)
from swishmatch.domain.timeslots import parse_availability
from swishmatch.domain.types import CleanerStats, DateOption, JobStatus, TimeSlot


def test_perfect_nearby_cleaner_maxes_distance_rating_engagement():
    c = cleaner(1, stats=CleanerStats(rating=5.0, total_reviews=50, acceptance_rate=0.9))
    s = ScoringEngine().score(candidate(c, 0.0), booking(), house(), [], NOW)

    assert s.breakdown.distance == 25.0
    assert s.breakdown.rating == 20.0
    assert s.breakdown.engagement == 5.0
    assert s.total == round(sum(s.breakdown.as_dict().values()), 1)


def test_closer_cleaner_ranks_strictly_higher():
    near, far = cleaner(1), cleaner(2)
    eng = ScoringEngine()
    b, h = booking(), house()
    scored = [
        (candidate(far, 14.0), eng.score(candidate(far, 14.0), b, h, [], NOW)),
        (candidate(near, 2.0), eng.score(candidate(near, 2.0), b, h, [], NOW)),
    ]
    ranked = CandidateRanker().rank(scored)
    assert [r.cleaner_id for r in ranked] == [1, 2]
    assert ranked[0].score.total > ranked[1].score.total


def test_scoring_is_pure():
    c = cleaner(1)
    history = [job(1, 1, SUNDAY_MORNING - timedelta(days=7), status=JobStatus.completed, location=point_north(1.0), rating=4.0)]
    eng = ScoringEngine()
    a = eng.score(candidate(c, 3.2), booking(), house(), history, NOW)
    b = eng.score(candidate(c, 3.2), booking(), house(), history, NOW)
    assert a == b


def test_breakdown_keys_match_factors():
    s = ScoringEngine().score(candidate(cleaner(1), 1.0), booking(), house(), [], NOW)
    assert tuple(s.breakdown.as_dict()) == FACTORS
    assert all(v >= 0 for v in s.breakdown.as_dict().values())


def test_distance_points_never_negative():
    eng = ScoringEngine()
    assert eng.distance_points(20.0, 15.0) == 0.0
    assert eng.distance_points(7.5, 15.0) == 12.5
    assert eng.distance_points(1.0, 0.0) == 0.0


def test_low_review_count_shrinks_toward_neutral():
    assert adjusted_rating(5.0, 50) == 5.0
    assert adjusted_rating(5.0, 1) == pytest.approx(3.0)
    assert adjusted_rating(None, 0) == 2.5

    eng = ScoringEngine()
    veteran = cleaner(1, stats=CleanerStats(rating=5.0, total_reviews=50))
    newbie = cleaner(2, stats=CleanerStats(rating=5.0, total_reviews=1))
    assert eng.rating_points(veteran) == 20.0
    assert eng.rating_points(newbie) == pytest.approx(12.0)


def test_availability_points_by_option_priority():
    eng = ScoringEngine()
    opts = (
        DateOption(date=SUNDAY_MORNING, time_slot=TimeSlot.morning, priority=1),
        DateOption(date=SUNDAY_MORNING + timedelta(days=1), time_slot=TimeSlot.morning, priority=2),
        DateOption(date=SUNDAY_MORNING + timedelta(days=2), time_slot=TimeSlot.morning, priority=3),
    )
    b = booking(*opts)

    assert eng.availability_points(cleaner(1), b) == 15.0

    only_second = cleaner(2, availability=parse_availability({"monday": {"morning": True}}))
    assert eng.availability_points(only_second, b) == 3.0

    single = booking()
    assert eng.availability_points(cleaner(3), single) == 10.0


def test_area_performance_neutral_without_local_history():
    eng = ScoringEngine()
    c = cleaner(1)
    assert eng.area_points(c, house(), []) == 5.0

    far_job = job(1, 1, SUNDAY_MORNING - timedelta(days=3), status=JobStatus.completed, location=point_north(30.0))
    assert eng.area_points(c, house(), [far_job]) == 5.0


def test_area_performance_uses_nearby_finished_jobs():
    eng = ScoringEngine()
    c = cleaner(1)
    done = job(1, 1, SUNDAY_MORNING - timedelta(days=3), status=JobStatus.completed, location=point_north(1.0), rating=5.0)
    assert eng.area_points(c, house(), [done]) == pytest.approx(10.0)

    cancelled = job(2, 1, SUNDAY_MORNING - timedelta(days=2), status=JobStatus.cancelled, location=point_north(1.0), rating=5.0)
    # half completed -> half the completion points
    assert eng.area_points(c, house(), [done, cancelled]) == pytest.approx(8.0)


@pytest.mark.parametrize(
    "minutes, expected",
    [(1, 5.0), (10, 3.0), (45, 1.0), (120, 0.0)],
)
def test_engagement_tiers(minutes, expected):
    c = cleaner(1, last_active_at=NOW - timedelta(minutes=minutes))
    assert ScoringEngine().engagement_points(c, NOW) == expected


def test_never_active_gets_no_engagement():
    assert ScoringEngine().engagement_points(cleaner(1, last_active_at=None), NOW) == 0.0


def test_scheduling_rewards_clustering_until_overload():
    eng = ScoringEngine()
    b = booking()
    sunday = SUNDAY_MORNING.replace(hour=15)

    assert eng.scheduling_points(b, []) == 3.0
    assert eng.scheduling_points(b, [job(1, 1, sunday)]) == 4.0
    assert eng.scheduling_points(b, [job(1, 1, sunday), job(2, 1, sunday)]) == 5.0
    assert eng.scheduling_points(b, [job(i, 1, sunday) for i in range(3)]) == 1.0
    assert eng.scheduling_points(b, [job(1, 1, sunday, status=JobStatus.cancelled)]) == 3.0


def test_acceptance_probability_is_clamped():
    keen = cleaner(1, specialties=("regular",), stats=CleanerStats(acceptance_rate=0.95))
    p = acceptance_probability(keen, booking(), 1.0, NOW)
    assert 0.0 <= p <= 1.0
    assert p == 1.0

    reluctant = cleaner(2, upcoming_job_count=9, stats=CleanerStats(acceptance_rate=0.2))
    soon = booking(DateOption(date=NOW + timedelta(hours=2)))
    q = acceptance_probability(reluctant, soon, 30.0, NOW)
    assert 0.0 <= q < p


def test_custom_weights_are_injectable():
    c = cleaner(1, stats=CleanerStats(rating=5.0, total_reviews=50))
    eng = ScoringEngine(ScoringWeights(distance=50.0, rating=10.0))
    s = eng.score(candidate(c, 0.0), booking(), house(), [], NOW)
    assert s.breakdown.distance == 50.0
    assert s.breakdown.rating == 10.0


def test_invalid_weights_rejected():
    with pytest.raises(InvalidScoringWeights):
        ScoringEngine(ScoringWeights(distance=-1.0))
    with pytest.raises(InvalidScoringWeights):
        ScoringEngine(ScoringWeights(rating_min_reviews=0))


def test_explain_matches_score():
    c = cleaner(1)
    eng = ScoringEngine()
    cand = candidate(c, 4.0)
    s = eng.score(cand, booking(), house(), [], NOW)
    ex = eng.explain(cand, booking(), house(), [], NOW)
    assert ex.total == s.total
    assert ex.breakdown == s.breakdown
    assert ex.drivers["availability"] == "matches 1 of 1 requested dates"
    assert ex.drivers["engagement"] == "active 1 min ago"


def test_explain_has_a_driver_for_every_factor():
    eng = ScoringEngine()
    c = cleaner(1)
    cand = candidate(c, 4.0)
    done = job(1, 1, SUNDAY_MORNING - timedelta(days=3), status=JobStatus.completed, location=point_north(1.0))
    cancelled = job(2, 1, SUNDAY_MORNING - timedelta(days=2), status=JobStatus.cancelled, location=point_north(2.0))
    far = job(3, 1, SUNDAY_MORNING - timedelta(days=1), status=JobStatus.completed, location=point_north(30.0))

    ex = eng.explain(cand, booking(), house(), [done, cancelled, far], NOW)
    assert set(ex.drivers) == set(ex.breakdown.as_dict())
    assert ex.drivers["area_performance"] == "1 of 2 finished jobs within 5 mi completed"

    fresh = eng.explain(cand, booking(), house(), [], NOW)
    assert fresh.drivers["area_performance"] == "no finished jobs within 5 mi"
