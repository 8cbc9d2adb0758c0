# tests/test_eligibility.py
import logging
from dataclasses import replace
from datetime import timedelta

from factories import SUNDAY_MORNING, booking, cleaner, house, job
from swishmatch.domain.eligibility import STAGES, EligibilityFilter, has_day_conflict, has_slot_conflict
from swishmatch.domain.timeslots import parse_availability
from swishmatch.domain.types import (
    AccountStatus,
    DateOption,
    JobStatus,
    OnboardingFlags,
    TimeSlot,
    VerificationStatus,
)


def _funnel_pool():
    """One cleaner dropped at each stage, plus two that pass everything."""
    pool = [
        cleaner(1, verification_status=VerificationStatus.pending),
        cleaner(2, account_status=AccountStatus.suspended),
        cleaner(3, onboarding=OnboardingFlags(True, True, True, True, True, False)),
        cleaner(4, miles_north=20.0),
        cleaner(5, availability=parse_availability({"monday": {"morning": True}})),
        cleaner(6, service_types=frozenset({"deep"})),
        cleaner(7),
        cleaner(8, miles_north=2.0),
        cleaner(9, miles_north=5.0),
    ]
    jobs = {7: [job(100, 7, SUNDAY_MORNING.replace(hour=14))]}
    return pool, jobs


def test_funnel_counts_one_drop_per_stage():
    pool, jobs = _funnel_pool()
    res = EligibilityFilter().find_eligible(booking(), house(), pool, jobs)

    assert [c.cleaner.id for c in res.candidates] == [8, 9]
    assert res.stats.as_dict() == {
        "total": 9,
        "after_verification": 8,
        "after_status": 7,
        "after_onboarding": 6,
        "after_geography": 5,
        "after_availability": 4,
        "after_service_type": 3,
        "after_conflicts": 2,
        "final": 2,
    }
    stages = {x.cleaner_id: x.stage for x in res.excluded}
    assert stages == {
        1: "verification",
        2: "status",
        3: "onboarding",
        4: "geography",
        5: "availability",
        6: "service_type",
        7: "conflicts",
    }


def test_every_candidate_satisfies_all_constraints():
    pool, jobs = _funnel_pool()
    res = EligibilityFilter().find_eligible(booking(), house(), pool, jobs)
    for cand in res.candidates:
        c = cand.cleaner
        assert c.verification_status == VerificationStatus.approved
        assert c.account_status == AccountStatus.active
        assert c.onboarding.complete()
        assert cand.distance_mi <= cand.radius_mi
        assert "regular" in c.service_types


def test_explain_agrees_with_bulk_filter():
    pool, jobs = _funnel_pool()
    filt = EligibilityFilter()
    b, h = booking(), house()
    res = filt.find_eligible(b, h, pool, jobs)
    kept = {c.cleaner.id for c in res.candidates}

    for c in pool:
        ex = filt.explain(b, h, c, jobs.get(c.id, ()))
        assert ex.eligible is (c.id in kept)
        assert ex.eligible is (not ex.reasons)


def test_explain_reports_every_failing_stage():
    c = cleaner(
        1,
        verification_status=VerificationStatus.rejected,
        miles_north=40.0,
        service_types=frozenset({"deep"}),
    )
    ex = EligibilityFilter().explain(booking(), house(), c, [])
    assert ex.failed_stages == ("verification", "geography", "service_type")
    assert len(ex.reasons) == 3
    assert ex.distance_mi > 39.0


def test_radius_boundary_is_inclusive_after_rounding():
    filt = EligibilityFilter()
    pool = [cleaner(1, miles_north=14.96), cleaner(2, miles_north=15.06)]
    res = filt.find_eligible(booking(), house(), pool, {})
    assert [c.cleaner.id for c in res.candidates] == [1]
    assert res.candidates[0].distance_mi == 15.0


def test_cleaner_without_radius_uses_default():
    filt = EligibilityFilter(default_radius_mi=25.0)
    c = cleaner(1, miles_north=20.0, service_radius_mi=None)
    res = filt.find_eligible(booking(), house(), [c], {})
    assert len(res.candidates) == 1
    assert res.candidates[0].radius_mi == 25.0


def test_radius_override_widens_but_never_shrinks():
    filt = EligibilityFilter()
    far = cleaner(1, miles_north=18.0)
    wide = cleaner(2, miles_north=2.0, service_radius_mi=30.0)

    assert filt.radius_for(far, 20.0) == 20.0
    assert filt.radius_for(wide, 20.0) == 30.0

    res = filt.find_eligible(booking(), house(), [far, wide], {}, radius_override=20.0)
    assert [c.cleaner.id for c in res.candidates] == [1, 2]
    assert res.radius_override_mi == 20.0


def test_expand_radius_steps():
    assert EligibilityFilter(expansion_step_mi=5.0).expand_radius(15.0) == 20.0
    assert EligibilityFilter(expansion_step_mi=2.5).expand_radius(20.0) == 22.5


def test_missing_house_location_excludes_everyone_at_geography():
    res = EligibilityFilter().find_eligible(booking(), house(location=None), [cleaner(1), cleaner(2)], {})
    assert res.candidates == ()
    assert {x.stage for x in res.excluded} == {"geography"}
    assert res.excluded[0].reason == "House has no location"


def test_cleaner_missing_location_is_excluded_not_error():
    res = EligibilityFilter().find_eligible(booking(), house(), [cleaner(1, base_location=None)], {})
    assert res.excluded[0].stage == "geography"
    assert not res.excluded[0].reason.startswith("error:")


def test_sunday_morning_slot_map():
    yes = cleaner(1, availability=parse_availability({"sunday": {"morning": True}}))
    no = cleaner(2, availability=parse_availability({"sunday": {"morning": False, "afternoon": True}}))
    res = EligibilityFilter().find_eligible(booking(), house(), [yes, no], {})
    assert [c.cleaner.id for c in res.candidates] == [1]
    assert res.excluded[0].stage == "availability"


def test_any_requested_option_is_enough():
    c = cleaner(1, availability=parse_availability({"monday": ["8:00 AM", "6:00 PM"]}))
    b = booking(
        DateOption(date=SUNDAY_MORNING, time_slot=TimeSlot.morning, priority=1),
        DateOption(date=SUNDAY_MORNING + timedelta(days=1), time_slot=TimeSlot.evening, priority=2),
    )
    res = EligibilityFilter().find_eligible(b, house(), [c], {})
    assert len(res.candidates) == 1


def test_booking_without_options_fails_availability():
    b = replace(booking(), date_options=())
    res = EligibilityFilter().find_eligible(b, house(), [cleaner(1)], {})
    assert res.excluded[0].stage == "availability"


def test_finished_jobs_do_not_conflict():
    jobs = {
        1: [
            job(1, 1, SUNDAY_MORNING, status=JobStatus.cancelled),
            job(2, 1, SUNDAY_MORNING, status=JobStatus.completed),
        ]
    }
    res = EligibilityFilter().find_eligible(booking(), house(), [cleaner(1)], jobs)
    assert len(res.candidates) == 1


def test_day_vs_slot_conflict():
    opts = [DateOption(date=SUNDAY_MORNING, time_slot=TimeSlot.morning)]
    afternoon = [job(1, 1, SUNDAY_MORNING.replace(hour=14))]
    morning = [job(2, 1, SUNDAY_MORNING.replace(hour=10))]

    assert has_day_conflict(afternoon, opts) is True
    assert has_slot_conflict(afternoon, opts) is False
    assert has_slot_conflict(morning, opts) is True


def test_low_supply_warning(caplog):
    caplog.set_level(logging.WARNING, logger="swishmatch.domain.eligibility")
    res = EligibilityFilter(low_supply_threshold=3).find_eligible(booking(), house(), [cleaner(1), cleaner(2)], {})
    assert res.low_supply is True
    assert "only 2 eligible" in res.warnings[0]
    assert any("low supply" in r.getMessage() for r in caplog.records)

    res = EligibilityFilter(low_supply_threshold=2).find_eligible(booking(), house(), [cleaner(1), cleaner(2)], {})
    assert res.low_supply is False


def test_broken_check_excludes_only_that_cleaner():
    broken = cleaner(1, availability=None)
    res = EligibilityFilter().find_eligible(booking(), house(), [broken, cleaner(2)], {})
    assert [c.cleaner.id for c in res.candidates] == [2]
    assert res.excluded[0].stage == "availability"
    assert res.excluded[0].reason.startswith("error:")


def test_output_follows_pool_order():
    pool = [cleaner(i, miles_north=float(10 - i)) for i in range(1, 8)]
    res = EligibilityFilter().find_eligible(booking(), house(), pool, {})
    assert [c.cleaner.id for c in res.candidates] == list(range(1, 8))
    assert STAGES[0] == "verification" and STAGES[-1] == "conflicts"
