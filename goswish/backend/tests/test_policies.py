# tests/test_policies.py
import pytest

from swishmatch.domain.policies import (
    earnings_base,
    estimate_duration_hours,
    job_earnings,
    market_condition,
    match_tier,
    offer_earnings_estimate,
    surge_multiplier,
)
from swishmatch.domain.types import Pricing


@pytest.mark.parametrize(
    "score, tier",
    [
        (100.1, "Premier"),
        (100.0, "Highly Recommended"),
        (75.1, "Highly Recommended"),
        (75.0, "Strong Match"),
        (12.0, "Strong Match"),
    ],
)
def test_match_tier_thresholds_are_strict(score, tier):
    assert match_tier(score) == tier


def test_match_tier_thresholds_configurable():
    assert match_tier(61.0, premier=80.0, highly_recommended=60.0) == "Highly Recommended"
    assert match_tier(81.0, premier=80.0, highly_recommended=60.0) == "Premier"


def test_offer_estimate_rounds_to_whole_dollars():
    assert offer_earnings_estimate(Pricing(subtotal=100.0, total=108.25), 0.9) == 90.0
    assert offer_earnings_estimate(Pricing(subtotal=None, total=150.0), 0.9) == 135.0
    assert offer_earnings_estimate(Pricing(), 0.9) == 0.0


def test_earnings_base_fallbacks():
    assert earnings_base(Pricing(subtotal=100.0, total=108.25, taxes=8.25)) == 100.0
    assert earnings_base(Pricing(total=108.25, taxes=8.25)) == 100.0
    assert earnings_base(Pricing(total=108.25)) == pytest.approx(100.0)
    assert earnings_base(Pricing()) == 0.0


def test_job_earnings_two_decimals():
    assert job_earnings(Pricing(subtotal=100.0), 0.9) == 90.0
    assert job_earnings(Pricing(total=108.25), 0.9) == 90.0
    assert job_earnings(Pricing(subtotal=123.4), None) == 111.06


def test_duration_estimate_half_hours():
    h = estimate_duration_hours("deep", sqft=2000, bedrooms=3, bathrooms=2.0, add_on_count=1)
    # 3 + 1.0 + 0.9 + 0.5 + 0.25 = 5.65 -> 5.5
    assert h == 5.5
    assert estimate_duration_hours("mystery") == 2.0


def test_market_condition_and_surge():
    assert market_condition(10, 0) == "oversupply"
    assert market_condition(10, 2) == "oversupply"
    assert market_condition(3, 2) == "balanced"
    assert market_condition(2, 2) == "tight"
    assert market_condition(1, 4) == "undersupply"

    assert surge_multiplier(10, 2) == 1.0
    assert surge_multiplier(1, 2) == 1.2
    assert surge_multiplier(1, 3) == 1.5
    assert surge_multiplier(1, 10) == 2.0
