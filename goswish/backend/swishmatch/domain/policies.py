# swishmatch/domain/policies.py
from __future__ import annotations

import math

from .types import Pricing

DEFAULT_EARNINGS_RATE = 0.90

# Used to back tax out of a total when neither subtotal nor taxes were recorded.
FALLBACK_TAX_DIVISOR = 1.0825

TIER_PREMIER = "Premier"
TIER_HIGHLY_RECOMMENDED = "Highly Recommended"
TIER_STRONG_MATCH = "Strong Match"

BASE_DURATION_HOURS = {
    "regular": 2.0,
    "deep": 3.0,
    "move": 4.0,
    "move_out": 4.0,
    "windows": 1.5,
}


def _round_half_up(x: float, ndigits: int = 0) -> float:
    m = 10 ** ndigits
    return math.floor(x * m + 0.5) / m


def match_tier(score: float, *, premier: float = 100.0, highly_recommended: float = 75.0) -> str:
    if score > premier:
        return TIER_PREMIER
    if score > highly_recommended:
        return TIER_HIGHLY_RECOMMENDED
    return TIER_STRONG_MATCH


def offer_earnings_estimate(pricing: Pricing, rate: float | None) -> float:
    """What the offer advertises: whole dollars off subtotal (or total)."""
    base = pricing.subtotal or pricing.total or 0.0
    return _round_half_up(base * (rate or DEFAULT_EARNINGS_RATE))


def earnings_base(pricing: Pricing) -> float:
    """
    Pre-tax amount the cleaner's cut is taken from:
      subtotal, else total - taxes, else total / 1.0825
    """
    if pricing.subtotal:
        return pricing.subtotal
    if pricing.total and pricing.taxes is not None:
        return pricing.total - pricing.taxes
    if pricing.total:
        return pricing.total / FALLBACK_TAX_DIVISOR
    return 0.0


def job_earnings(pricing: Pricing, rate: float | None) -> float:
    return _round_half_up(earnings_base(pricing) * (rate or DEFAULT_EARNINGS_RATE), 2)


def estimate_duration_hours(
    service_type: str,
    *,
    sqft: int | None = None,
    bedrooms: int | None = None,
    bathrooms: float | None = None,
    add_on_count: int = 0,
) -> float:
    hours = BASE_DURATION_HOURS.get(service_type.strip().lower(), BASE_DURATION_HOURS["regular"])
    if sqft:
        hours += 0.5 * (sqft / 1000.0)
    if bedrooms:
        hours += 0.3 * bedrooms
    if bathrooms:
        hours += 0.25 * bathrooms
    hours += 0.25 * max(0, add_on_count)
    # nearest half hour
    return max(0.5, _round_half_up(hours * 2) / 2)


# -----------------------------
# Supply/demand
# -----------------------------
def market_condition(eligible_cleaners: int, open_bookings: int) -> str:
    if open_bookings <= 0:
        return "oversupply"
    ratio = eligible_cleaners / open_bookings
    if ratio > 3:
        return "oversupply"
    if ratio >= 1.5:
        return "balanced"
    if ratio >= 0.7:
        return "tight"
    return "undersupply"


def surge_multiplier(eligible_cleaners: int, open_bookings: int) -> float:
    if open_bookings <= 0:
        return 1.0
    ratio = eligible_cleaners / open_bookings
    if ratio >= 0.7:
        return 1.0
    if ratio >= 0.5:
        return 1.2
    if ratio >= 0.3:
        return 1.5
    return 2.0
