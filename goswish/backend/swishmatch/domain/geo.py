# swishmatch/domain/geo.py
from __future__ import annotations

import math
from dataclasses import dataclass

from .types import GeoPoint

EARTH_RADIUS_MI = 3959.0

# Returned when either side has no coordinates: far enough to fail any radius check.
MISSING_LOCATION_DISTANCE_MI = 999.0

ROAD_CURVATURE_FACTOR = 1.3
MINUTES_PER_ROAD_MILE = 2.2


@dataclass(frozen=True)
class TravelEstimate:
    air_miles: float
    road_miles: float
    travel_minutes: int


def distance_miles(a: GeoPoint | None, b: GeoPoint | None) -> float:
    """
    Great-circle (haversine) distance in miles.
    Never raises on missing coordinates; returns MISSING_LOCATION_DISTANCE_MI instead.
    """
    if a is None or b is None:
        return MISSING_LOCATION_DISTANCE_MI
    if a.lat is None or a.lng is None or b.lat is None or b.lng is None:
        return MISSING_LOCATION_DISTANCE_MI

    if a.lat == b.lat and a.lng == b.lng:
        return 0.0

    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)

    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat)) * math.cos(math.radians(b.lat)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_MI * c


def estimate_travel(a: GeoPoint | None, b: GeoPoint | None) -> TravelEstimate:
    air = distance_miles(a, b)
    road = air * ROAD_CURVATURE_FACTOR
    minutes = road * MINUTES_PER_ROAD_MILE
    return TravelEstimate(
        air_miles=round(air, 1),
        road_miles=round(road, 1),
        travel_minutes=int(round(minutes)),
    )
