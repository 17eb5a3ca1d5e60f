"""Great-circle distance helpers."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    d1 = math.radians(lat2 - lat1)
    d2 = math.radians(lon2 - lon1)
    a = math.sin(d1 / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(d2 / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_between(
    origin: tuple[float | None, float | None],
    target: tuple[float | None, float | None],
) -> float | None:
    """Distance in km, or None when either point is missing a coordinate."""
    if None in origin or None in target:
        return None
    return haversine_km(origin[0], origin[1], target[0], target[1])
