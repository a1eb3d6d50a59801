from __future__ import annotations

from typing import Sequence, Tuple
import math


R_EARTH_M = 6371008.8  # mean Earth radius (m)


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine great-circle distance on a spherical Earth (meters)."""
    p1 = math.radians(lat1)
    p2 = math.radians(lat2)
    dphi = p2 - p1
    dl = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2.0) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2.0) ** 2
    return 2 * R_EARTH_M * math.asin(math.sqrt(a))


def offset_deg(lat: float, north_m: float, east_m: float) -> Tuple[float, float]:
    """
    Small local offset in meters -> (dlat, dlon) in degrees.

    Flat-earth scaling; fine for jitter of a few hundred meters, not for
    anything near the poles.
    """
    dlat = math.degrees(north_m / R_EARTH_M)
    coslat = max(1e-9, math.cos(math.radians(lat)))
    dlon = math.degrees(east_m / (R_EARTH_M * coslat))
    return dlat, dlon


def max_spread_m(points: Sequence[Tuple[float, float]]) -> float:
    """Largest pairwise distance (meters) among (lat, lon) points; 0 for < 2 points."""
    best = 0.0
    for i in range(len(points)):
        for j in range(i + 1, len(points)):
            d = haversine_m(points[i][0], points[i][1], points[j][0], points[j][1])
            best = max(best, d)
    return best
