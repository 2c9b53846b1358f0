"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Optional

EARTH_RADIUS_KM = 6371.0
COORDINATE_KEY_DECIMALS = 6
# Anything closer to zero than this is treated as the (0, 0) "no location" sentinel.
ZERO_EPSILON = 1e-6


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def straight_line_seconds(lat1: float, lon1: float, lat2: float, lon2: float, speed_mps: float) -> float:
    """Crude drive estimate: great-circle metres over an assumed road speed."""

    if speed_mps <= 0:
        raise ValueError("speed_mps must be positive")
    return max(0.0, haversine_m(lat1, lon1, lat2, lon2) / speed_mps)


def is_usable_coordinate(lat: Optional[float], lon: Optional[float]) -> bool:
    """True for finite, in-range, non-zero coordinates."""

    if lat is None or lon is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    if abs(lat) > 90 or abs(lon) > 180:
        return False
    return abs(lat) > ZERO_EPSILON and abs(lon) > ZERO_EPSILON


def coordinate_key(lat: float, lon: float, decimals: int = COORDINATE_KEY_DECIMALS) -> str:
    """Rounded "lat,lon" string used to merge visits at the same address."""

    lat_r = round(lat, decimals) + 0.0
    lon_r = round(lon, decimals) + 0.0
    return f"{lat_r:.{decimals}f},{lon_r:.{decimals}f}"
