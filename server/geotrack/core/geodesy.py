"""Geodesy primitives — great-circle distance and bearing.

Pure functions, no state. Callers validate coordinates upstream (see
``sanitizer``); these functions assume finite degrees.
"""

from __future__ import annotations

import math
from typing import Protocol


# Mean Earth radius in meters (for Haversine).
EARTH_RADIUS_M = 6_371_000.0


class HasCoordinates(Protocol):
    latitude: float
    longitude: float


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # Rounding can push a slightly above 1 for antipodal points.
    a = min(1.0, a)
    return 2.0 * EARTH_RADIUS_M * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def distance_m(a: HasCoordinates, b: HasCoordinates) -> float:
    """Haversine distance in meters between two coordinate-bearing objects."""
    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def initial_bearing_deg(a: HasCoordinates, b: HasCoordinates) -> float:
    """Initial great-circle bearing from ``a`` to ``b``, in degrees [0, 360)."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    y = math.sin(d_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lambda)
    return math.degrees(math.atan2(y, x)) % 360.0


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """True when both values are finite and inside the WGS84 degree ranges."""
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0
