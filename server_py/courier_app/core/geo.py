"""Great-circle distance helpers.

Coordinates come from mobile clients and the order feed, so every value may be
missing, a numeric string, NaN or garbage. Callers get ``None`` for anything
that cannot be measured and must treat it as "unknown".
"""
from __future__ import annotations

import math
from typing import Any, Optional, Tuple

EARTH_RADIUS_KM = 6371.0

Point = Tuple[float, float]


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def distance_km(lat1: Any, lon1: Any, lat2: Any, lon2: Any) -> Optional[float]:
    """Haversine distance in km rounded to 0.1, or None if any input is invalid."""
    coords = [_to_float(v) for v in (lat1, lon1, lat2, lon2)]
    if any(c is None for c in coords):
        return None
    phi1, lam1, phi2, lam2 = (math.radians(c) for c in coords)

    d_phi = phi2 - phi1
    d_lam = lam2 - lam1
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    # a can drift slightly above 1.0 for antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def extract_point(location: Any) -> Optional[Point]:
    """Return ``(lat, long)`` from a ``{lat, long}`` mapping or object.

    Out-of-range values are treated the same as missing ones.
    """
    if location is None:
        return None
    if isinstance(location, dict):
        raw_lat = location.get("lat")
        raw_long = location.get("long")
    else:
        raw_lat = getattr(location, "lat", None)
        raw_long = getattr(location, "long", None)

    lat = _to_float(raw_lat)
    long = _to_float(raw_long)
    if lat is None or long is None:
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= long <= 180.0):
        return None
    return lat, long


def point_distance_km(a: Optional[Point], b: Optional[Point]) -> Optional[float]:
    if a is None or b is None:
        return None
    return distance_km(a[0], a[1], b[0], b[1])
