"""
Purpose: Great-circle math on (lat, lng) pairs.
What it does:
- distance_meters: haversine distance on a spherical Earth
- bearing_degrees: initial bearing from a to b
- destination_point: where you end up after travelling N meters along a bearing

Rule: Pure functions only. No state, no validation of coordinates (out-of-range
input is the caller's problem).
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

# Internal coordinate type: (lat, lng)
LatLng = Tuple[float, float]

EARTH_RADIUS_M = 6_371_000.0


def distance_meters(a: LatLng, b: LatLng) -> float:
    """
    Haversine distance between two coordinates, in meters.
    """
    lat1, lng1 = math.radians(a[0]), math.radians(a[1])
    lat2, lng2 = math.radians(b[0]), math.radians(b[1])
    dlat = lat2 - lat1
    dlng = lng2 - lng1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    # clamp: rounding can push h a hair above 1 for antipodal points
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bearing_degrees(a: LatLng, b: LatLng) -> float:
    """
    Initial great-circle bearing from a to b in [0, 360).
    Meaningless when a == b; callers must guard.
    """
    lat1, lng1 = math.radians(a[0]), math.radians(a[1])
    lat2, lng2 = math.radians(b[0]), math.radians(b[1])

    y = math.sin(lng2 - lng1) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(lng2 - lng1)
    bearing = (math.degrees(math.atan2(y, x)) + 360.0) % 360.0
    # (-0.0 + 360) % 360 can come back as 360.0 after rounding
    return 0.0 if bearing >= 360.0 else bearing


def _wrap_longitude(lng: float) -> float:
    wrapped = ((lng + 540.0) % 360.0) - 180.0
    return 180.0 if wrapped == -180.0 else wrapped


def destination_point(start: LatLng, bearing_deg: float, meters: float) -> LatLng:
    """
    Point reached from `start` after `meters` along `bearing_deg` on a great circle.
    Longitude is wrapped to (-180, 180].
    """
    if meters == 0:
        return start

    angular = meters / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    lat1 = math.radians(start[0])
    lng1 = math.radians(start[1])

    sin_lat2 = math.sin(lat1) * math.cos(angular) + math.cos(lat1) * math.sin(angular) * math.cos(theta)
    sin_lat2 = min(1.0, max(-1.0, sin_lat2))
    lat2 = math.asin(sin_lat2)

    y = math.sin(theta) * math.sin(angular) * math.cos(lat1)
    x = math.cos(angular) - math.sin(lat1) * sin_lat2
    lng2 = lng1 + math.atan2(y, x)

    return (math.degrees(lat2), _wrap_longitude(math.degrees(lng2)))


def polyline_length_meters(points: Sequence[LatLng]) -> float:
    """Sum of segment lengths along a polyline."""
    return sum(distance_meters(points[i], points[i + 1]) for i in range(len(points) - 1))
