"""Great-circle distance helpers and home-region detection."""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
from numpy.typing import NDArray

from .config import EARTH_RADIUS_KM
from .models import HomeProfile, LatLon

DistanceArray = NDArray[np.float64]


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the haversine distance in kilometres between two coordinates.

    Inputs are decimal degrees. NaN inputs propagate to a NaN result; callers
    must guard against them where it matters.
    """

    sin = math.sin
    cos = math.cos
    radians = math.radians
    lat1_rad = radians(lat1)
    lat2_rad = radians(lat2)
    delta_lat = lat2_rad - lat1_rad
    delta_lon = radians(lon2 - lon1)
    sin_half_lat = sin(delta_lat / 2.0)
    sin_half_lon = sin(delta_lon / 2.0)
    a = sin_half_lat**2 + cos(lat1_rad) * cos(lat2_rad) * sin_half_lon**2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def point_distance_km(first: LatLon, second: LatLon) -> float:
    return distance_km(first[0], first[1], second[0], second[1])


def distances_km(origin: LatLon, points: Sequence[LatLon]) -> DistanceArray:
    """Vectorised haversine from ``origin`` to every entry in ``points``."""

    if not points:
        return np.empty(0, dtype=np.float64)
    coords = np.radians(np.asarray(points, dtype=np.float64))
    lat1 = math.radians(origin[0])
    lon1 = math.radians(origin[1])
    lat2 = coords[:, 0]
    lon2 = coords[:, 1]
    sin_half_lat = np.sin((lat2 - lat1) / 2.0)
    sin_half_lon = np.sin((lon2 - lon1) / 2.0)
    a = sin_half_lat**2 + math.cos(lat1) * np.cos(lat2) * sin_half_lon**2
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def mean_distance_km(origin: LatLon, points: Sequence[LatLon]) -> Optional[float]:
    """Mean distance from ``origin`` to ``points``; ``None`` when empty."""

    if not points:
        return None
    return float(distances_km(origin, points).mean())


def is_near_home(point: Optional[LatLon], home_profile: Optional[HomeProfile]) -> bool:
    """Return ``True`` when ``point`` lies within the user's home radius.

    Without a configured home location (or without a point) nothing is ever
    near home, which disables every home-specific rule downstream.
    """

    if point is None or home_profile is None or home_profile.home_location is None:
        return False
    return point_distance_km(point, home_profile.home_location) <= home_profile.radius_km


__all__ = [
    "distance_km",
    "point_distance_km",
    "distances_km",
    "mean_distance_km",
    "is_near_home",
]
