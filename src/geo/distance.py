"""Great-circle distance utilities using the Haversine formula."""

import math
from typing import Any

import numpy as np

# Earth's mean radius in kilometers
EARTH_RADIUS_KM = 6371.0


def as_coordinate(value: Any) -> float | None:
    """Parse a latitude or longitude, or None if missing, non-numeric or not finite."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Uses the Haversine formula on a sphere (no ellipsoidal correction).

    Args:
        lat1: Latitude of first point (degrees)
        lon1: Longitude of first point (degrees)
        lat2: Latitude of second point (degrees)
        lon2: Longitude of second point (degrees)

    Returns:
        Distance in kilometers
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push a just past 1 for nearly antipodal points
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_many(
    lat: float, lon: float, lats: np.ndarray, lons: np.ndarray
) -> np.ndarray:
    """
    Vectorized Haversine distance from one point to many.

    Args:
        lat: Latitude of the origin (degrees)
        lon: Longitude of the origin (degrees)
        lats: Latitudes of the targets (degrees)
        lons: Longitudes of the targets (degrees)

    Returns:
        Array of distances in kilometers, one per target
    """
    lats_rad = np.radians(np.asarray(lats, dtype=float))
    lons_rad = np.radians(np.asarray(lons, dtype=float))
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)

    a = (
        np.sin((lats_rad - lat_rad) / 2) ** 2
        + math.cos(lat_rad) * np.cos(lats_rad) * np.sin((lons_rad - lon_rad) / 2) ** 2
    )
    a = np.clip(a, 0.0, 1.0)
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return EARTH_RADIUS_KM * c
