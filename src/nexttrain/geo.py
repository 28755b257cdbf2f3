"""Nearest-station queries over the stop list."""

import math
from typing import Iterable, List, Optional, Tuple

from .config import EARTH_RADIUS_M, NEARBY_LIMIT, NEARBY_RADIUS_M, WALK_METERS_PER_MIN
from .models import StopRecord


def distance_meters(a_lat: float, a_lon: float, b_lat: float, b_lon: float) -> float:
    """Great-circle distance between two points (haversine)."""
    d_lat = math.radians(b_lat - a_lat)
    d_lon = math.radians(b_lon - a_lon)
    lat1 = math.radians(a_lat)
    lat2 = math.radians(b_lat)
    x = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(x), math.sqrt(1 - x))


def _coord(value) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def stop_distance(lat: float, lon: float, stop: StopRecord) -> float:
    """Distance to a stop; infinite when the stop has no usable coordinates."""
    stop_lat = _coord(stop.lat)
    stop_lon = _coord(stop.lon)
    if stop_lat is None or stop_lon is None:
        return math.inf
    return distance_meters(lat, lon, stop_lat, stop_lon)


def nearby_stops(
    lat: float,
    lon: float,
    stops: Iterable[StopRecord],
    radius_m: float = NEARBY_RADIUS_M,
    limit: int = NEARBY_LIMIT,
) -> List[Tuple[StopRecord, float]]:
    """
    Find the stops closest to a point.

    Stops within ``radius_m`` are returned nearest first. If none are that
    close, the nearest stops overall are returned instead. Either way at
    most ``limit`` results come back.

    Args:
        lat: Query latitude.
        lon: Query longitude.
        stops: Stop list to search.
        radius_m: Preferred search radius in meters.
        limit: Maximum number of results.

    Returns:
        List of (stop, distance in meters) pairs.
    """
    with_dist = sorted(
        ((stop, stop_distance(lat, lon, stop)) for stop in stops),
        key=lambda pair: pair[1],
    )
    within = [pair for pair in with_dist if pair[1] <= radius_m]
    return (within or with_dist)[:limit]


def format_walk_minutes(meters: float) -> str:
    """Rough walking time label, e.g. "< 1 min" or "6 min"."""
    if not math.isfinite(meters):
        return ""
    if meters < WALK_METERS_PER_MIN:
        return "< 1 min"
    return f"{max(1, round(meters / WALK_METERS_PER_MIN))} min"
