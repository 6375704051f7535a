"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Optional

from ..models.domain import Coordinate, PointOfInterest

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance in kilometres between two coordinates."""

    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def parse_coordinate(value: Optional[str]) -> Optional[Coordinate]:
    """Parse a ``"lat, lng"`` string.

    Returns ``None`` for blank, malformed, non-finite or out-of-range input so
    callers can treat the distance as unknown instead of failing.
    """

    if value is None:
        return None
    parts = [part.strip() for part in str(value).split(",")]
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    try:
        lat = float(parts[0])
        lon = float(parts[1])
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return Coordinate(lat, lon)


def format_coordinate(coordinate: Coordinate) -> str:
    """Serialize to the ``"lat, lng"`` convention; ``repr`` keeps full float precision."""

    return f"{coordinate.latitude!r}, {coordinate.longitude!r}"


def poi_location(poi: Optional[PointOfInterest]) -> Optional[Coordinate]:
    if poi is None:
        return None
    return parse_coordinate(poi.coordinates)


def optional_distance_km(a: Optional[Coordinate], b: Optional[Coordinate]) -> Optional[float]:
    """Distance when both ends are known, ``None`` otherwise."""

    if a is None or b is None:
        return None
    return distance_km(a, b)
