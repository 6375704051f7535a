"""Proximity ordering of a visit queue.

Pure presentation helpers: nothing here touches persisted state, so they can
be re-run with any reference point.
"""

from __future__ import annotations

import math
from typing import Iterable, Mapping, Optional, Sequence

from ...models.domain import Coordinate, PointOfInterest, Visit
from ..geospatial import distance_km, poi_location
from .models import RankedVisit


def rank_visits(
    visits: Iterable[Visit],
    reference: Coordinate,
    pois_by_id: Mapping[str, PointOfInterest],
) -> list[RankedVisit]:
    """Attach the distance from ``reference`` to each visit's POI, keeping input order."""

    ranked = []
    for visit in visits:
        poi = pois_by_id.get(visit.point_id)
        location = poi_location(poi)
        ranked.append(
            RankedVisit(
                visit=visit,
                poi=poi,
                distance_km=distance_km(reference, location) if location else None,
            )
        )
    return ranked


def order_by_proximity(
    visits: Iterable[Visit],
    reference: Coordinate,
    pois_by_id: Mapping[str, PointOfInterest],
) -> list[RankedVisit]:
    """Nearest first; visits without usable coordinates go last in input order."""

    ranked = rank_visits(visits, reference, pois_by_id)
    indexed = list(enumerate(ranked))
    indexed.sort(
        key=lambda pair: (
            math.inf if pair[1].distance_km is None else pair[1].distance_km,
            pair[0],
        )
    )
    return [item for _, item in indexed]


def find_pivot(pois: Sequence[PointOfInterest], query: str) -> Optional[PointOfInterest]:
    """First POI with coordinates whose name, then neighborhood, contains ``query``."""

    needle = (query or "").strip().lower()
    if not needle:
        return None
    located = [poi for poi in pois if poi_location(poi) is not None]
    for poi in located:
        if needle in poi.name.lower():
            return poi
    for poi in located:
        if needle in poi.neighborhood.lower():
            return poi
    return None


def filter_within_radius(
    items: Iterable[RankedVisit],
    center: Coordinate,
    radius_km: float,
) -> list[RankedVisit]:
    """Keep items whose POI lies within ``radius_km`` of ``center``, preserving order."""

    kept = []
    for item in items:
        location = poi_location(item.poi)
        if location is not None and distance_km(center, location) <= radius_km:
            kept.append(item)
    return kept
