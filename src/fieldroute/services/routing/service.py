"""Route ordering orchestration service."""

from __future__ import annotations

import logging
from typing import Optional

from ...config import settings
from ...models.domain import Coordinate, PointOfInterest, Profile, VisitStatus
from ...persistence.store import FieldStore
from .. import hierarchy
from ..errors import AuthorizationError, NotFoundError, ValidationError
from ..geospatial import poi_location
from ..tracking.device import PositionSource, acquire_fix
from .models import OptimizedQueue
from .proximity import filter_within_radius, find_pivot, order_by_proximity

logger = logging.getLogger(__name__)

PIVOT_SEARCH_PAGE_SIZE = 100


async def _resolve_assignee(store: FieldStore, actor: Profile, assignee_id: Optional[str]) -> Profile:
    if not assignee_id or assignee_id == actor.id:
        return actor
    assignee = await store.get_profile(assignee_id)
    if assignee is None:
        raise NotFoundError(f"User '{assignee_id}' not found.")
    if not hierarchy.can_view_profile(actor, assignee):
        raise AuthorizationError("You cannot view this user's route.")
    return assignee


async def _resolve_pivot(
    store: FieldStore, queue_pois: list[PointOfInterest], query: str
) -> PointOfInterest:
    pivot = find_pivot(queue_pois, query)
    if pivot is None:
        candidates, _ = await store.list_pois(text_search=query, page=1, page_size=PIVOT_SEARCH_PAGE_SIZE)
        pivot = find_pivot(candidates, query)
    if pivot is None:
        raise NotFoundError(f"No point with coordinates matches '{query}'.", reason="pivot_not_found")
    return pivot


async def optimize_queue(
    store: FieldStore,
    actor: Profile,
    *,
    assignee_id: Optional[str] = None,
    reference: Optional[Coordinate] = None,
    pivot_query: Optional[str] = None,
    radius_km: Optional[float] = None,
    position_source: Optional[PositionSource] = None,
) -> OptimizedQueue:
    """Order an assignee's ``to_visit`` queue by distance to a reference point.

    The reference is, in order of preference: a pivot POI matched by text, an
    explicit coordinate, a fresh fix from ``position_source``, or the
    assignee's last reported position. A pivot defaults the radius filter to
    ``settings.default_pivot_radius_km``. Nothing is persisted.
    """

    if radius_km is not None and radius_km <= 0:
        raise ValidationError("Radius must be greater than zero.")

    assignee = await _resolve_assignee(store, actor, assignee_id)
    visits = await store.list_visits(assignee_ids=[assignee.id], status=VisitStatus.TO_VISIT)
    pois = await store.get_pois(visit.point_id for visit in visits)
    pois_by_id = {poi.id: poi for poi in pois}

    pivot: Optional[PointOfInterest] = None
    if pivot_query and pivot_query.strip():
        pivot = await _resolve_pivot(store, pois, pivot_query)
        reference = poi_location(pivot)
        source = "pivot"
        if radius_km is None:
            radius_km = settings.default_pivot_radius_km
    elif reference is not None:
        source = "gps"
    elif position_source is not None:
        reference = await acquire_fix(position_source)
        source = "gps"
    elif assignee.last_location is not None:
        reference = assignee.last_location
        source = "last_known"
    else:
        raise ValidationError(
            "A reference position is required: send a GPS fix or a pivot search.",
            reason="reference_required",
        )

    items = order_by_proximity(visits, reference, pois_by_id)
    if radius_km is not None:
        items = filter_within_radius(items, reference, radius_km)

    logger.info(
        f"Ordered {len(items)} of {len(visits)} pending visits for {assignee.id} "
        f"(reference={source}, radius_km={radius_km})"
    )
    return OptimizedQueue(
        assignee_id=assignee.id,
        reference=reference,
        reference_source=source,
        items=items,
        pivot=pivot,
        radius_km=radius_km,
        metadata={
            "pending_total": len(visits),
            "without_coordinates": sum(1 for item in items if item.distance_km is None),
        },
    )
