"""Point of interest registration and search."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from ..config import settings
from ..models.domain import PoiCategory, PointOfInterest, Profile
from ..persistence.store import FieldStore
from ..schemas.pois import PoiCreateRequest
from .errors import ValidationError
from .geospatial import format_coordinate, parse_coordinate

logger = logging.getLogger(__name__)


async def register_poi(store: FieldStore, actor: Profile, payload: PoiCreateRequest) -> PointOfInterest:
    coordinates = None
    if payload.coordinates:
        parsed = parse_coordinate(payload.coordinates)
        if parsed is None:
            raise ValidationError(
                f"Invalid coordinates '{payload.coordinates}'; expected \"lat, lng\".",
                reason="invalid_coordinate",
            )
        coordinates = format_coordinate(parsed)

    poi = PointOfInterest(
        id=str(uuid.uuid4()),
        name=payload.name,
        address=payload.address,
        neighborhood=payload.neighborhood,
        category=payload.category,
        postal_code=payload.postal_code,
        phone=payload.phone,
        coordinates=coordinates,
        created_by=actor.id,
    )
    stored = await store.insert_poi(poi)
    logger.info(f"POI {stored.id} '{stored.name}' registered by {actor.id}")
    return stored


async def list_pois(
    store: FieldStore,
    *,
    category: Optional[PoiCategory] = None,
    search: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> tuple[list[PointOfInterest], int, int]:
    """Returns ``(items, total, effective_page_size)``."""

    if page < 1:
        raise ValidationError("Page must be 1 or greater.")
    size = page_size or settings.poi_page_size
    size = max(1, min(size, settings.poi_max_page_size))
    items, total = await store.list_pois(category=category, text_search=search, page=page, page_size=size)
    return items, total, size
