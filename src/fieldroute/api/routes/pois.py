"""Point of interest endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...models.domain import PoiCategory, Profile
from ...persistence.store import FieldStore
from ...schemas.pois import PoiCreateRequest, PoiListResponse, PoiModel
from ...services.pois import list_pois, register_poi
from ..dependencies import get_current_actor, get_store
from ..serializers import poi_model

router = APIRouter(prefix="/pois", tags=["pois"])


@router.get("", response_model=PoiListResponse, status_code=status.HTTP_200_OK)
async def get_pois(
    category: Optional[PoiCategory] = Query(default=None, description="Optional category filter"),
    search: Optional[str] = Query(default=None, description="Match on name, address or neighborhood"),
    page: int = Query(default=1, ge=1, description="1-based page index for pagination"),
    page_size: Optional[int] = Query(default=None, ge=1, description="Records per page"),
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> PoiListResponse:
    items, total, size = await list_pois(store, category=category, search=search, page=page, page_size=page_size)
    return PoiListResponse(
        items=[poi_model(poi) for poi in items],
        page=page,
        page_size=size,
        total=total,
        has_next_page=(page - 1) * size + len(items) < total,
    )


@router.post("", response_model=PoiModel, status_code=status.HTTP_201_CREATED)
async def create_poi(
    payload: PoiCreateRequest,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> PoiModel:
    return poi_model(await register_poi(store, actor, payload))
