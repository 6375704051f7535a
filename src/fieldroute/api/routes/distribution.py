"""Bulk distribution endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ...models.domain import Profile
from ...persistence.store import FieldStore
from ...schemas.team import DistributionRequest, DistributionResponse, ProfileModel, QueueEntryModel
from ...services.distribution.service import (
    distribute,
    list_distributable_queue,
    list_distribution_targets,
)
from ..dependencies import get_current_actor, get_store
from ..serializers import poi_model, profile_model, visit_model

router = APIRouter(prefix="/distribution", tags=["distribution"])


@router.get("/targets", response_model=List[ProfileModel], status_code=status.HTTP_200_OK)
async def get_targets(
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> List[ProfileModel]:
    return [profile_model(profile) for profile in await list_distribution_targets(store, actor)]


@router.get("/queue", response_model=List[QueueEntryModel], status_code=status.HTTP_200_OK)
async def get_queue(
    search: Optional[str] = Query(default=None, description="Filter by point name or neighborhood"),
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> List[QueueEntryModel]:
    entries = await list_distributable_queue(store, actor, search)
    return [QueueEntryModel(visit=visit_model(entry.visit), poi=poi_model(entry.poi)) for entry in entries]


@router.post("", response_model=DistributionResponse, status_code=status.HTTP_200_OK)
async def post_distribution(
    payload: DistributionRequest,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> DistributionResponse:
    result = await distribute(store, payload.point_ids, payload.target_id, actor)
    return DistributionResponse(
        affected=result.affected,
        updated=result.updated,
        inserted=result.inserted,
        target_id=result.target_id,
    )
