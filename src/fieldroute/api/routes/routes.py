"""Queue optimization endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...models.domain import Profile
from ...persistence.store import FieldStore
from ...schemas.routing import OptimizeRequest, OptimizeResponse, RankedVisitModel
from ...services.routing.service import optimize_queue
from ..dependencies import get_current_actor, get_store
from ..serializers import coordinate_from, poi_model, position_model, visit_model

router = APIRouter(prefix="/routes", tags=["routes"])


@router.post("/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
async def optimize(
    payload: OptimizeRequest,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> OptimizeResponse:
    queue = await optimize_queue(
        store,
        actor,
        assignee_id=payload.assignee_id,
        reference=coordinate_from(payload.reference),
        pivot_query=payload.pivot_query,
        radius_km=payload.radius_km,
    )
    return OptimizeResponse(
        assignee_id=queue.assignee_id,
        reference=position_model(queue.reference),
        reference_source=queue.reference_source,
        pivot=poi_model(queue.pivot),
        radius_km=queue.radius_km,
        items=[
            RankedVisitModel(
                sequence=index,
                visit=visit_model(item.visit),
                poi=poi_model(item.poi),
                distance_km=round(item.distance_km, 3) if item.distance_km is not None else None,
            )
            for index, item in enumerate(queue.items, start=1)
        ],
        metadata=queue.metadata,
    )
