"""Visit board and lifecycle endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ...models.domain import Coordinate, Profile
from ...persistence.store import FieldStore
from ...schemas.visits import (
    ArriveRequest,
    BoardCardModel,
    BoardResponse,
    FinalizeRequest,
    HintsRequest,
    HintsResponse,
    ScheduleRequest,
    StartRouteRequest,
    SummaryResponse,
    VisitModel,
)
from ...services.visits.annotator import extract_finalize_hints
from ...services.visits.board import load_board, summarize
from ...services.visits.service import finalize_visit, mark_visited, schedule_visit, start_route
from ...services.visits.state_machine import CheckinPayload, FinalizePayload, FraudOverridePayload
from ..dependencies import get_current_actor, get_store
from ..serializers import coordinate_from, poi_model, visit_model

router = APIRouter(prefix="/visits", tags=["visits"])


@router.get("/board", response_model=BoardResponse, status_code=status.HTTP_200_OK)
async def get_board(
    lat: Optional[float] = Query(default=None, ge=-90, le=90, description="Reference latitude for distances"),
    lng: Optional[float] = Query(default=None, ge=-180, le=180, description="Reference longitude for distances"),
    manager_id: Optional[str] = Query(default=None, description="Admin only: narrow to one manager's team"),
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> BoardResponse:
    reference = Coordinate(lat, lng) if lat is not None and lng is not None else None
    board = await load_board(store, actor, reference=reference, manager_filter=manager_id)
    return BoardResponse(
        total=board.total,
        columns={
            column: [
                BoardCardModel(
                    visit=visit_model(card.visit),
                    poi=poi_model(card.poi),
                    assignee_name=card.assignee_name,
                    distance_km=card.distance_km,
                    deferred=card.deferred,
                    next_status=card.next_status,
                )
                for card in cards
            ]
            for column, cards in board.columns.items()
        },
    )


@router.get("/summary", response_model=SummaryResponse, status_code=status.HTTP_200_OK)
async def get_summary(
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> SummaryResponse:
    summary = await summarize(store, actor)
    return SummaryResponse(
        counts=summary.counts,
        visited_today=summary.visited_today,
        enrolled_this_month=summary.enrolled_this_month,
        conversion_pct=summary.conversion_pct,
    )


@router.post("/{visit_id}/start", response_model=VisitModel, status_code=status.HTTP_200_OK)
async def start(
    visit_id: str,
    payload: Optional[StartRouteRequest] = None,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> VisitModel:
    provider = payload.navigation_provider if payload else None
    visit = await start_route(store, actor, visit_id, CheckinPayload(navigation_provider=provider))
    return visit_model(visit)


@router.post("/{visit_id}/arrive", response_model=VisitModel, status_code=status.HTTP_200_OK)
async def arrive(
    visit_id: str,
    payload: Optional[ArriveRequest] = None,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> VisitModel:
    payload = payload or ArriveRequest()
    visit = await mark_visited(
        store,
        actor,
        visit_id,
        FraudOverridePayload(justification=payload.justification),
        assignee_location=coordinate_from(payload.position),
    )
    return visit_model(visit)


@router.post("/{visit_id}/finalize", response_model=VisitModel, status_code=status.HTTP_200_OK)
async def finalize(
    visit_id: str,
    payload: FinalizeRequest,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> VisitModel:
    visit = await finalize_visit(
        store,
        actor,
        visit_id,
        FinalizePayload(
            collaborator_count=payload.collaborator_count,
            responsible_name=payload.responsible_name,
            summary=payload.summary,
        ),
    )
    return visit_model(visit)


@router.post("/{visit_id}/schedule", response_model=VisitModel, status_code=status.HTTP_200_OK)
async def schedule(
    visit_id: str,
    payload: ScheduleRequest,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> VisitModel:
    visit = await schedule_visit(store, actor, visit_id, payload.scheduled_for)
    return visit_model(visit)


@router.post("/hints", response_model=HintsResponse, status_code=status.HTTP_200_OK)
async def hints(payload: HintsRequest, actor: Profile = Depends(get_current_actor)) -> HintsResponse:
    extracted = extract_finalize_hints(payload.text)
    return HintsResponse(
        responsible_name=extracted.responsible_name,
        collaborator_count=extracted.collaborator_count,
    )
