"""Team management and live location endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ...models.domain import Coordinate, Profile
from ...persistence.store import FieldStore
from ...schemas.team import (
    ActiveRequest,
    LocationReportResponse,
    MemberLocationModel,
    ProfileModel,
    TransferRequest,
    TransferResponse,
)
from ...schemas.visits import PositionModel
from ...services.distribution.service import set_member_active, transfer_team
from ...services.tracking.live import list_team_locations, report_location
from ..dependencies import get_current_actor, get_store
from ..serializers import position_model, profile_model

router = APIRouter(prefix="/team", tags=["team"])


@router.post("/transfer", response_model=TransferResponse, status_code=status.HTTP_200_OK)
async def transfer(
    payload: TransferRequest,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> TransferResponse:
    moved = await transfer_team(store, payload.old_manager_id, payload.new_manager_id, actor)
    return TransferResponse(moved=moved)


@router.get("/locations", response_model=List[MemberLocationModel], status_code=status.HTTP_200_OK)
async def locations(
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> List[MemberLocationModel]:
    return [
        MemberLocationModel(
            id=member.id,
            name=member.display_name,
            manager_id=member.manager_id,
            position=position_model(member.last_location),
            last_location_time=member.last_location_time,
        )
        for member in await list_team_locations(store, actor)
    ]


@router.post("/location", response_model=LocationReportResponse, status_code=status.HTTP_200_OK)
async def location(
    payload: PositionModel,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> LocationReportResponse:
    report = await report_location(store, actor, Coordinate(payload.latitude, payload.longitude))
    return LocationReportResponse(
        accepted=report.accepted,
        retry_after_seconds=round(report.retry_after_seconds, 1),
        last_location_time=report.profile.last_location_time,
    )


@router.post("/{member_id}/active", response_model=ProfileModel, status_code=status.HTTP_200_OK)
async def toggle_active(
    member_id: str,
    payload: ActiveRequest,
    actor: Profile = Depends(get_current_actor),
    store: FieldStore = Depends(get_store),
) -> ProfileModel:
    profile = await set_member_active(store, member_id, payload.active, actor)
    return profile_model(profile)
