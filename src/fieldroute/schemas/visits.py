"""Visit board and transition schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.domain import VisitStatus
from .pois import PoiModel


class PositionModel(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class StartRouteRequest(BaseModel):
    navigation_provider: Optional[str] = Field(default=None, description="Informational only (e.g. 'waze').")


class ArriveRequest(BaseModel):
    position: Optional[PositionModel] = Field(
        default=None,
        description="Device fix at arrival; the last reported position is used when omitted.",
    )
    justification: Optional[str] = Field(default=None, description="Required when outside the geofence.")


class FinalizeRequest(BaseModel):
    collaborator_count: Any = Field(..., description="Non-negative integer (numeric strings accepted).")
    responsible_name: Optional[str] = None
    summary: Optional[str] = None


class ScheduleRequest(BaseModel):
    scheduled_for: Optional[datetime] = Field(default=None, description="Future date; null clears the deferral.")


class HintsRequest(BaseModel):
    text: str = ""


class HintsResponse(BaseModel):
    responsible_name: Optional[str] = None
    collaborator_count: Optional[int] = None


class VisitModel(BaseModel):
    id: str
    point_id: str
    user_id: str
    status: VisitStatus
    collaborator_count: Optional[int] = None
    checkin_time: Optional[datetime] = None
    checkout_time: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    responsible_name: Optional[str] = None
    summary: Optional[str] = None
    fraud_justification: Optional[str] = None
    created_at: Optional[datetime] = None


class BoardCardModel(BaseModel):
    visit: VisitModel
    poi: Optional[PoiModel] = None
    assignee_name: Optional[str] = None
    distance_km: Optional[float] = None
    deferred: bool = False
    next_status: Optional[VisitStatus] = None


class BoardResponse(BaseModel):
    total: int
    columns: Dict[VisitStatus, List[BoardCardModel]]


class SummaryResponse(BaseModel):
    counts: Dict[VisitStatus, int]
    visited_today: int
    enrolled_this_month: int
    conversion_pct: int
