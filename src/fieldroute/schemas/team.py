"""Distribution and team management schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.domain import Role
from .pois import PoiModel
from .visits import PositionModel, VisitModel


class DistributionRequest(BaseModel):
    point_ids: List[str] = Field(..., min_length=1)
    target_id: str


class DistributionResponse(BaseModel):
    affected: int
    updated: int
    inserted: int
    target_id: str


class ProfileModel(BaseModel):
    id: str
    role: Role
    manager_id: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    is_active: bool = True


class QueueEntryModel(BaseModel):
    visit: VisitModel
    poi: Optional[PoiModel] = None


class TransferRequest(BaseModel):
    old_manager_id: str
    new_manager_id: str


class TransferResponse(BaseModel):
    moved: int


class ActiveRequest(BaseModel):
    active: bool


class LocationReportResponse(BaseModel):
    accepted: bool
    retry_after_seconds: float = 0.0
    last_location_time: Optional[datetime] = None


class MemberLocationModel(BaseModel):
    id: str
    name: str
    manager_id: Optional[str] = None
    position: PositionModel
    last_location_time: Optional[datetime] = None
