"""Queue optimization schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from .pois import PoiModel
from .visits import PositionModel, VisitModel


class OptimizeRequest(BaseModel):
    assignee_id: Optional[str] = Field(default=None, description="Defaults to the caller.")
    reference: Optional[PositionModel] = Field(default=None, description="Current GPS fix.")
    pivot_query: Optional[str] = Field(default=None, description="Name or neighborhood of a pivot point.")
    radius_km: Optional[float] = Field(default=None, gt=0)


class RankedVisitModel(BaseModel):
    sequence: int
    visit: VisitModel
    poi: Optional[PoiModel] = None
    distance_km: Optional[float] = None


class OptimizeResponse(BaseModel):
    assignee_id: str
    reference: PositionModel
    reference_source: str
    pivot: Optional[PoiModel] = None
    radius_km: Optional[float] = None
    items: List[RankedVisitModel]
    metadata: dict
