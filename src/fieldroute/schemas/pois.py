"""Point of interest schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import PoiCategory


class PoiCreateRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)
    address: str = Field(..., min_length=5, max_length=200)
    neighborhood: str = Field(..., min_length=2, max_length=100)
    postal_code: Optional[str] = Field(default=None, pattern=r"^\d{5}-?\d{3}$")
    phone: Optional[str] = None
    category: PoiCategory = PoiCategory.OTHER
    coordinates: Optional[str] = Field(default=None, description='Position as "lat, lng".')

    @field_validator("name", "address", "neighborhood", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("postal_code", "phone", "coordinates", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class PoiModel(BaseModel):
    id: str
    name: str
    address: str
    neighborhood: str
    category: PoiCategory
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    coordinates: Optional[str] = None
    created_by: Optional[str] = None
    last_visit_at: Optional[datetime] = None


class PoiListResponse(BaseModel):
    items: List[PoiModel]
    page: int
    page_size: int
    total: int
    has_next_page: bool
