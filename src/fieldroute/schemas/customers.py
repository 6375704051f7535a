"""Customer (sale) schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.domain import CustomerStatus


class CustomerCreateRequest(BaseModel):
    full_name: str = Field(..., min_length=3, max_length=150)
    document_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    course: Optional[str] = None
    enrollment_fee: Optional[float] = Field(default=None, ge=0)
    monthly_fee: Optional[float] = Field(default=None, ge=0)
    installments: int = Field(default=1, ge=1)
    note: Optional[str] = None
    status: CustomerStatus = CustomerStatus.PENDING
    poi_id: Optional[str] = Field(default=None, description="Point where the sale originated.")


class CustomerModel(BaseModel):
    id: str
    full_name: str
    seller_id: str
    document_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    course: Optional[str] = None
    enrollment_fee: Optional[float] = None
    monthly_fee: Optional[float] = None
    installments: int
    note: Optional[str] = None
    status: CustomerStatus
    poi_id: Optional[str] = None
    created_at: Optional[datetime] = None
