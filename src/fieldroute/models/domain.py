"""Domain models for points of interest, visits and the sales hierarchy."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class VisitStatus(str, Enum):
    TO_VISIT = "to_visit"
    EN_ROUTE = "en_route"
    VISITED = "visited"
    FINALIZED = "finalized"


class Role(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    SELLER = "seller"


class PoiCategory(str, Enum):
    SCHOOL = "school"
    HOSPITAL = "hospital"
    URGENT_CARE = "urgent_care"
    CLINIC = "clinic"
    COMPANY = "company"
    RETAIL = "retail"
    OTHER = "other"


class CustomerStatus(str, Enum):
    PENDING = "pending"
    ENROLLED = "enrolled"


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS84 position in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(slots=True)
class PointOfInterest:
    """A physical location eligible for a sales visit."""

    id: str
    name: str
    address: str
    neighborhood: str
    category: PoiCategory = PoiCategory.OTHER
    postal_code: Optional[str] = None
    phone: Optional[str] = None
    coordinates: Optional[str] = None
    created_by: Optional[str] = None
    last_visit_at: Optional[datetime] = None


@dataclass(slots=True)
class Visit:
    """One assignee's engagement with one POI."""

    id: str
    point_id: str
    user_id: str
    status: VisitStatus = VisitStatus.TO_VISIT
    collaborator_count: Optional[int] = None
    checkin_time: Optional[datetime] = None
    checkout_time: Optional[datetime] = None
    scheduled_for: Optional[datetime] = None
    responsible_name: Optional[str] = None
    summary: Optional[str] = None
    fraud_justification: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class Profile:
    """An actor in the admin -> manager -> seller hierarchy."""

    id: str
    role: Role
    manager_id: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    is_active: bool = True
    last_latitude: Optional[float] = None
    last_longitude: Optional[float] = None
    last_location_time: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or self.id

    @property
    def last_location(self) -> Optional[Coordinate]:
        if self.last_latitude is None or self.last_longitude is None:
            return None
        return Coordinate(self.last_latitude, self.last_longitude)


@dataclass(slots=True)
class Customer:
    """A sale registered by a seller, optionally originating from a POI."""

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
    installments: int = 1
    note: Optional[str] = None
    status: CustomerStatus = CustomerStatus.PENDING
    poi_id: Optional[str] = None
    created_at: Optional[datetime] = None
