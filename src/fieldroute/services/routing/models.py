"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...models.domain import Coordinate, PointOfInterest, Visit


@dataclass(slots=True)
class RankedVisit:
    visit: Visit
    poi: Optional[PointOfInterest]
    distance_km: Optional[float]


@dataclass(slots=True)
class OptimizedQueue:
    assignee_id: str
    reference: Coordinate
    reference_source: str
    items: List[RankedVisit]
    pivot: Optional[PointOfInterest] = None
    radius_km: Optional[float] = None
    metadata: dict = field(default_factory=dict)
