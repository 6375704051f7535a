"""Domain dataclass to response-schema conversion."""

from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from ..models.domain import Coordinate, PointOfInterest, Profile, Visit
from ..schemas.pois import PoiModel
from ..schemas.team import ProfileModel
from ..schemas.visits import PositionModel, VisitModel


def visit_model(visit: Visit) -> VisitModel:
    return VisitModel(**asdict(visit))


def poi_model(poi: Optional[PointOfInterest]) -> Optional[PoiModel]:
    return PoiModel(**asdict(poi)) if poi is not None else None


def profile_model(profile: Profile) -> ProfileModel:
    return ProfileModel(
        id=profile.id,
        role=profile.role,
        manager_id=profile.manager_id,
        full_name=profile.full_name,
        email=profile.email,
        is_active=profile.is_active,
    )


def position_model(coordinate: Coordinate) -> PositionModel:
    return PositionModel(latitude=coordinate.latitude, longitude=coordinate.longitude)


def coordinate_from(position: Optional[PositionModel]) -> Optional[Coordinate]:
    if position is None:
        return None
    return Coordinate(position.latitude, position.longitude)
