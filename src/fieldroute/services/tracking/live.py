"""Live seller positions for team monitoring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from ...config import settings
from ...models.domain import Coordinate, Profile, Role
from ...persistence.store import FieldStore
from .. import hierarchy

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LocationReport:
    accepted: bool
    profile: Profile
    retry_after_seconds: float = 0.0


async def report_location(
    store: FieldStore,
    actor: Profile,
    coordinate: Coordinate,
    *,
    now: Optional[datetime] = None,
    min_interval_seconds: Optional[float] = None,
) -> LocationReport:
    """Record the actor's position unless the last accepted one is too recent."""

    now = now or datetime.now(timezone.utc)
    interval = settings.location_min_interval_seconds if min_interval_seconds is None else min_interval_seconds
    last = actor.last_location_time
    if last is not None:
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)
        elapsed = (now - last).total_seconds()
        if 0 <= elapsed < interval:
            return LocationReport(accepted=False, profile=actor, retry_after_seconds=interval - elapsed)

    profile = await store.update_profile(
        actor.id,
        {
            "last_latitude": coordinate.latitude,
            "last_longitude": coordinate.longitude,
            "last_location_time": now,
        },
    )
    logger.debug(f"Location stored for {actor.id}: {coordinate.latitude}, {coordinate.longitude}")
    return LocationReport(accepted=True, profile=profile)


async def list_team_locations(store: FieldStore, actor: Profile) -> list[Profile]:
    """Sellers with a known position that the actor is allowed to see."""

    if actor.role is Role.MANAGER:
        candidates = await store.list_profiles(role=Role.SELLER, manager_id=actor.id)
    else:
        candidates = await store.list_profiles(role=Role.SELLER)
    visible = hierarchy.visible_profiles(actor, candidates)
    return [profile for profile in visible if profile.last_location is not None]
