"""Bulk distribution of points of interest across the sales hierarchy."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from ...models.domain import PointOfInterest, Profile, Role, Visit, VisitStatus
from ...persistence.store import FieldStore
from .. import hierarchy
from ..errors import (
    AuthorizationError,
    NotFoundError,
    PartialBatchError,
    TransientStoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

OPEN_STATUSES = (VisitStatus.TO_VISIT, VisitStatus.EN_ROUTE, VisitStatus.VISITED)

# a reassigned visit restarts its lifecycle
RESET_PATCH = {
    "status": VisitStatus.TO_VISIT,
    "checkin_time": None,
    "checkout_time": None,
    "scheduled_for": None,
    "fraud_justification": None,
}


@dataclass(slots=True)
class DistributionResult:
    affected: int
    updated: int
    inserted: int
    target_id: str


def _normalize_ids(point_ids: Iterable[str]) -> list[str]:
    ids = [str(point_id).strip() for point_id in point_ids if str(point_id).strip()]
    return list(dict.fromkeys(ids))


async def _load_target(store: FieldStore, requested_by: Profile, target_id: str) -> Profile:
    hierarchy.require_manager_or_admin(requested_by, "distribute routes")
    target = await store.get_profile(target_id)
    if target is None:
        raise NotFoundError(f"Target user '{target_id}' not found.")
    if not hierarchy.can_target(requested_by, target):
        expected = "a manager" if requested_by.role is Role.ADMIN else "a seller on your team"
        raise AuthorizationError(f"Routes can only be distributed to {expected}.")
    return target


async def distribute(
    store: FieldStore,
    point_ids: Iterable[str],
    target_assignee_id: str,
    requested_by: Profile,
) -> DistributionResult:
    """Assign each POI to ``target_assignee_id`` with a fresh ``to_visit`` visit.

    POIs with an open visit have it updated in place (progress discarded);
    the rest get a new visit. Updates and inserts go out as two batches with
    no atomicity between them: if either fails a :class:`PartialBatchError`
    reports what was written, and rows already committed stay committed.
    """

    ids = _normalize_ids(point_ids)
    if not ids:
        raise ValidationError("Select at least one point to distribute.")

    target = await _load_target(store, requested_by, target_assignee_id)

    pois = await store.get_pois(ids)
    found = {poi.id for poi in pois}
    missing = [point_id for point_id in ids if point_id not in found]
    if missing:
        raise NotFoundError(f"Points not found: {missing[:5]}", missing=missing)

    open_visits = await store.list_visits(point_ids=ids, status=OPEN_STATUSES)

    if requested_by.role is not Role.ADMIN and open_visits:
        owner_ids = {visit.user_id for visit in open_visits}
        owners = {owner_id: await store.get_profile(owner_id) for owner_id in owner_ids}
        foreign = [
            visit.point_id
            for visit in open_visits
            if not hierarchy.can_view_visit(requested_by, visit, owners.get(visit.user_id))
        ]
        if foreign:
            logger.warning(
                f"{requested_by.id} tried to redistribute {len(foreign)} point(s) held outside their team"
            )
            raise AuthorizationError(
                "Some points are assigned outside your team and cannot be redistributed.",
                point_ids=foreign,
            )

    points_with_open_visit: dict[str, list[str]] = {}
    for visit in open_visits:
        points_with_open_visit.setdefault(visit.point_id, []).append(visit.id)
    for point_id, visit_ids in points_with_open_visit.items():
        if len(visit_ids) > 1:
            logger.warning(f"Point {point_id} has {len(visit_ids)} open visits; all are reassigned")

    update_ids = [visit_id for visit_ids in points_with_open_visit.values() for visit_id in visit_ids]
    new_rows = [
        Visit(id=str(uuid.uuid4()), point_id=point_id, user_id=target.id, status=VisitStatus.TO_VISIT)
        for point_id in ids
        if point_id not in points_with_open_visit
    ]

    updated = inserted = 0
    failures: list[str] = []
    if update_ids:
        try:
            updated = await store.batch_update_visits(update_ids, {**RESET_PATCH, "user_id": target.id})
        except TransientStoreError as exc:
            logger.error(f"Distribution update batch failed ({len(update_ids)} visits): {exc}")
            failures.append("update")
    if new_rows:
        try:
            inserted = await store.batch_insert_visits(new_rows)
        except TransientStoreError as exc:
            logger.error(f"Distribution insert batch failed ({len(new_rows)} visits): {exc}")
            failures.append("insert")

    if failures:
        raise PartialBatchError(
            f"Distribution failed in the {' and '.join(failures)} batch; "
            f"{updated} visit(s) updated and {inserted} created before the failure.",
            updated=updated,
            inserted=inserted,
            failed_batches=failures,
        )

    logger.info(
        f"{requested_by.id} distributed {len(ids)} point(s) to {target.id} "
        f"({updated} reassigned, {inserted} new)"
    )
    return DistributionResult(affected=len(ids), updated=updated, inserted=inserted, target_id=target.id)


async def list_distribution_targets(store: FieldStore, actor: Profile) -> list[Profile]:
    """Managers for an admin, own sellers for a manager."""

    hierarchy.require_manager_or_admin(actor, "distribute routes")
    if actor.role is Role.ADMIN:
        candidates = await store.list_profiles(role=Role.MANAGER)
    else:
        candidates = await store.list_profiles(role=Role.SELLER, manager_id=actor.id)
    return hierarchy.distribution_targets(actor, candidates)


@dataclass(slots=True)
class QueueEntry:
    visit: Visit
    poi: Optional[PointOfInterest]


async def list_distributable_queue(
    store: FieldStore, actor: Profile, search: Optional[str] = None
) -> list[QueueEntry]:
    """The actor's own pending visits, optionally narrowed by POI name or neighborhood."""

    hierarchy.require_manager_or_admin(actor, "distribute routes")
    visits = await store.list_visits(assignee_ids=[actor.id], status=VisitStatus.TO_VISIT)
    pois = {poi.id: poi for poi in await store.get_pois(visit.point_id for visit in visits)}
    needle = (search or "").strip().lower()
    entries = []
    for visit in visits:
        poi = pois.get(visit.point_id)
        if needle and not (
            poi is not None and (needle in poi.name.lower() or needle in poi.neighborhood.lower())
        ):
            continue
        entries.append(QueueEntry(visit=visit, poi=poi))
    return entries


async def transfer_team(
    store: FieldStore,
    old_manager_id: str,
    new_manager_id: str,
    requested_by: Profile,
) -> int:
    """Move every direct report of one manager under another in a single update."""

    hierarchy.require_admin(requested_by, "transfer teams")
    if old_manager_id == new_manager_id:
        raise ValidationError("Choose a different manager to receive the team.")
    old_manager = await store.get_profile(old_manager_id)
    new_manager = await store.get_profile(new_manager_id)
    for label, profile, profile_id in (
        ("Source", old_manager, old_manager_id),
        ("Destination", new_manager, new_manager_id),
    ):
        if profile is None:
            raise NotFoundError(f"{label} manager '{profile_id}' not found.")
        if profile.role is not Role.MANAGER:
            raise ValidationError(f"{label} user '{profile_id}' is not a manager.")

    moved = await store.reassign_manager(old_manager_id, new_manager_id)
    logger.info(f"Transferred {moved} seller(s) from manager {old_manager_id} to {new_manager_id}")
    return moved


async def set_member_active(
    store: FieldStore,
    member_id: str,
    active: bool,
    requested_by: Profile,
) -> Profile:
    """Block or unblock a managed account."""

    hierarchy.require_manager_or_admin(requested_by, "change account status")
    if member_id == requested_by.id:
        raise ValidationError("You cannot change your own account status.")
    member = await store.get_profile(member_id)
    if member is None:
        raise NotFoundError(f"User '{member_id}' not found.")
    if not hierarchy.can_target(requested_by, member):
        raise AuthorizationError("This user is not under your management.")
    profile = await store.update_profile(member_id, {"is_active": bool(active)})
    logger.info(f"{requested_by.id} set {member_id} active={bool(active)}")
    return profile
