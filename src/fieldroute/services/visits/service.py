"""Visit status orchestration: authorization, store reads, then the pure state machine."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from ...config import settings
from ...models.domain import Coordinate, Profile, Visit, VisitStatus
from ...persistence.store import FieldStore
from .. import hierarchy
from ..errors import (
    AuthorizationError,
    ConflictError,
    GeofenceJustificationRequired,
    NotFoundError,
    TransientStoreError,
)
from ..geospatial import poi_location
from .state_machine import (
    CheckinPayload,
    FinalizePayload,
    FraudOverridePayload,
    TransitionPayload,
    plan_deferral,
    plan_transition,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _load_actionable_visit(store: FieldStore, actor: Profile, visit_id: str) -> tuple[Visit, Optional[Profile]]:
    visit = await store.get_visit(visit_id)
    if visit is None:
        raise NotFoundError(f"Visit '{visit_id}' not found.")
    assignee = actor if visit.user_id == actor.id else await store.get_profile(visit.user_id)
    if not hierarchy.can_view_visit(actor, visit, assignee):
        logger.warning(f"{actor.id} ({actor.role.value}) denied access to visit {visit_id}")
        raise AuthorizationError("You cannot act on this visit.")
    return visit, assignee


async def has_active_route(store: FieldStore, assignee_id: str, *, excluding: Optional[str] = None) -> bool:
    """Check-then-act query against current state; not a lock."""

    active = await store.list_visits(assignee_ids=[assignee_id], status=VisitStatus.EN_ROUTE)
    return any(visit.id != excluding for visit in active)


async def transition_visit(
    store: FieldStore,
    actor: Profile,
    visit_id: str,
    target: VisitStatus,
    payload: Optional[TransitionPayload] = None,
    *,
    assignee_location: Optional[Coordinate] = None,
    now: Optional[datetime] = None,
) -> Visit:
    """Advance a visit one step and persist the result.

    ``assignee_location`` is the device fix sent with an arrival; without one
    the assignee's last reported position is used for the geofence.

    Finalizing also stamps the POI's ``last_visit_at`` in a second write. If
    that write fails the visit stays finalized and the error carries
    ``reason="poi_stamp_failed"`` and the visit id.
    """

    now = now or _utcnow()
    visit, assignee = await _load_actionable_visit(store, actor, visit_id)

    other_active = False
    if target is VisitStatus.EN_ROUTE and visit.status is VisitStatus.TO_VISIT:
        # keyed on the assignee, since a manager may act for a seller
        other_active = await has_active_route(store, visit.user_id, excluding=visit.id)

    poi = None
    if target is VisitStatus.VISITED:
        poi = await store.get_poi(visit.point_id)
        if assignee_location is None and assignee is not None:
            assignee_location = assignee.last_location

    try:
        patch = plan_transition(
            visit,
            target,
            payload,
            now=now,
            has_other_active_route=other_active,
            assignee_location=assignee_location,
            poi_location=poi_location(poi),
            geofence_threshold_km=settings.geofence_threshold_km,
            min_justification_length=settings.fraud_justification_min_length,
        )
    except (ConflictError, GeofenceJustificationRequired) as exc:
        logger.warning(f"Visit {visit_id} -> {target.value} blocked for {actor.id}: {exc.reason}")
        raise

    if "fraud_justification" in patch:
        logger.warning(f"Visit {visit_id} checked in outside the geofence with justification")

    updated = await store.update_visit(visit_id, patch)
    logger.info(f"Visit {visit_id}: {visit.status.value} -> {updated.status.value} by {actor.id}")

    if target is VisitStatus.FINALIZED:
        try:
            await store.update_poi(visit.point_id, {"last_visit_at": updated.checkout_time})
        except TransientStoreError as exc:
            logger.error(f"Visit {visit_id} finalized but POI {visit.point_id} was not stamped: {exc}")
            raise TransientStoreError(
                f"Visit {visit_id} was finalized, but updating the point's last visit date failed.",
                reason="poi_stamp_failed",
                visit_id=visit_id,
                point_id=visit.point_id,
            ) from exc

    return updated


async def start_route(
    store: FieldStore,
    actor: Profile,
    visit_id: str,
    payload: Optional[CheckinPayload] = None,
    *,
    now: Optional[datetime] = None,
) -> Visit:
    return await transition_visit(store, actor, visit_id, VisitStatus.EN_ROUTE, payload, now=now)


async def mark_visited(
    store: FieldStore,
    actor: Profile,
    visit_id: str,
    payload: Optional[FraudOverridePayload] = None,
    *,
    assignee_location: Optional[Coordinate] = None,
    now: Optional[datetime] = None,
) -> Visit:
    return await transition_visit(
        store,
        actor,
        visit_id,
        VisitStatus.VISITED,
        payload,
        assignee_location=assignee_location,
        now=now,
    )


async def finalize_visit(
    store: FieldStore,
    actor: Profile,
    visit_id: str,
    payload: FinalizePayload,
    *,
    now: Optional[datetime] = None,
) -> Visit:
    return await transition_visit(store, actor, visit_id, VisitStatus.FINALIZED, payload, now=now)


async def schedule_visit(
    store: FieldStore,
    actor: Profile,
    visit_id: str,
    scheduled_for: Optional[datetime],
    *,
    now: Optional[datetime] = None,
) -> Visit:
    """Defer (or un-defer) a pending visit without changing its status."""

    now = now or _utcnow()
    visit, _ = await _load_actionable_visit(store, actor, visit_id)
    patch = plan_deferral(visit, scheduled_for, now=now)
    updated = await store.update_visit(visit_id, patch)
    logger.info(f"Visit {visit_id} scheduled_for={patch['scheduled_for']} by {actor.id}")
    return updated
