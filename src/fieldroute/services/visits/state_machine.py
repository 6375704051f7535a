"""Visit status lifecycle.

The chain is strictly linear::

    to_visit -> en_route -> visited -> finalized

Every function here is pure: it inspects the current visit plus the inputs
gathered by the caller and either returns the patch to persist or raises one
of the errors from :mod:`fieldroute.services.errors`. Nothing is mutated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

from ...models.domain import Coordinate, Visit, VisitStatus
from ..errors import ConflictError, GeofenceJustificationRequired, ValidationError
from ..geospatial import optional_distance_km

NEXT_STATUS: dict[VisitStatus, Optional[VisitStatus]] = {
    VisitStatus.TO_VISIT: VisitStatus.EN_ROUTE,
    VisitStatus.EN_ROUTE: VisitStatus.VISITED,
    VisitStatus.VISITED: VisitStatus.FINALIZED,
    VisitStatus.FINALIZED: None,
}

DEFERRABLE_STATUSES = frozenset({VisitStatus.TO_VISIT, VisitStatus.EN_ROUTE})

_INTEGER_RE = re.compile(r"^-?\d+$")


@dataclass(frozen=True, slots=True)
class CheckinPayload:
    """Start of travel. The navigation provider is informational only."""

    navigation_provider: Optional[str] = None


@dataclass(frozen=True, slots=True)
class FraudOverridePayload:
    """Arrival, with a justification when outside the geofence."""

    justification: Optional[str] = None


@dataclass(frozen=True, slots=True)
class FinalizePayload:
    collaborator_count: Any = None
    responsible_name: Optional[str] = None
    summary: Optional[str] = None


TransitionPayload = Union[CheckinPayload, FraudOverridePayload, FinalizePayload]

PAYLOAD_FOR_TARGET: dict[VisitStatus, type] = {
    VisitStatus.EN_ROUTE: CheckinPayload,
    VisitStatus.VISITED: FraudOverridePayload,
    VisitStatus.FINALIZED: FinalizePayload,
}


@dataclass(frozen=True, slots=True)
class GeofenceCheck:
    distance_km: Optional[float]
    threshold_km: float

    @property
    def skipped(self) -> bool:
        return self.distance_km is None

    @property
    def outside(self) -> bool:
        return self.distance_km is not None and self.distance_km > self.threshold_km


def check_geofence(
    assignee_location: Optional[Coordinate],
    poi_location: Optional[Coordinate],
    threshold_km: float,
) -> GeofenceCheck:
    """Missing coordinates on either side skip the gate."""

    return GeofenceCheck(optional_distance_km(assignee_location, poi_location), threshold_km)


def next_status(status: VisitStatus) -> Optional[VisitStatus]:
    return NEXT_STATUS[status]


def ensure_transition_allowed(current: VisitStatus, target: VisitStatus) -> None:
    expected = NEXT_STATUS[current]
    if expected is None:
        raise ValidationError(
            f"Visit is already {current.value}; no further transitions are allowed.",
            reason="invalid_transition",
            current=current.value,
            target=target.value,
        )
    if target is not expected:
        raise ValidationError(
            f"Cannot move a visit from {current.value} to {target.value}; next step is {expected.value}.",
            reason="invalid_transition",
            current=current.value,
            target=target.value,
        )


def parse_collaborator_count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        raise ValidationError(
            "Collaborator count is required to finalize a visit.",
            reason="collaborator_count_required",
        )
    if isinstance(value, str):
        text = value.strip()
        if not _INTEGER_RE.match(text):
            raise ValidationError(
                f"Collaborator count must be a whole number, got {value!r}.",
                reason="collaborator_count_required",
            )
        value = int(text)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(
                f"Collaborator count must be a whole number, got {value!r}.",
                reason="collaborator_count_required",
            )
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(
            f"Collaborator count must be a whole number, got {value!r}.",
            reason="collaborator_count_required",
        )
    if value < 0:
        raise ValidationError(
            "Collaborator count cannot be negative.",
            reason="collaborator_count_required",
        )
    return value


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    text = text.strip()
    return text or None


def plan_transition(
    visit: Visit,
    target: VisitStatus,
    payload: Optional[TransitionPayload],
    *,
    now: datetime,
    has_other_active_route: bool = False,
    assignee_location: Optional[Coordinate] = None,
    poi_location: Optional[Coordinate] = None,
    geofence_threshold_km: float = 0.3,
    min_justification_length: int = 5,
) -> dict[str, Any]:
    """Validate ``visit.status -> target`` and return the fields to write."""

    ensure_transition_allowed(visit.status, target)

    expected_payload = PAYLOAD_FOR_TARGET[target]
    if payload is None:
        payload = expected_payload()
    elif not isinstance(payload, expected_payload):
        raise ValidationError(
            f"Transition to {target.value} expects {expected_payload.__name__}, "
            f"got {type(payload).__name__}.",
            reason="invalid_payload",
        )

    patch: dict[str, Any] = {"status": target}

    if target is VisitStatus.EN_ROUTE:
        if has_other_active_route:
            raise ConflictError(
                "This assignee already has a route in progress.",
                assignee_id=visit.user_id,
            )
        patch["checkin_time"] = now

    elif target is VisitStatus.VISITED:
        geofence = check_geofence(assignee_location, poi_location, geofence_threshold_km)
        if geofence.outside:
            justification = _clean(payload.justification)
            if justification is None or len(justification) < min_justification_length:
                raise GeofenceJustificationRequired(
                    geofence.distance_km, geofence_threshold_km, min_justification_length
                )
            patch["fraud_justification"] = justification

    elif target is VisitStatus.FINALIZED:
        patch["collaborator_count"] = parse_collaborator_count(payload.collaborator_count)
        patch["checkout_time"] = now
        patch["responsible_name"] = _clean(payload.responsible_name)
        patch["summary"] = _clean(payload.summary)

    return patch


def plan_deferral(visit: Visit, scheduled_for: Optional[datetime], *, now: datetime) -> dict[str, Any]:
    """Annotate (or clear) a future date without touching the status."""

    if visit.status not in DEFERRABLE_STATUSES:
        raise ValidationError(
            f"Only visits that are {VisitStatus.TO_VISIT.value} or {VisitStatus.EN_ROUTE.value} can be scheduled.",
            reason="invalid_transition",
            current=visit.status.value,
        )
    if scheduled_for is not None and scheduled_for.tzinfo is None:
        scheduled_for = scheduled_for.replace(tzinfo=timezone.utc)
    if scheduled_for is not None and scheduled_for <= now:
        raise ValidationError("Scheduled date must be in the future.", reason="validation")
    return {"scheduled_for": scheduled_for}


def is_deferred(visit: Visit, now: datetime) -> bool:
    return visit.scheduled_for is not None and visit.scheduled_for > now


def apply_patch(visit: Visit, patch: dict[str, Any]) -> Visit:
    """Return a copy of ``visit`` with ``patch`` applied."""

    values = {name: getattr(visit, name) for name in Visit.__dataclass_fields__}
    values.update(patch)
    return Visit(**values)
