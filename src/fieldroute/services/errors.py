"""Error taxonomy shared by the services and mapped to HTTP responses by the API."""

from __future__ import annotations

from typing import Any


class FieldRouteError(Exception):
    """Base class; ``reason`` is a stable machine-readable code."""

    reason = "error"

    def __init__(self, message: str, *, reason: str | None = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        if reason:
            self.reason = reason
        self.extra = extra

    def to_detail(self) -> dict[str, Any]:
        return {"reason": self.reason, "message": self.message, **self.extra}


class ValidationError(FieldRouteError, ValueError):
    reason = "validation"


class AuthorizationError(FieldRouteError):
    reason = "forbidden"


class NotFoundError(FieldRouteError):
    reason = "not_found"


class ConflictError(FieldRouteError):
    """Business-rule conflict, e.g. a second active route for one assignee."""

    reason = "active_route_exists"


class GeofenceJustificationRequired(FieldRouteError):
    """Soft block: the arrival is outside the geofence and needs a justification."""

    reason = "geofence_justification_required"

    def __init__(self, distance_km: float, threshold_km: float, min_length: int) -> None:
        super().__init__(
            f"Arrival is {distance_km:.2f} km from the point (limit {threshold_km:.2f} km). "
            f"Provide a justification of at least {min_length} characters.",
            distance_km=round(distance_km, 3),
            threshold_km=threshold_km,
            min_length=min_length,
        )
        self.distance_km = distance_km
        self.threshold_km = threshold_km
        self.min_length = min_length


class TransientStoreError(FieldRouteError):
    reason = "store_unavailable"


class PartialBatchError(TransientStoreError):
    """A bulk write failed; counts are best-effort and nothing was rolled back."""

    reason = "partial_batch_failure"

    def __init__(self, message: str, *, updated: int, inserted: int, failed_batches: list[str]) -> None:
        super().__init__(message, updated=updated, inserted=inserted, failed_batches=failed_batches)
        self.updated = updated
        self.inserted = inserted
        self.failed_batches = failed_batches


class LocationError(FieldRouteError):
    reason = "gps_error"


class LocationPermissionDenied(LocationError):
    reason = "gps_permission_denied"


class LocationUnavailable(LocationError):
    reason = "gps_unavailable"


class LocationTimeout(LocationError):
    reason = "gps_timeout"
