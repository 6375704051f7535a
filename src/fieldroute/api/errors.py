"""Maps service exceptions onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..services.errors import (
    AuthorizationError,
    ConflictError,
    FieldRouteError,
    GeofenceJustificationRequired,
    LocationError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# most specific first
STATUS_BY_ERROR: list[tuple[type[FieldRouteError], int]] = [
    (GeofenceJustificationRequired, status.HTTP_428_PRECONDITION_REQUIRED),
    (ConflictError, status.HTTP_409_CONFLICT),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (LocationError, status.HTTP_400_BAD_REQUEST),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_for(exc: FieldRouteError) -> int:
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_field_route_error(request: Request, exc: FieldRouteError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=code, content={"detail": exc.to_detail()})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FieldRouteError, handle_field_route_error)
