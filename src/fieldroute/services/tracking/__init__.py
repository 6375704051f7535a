"""Device positioning and live team tracking."""

from .device import LocationWatch, PositionError, PositionErrorCode, PositionSource, acquire_fix
from .live import LocationReport, list_team_locations, report_location

__all__ = [
    "LocationReport",
    "LocationWatch",
    "PositionError",
    "PositionErrorCode",
    "PositionSource",
    "acquire_fix",
    "list_team_locations",
    "report_location",
]
