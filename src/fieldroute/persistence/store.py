"""Persistence contract consumed by the services.

Every call is a suspension point. Implementations raise
:class:`~fieldroute.services.errors.TransientStoreError` when the backend
fails and never return partial results silently.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol, Union

from ..models.domain import (
    Customer,
    CustomerStatus,
    PoiCategory,
    PointOfInterest,
    Profile,
    Role,
    Visit,
    VisitStatus,
)


@dataclass(frozen=True, slots=True)
class VisitChange:
    """A row mutation on ``visits``; consumers treat it as a reload trigger."""

    event: str
    visit_id: Optional[str] = None


VisitChangeCallback = Callable[[VisitChange], Union[Awaitable[None], None]]


class Subscription(Protocol):
    async def close(self) -> None: ...


StatusFilter = Union[VisitStatus, Iterable[VisitStatus], None]


class FieldStore(Protocol):
    # visits
    async def get_visit(self, visit_id: str) -> Optional[Visit]: ...

    async def list_visits(
        self,
        *,
        assignee_ids: Optional[Iterable[str]] = None,
        status: StatusFilter = None,
        point_ids: Optional[Iterable[str]] = None,
    ) -> list[Visit]: ...

    async def update_visit(self, visit_id: str, patch: dict[str, Any]) -> Visit: ...

    async def batch_update_visits(self, visit_ids: Iterable[str], patch: dict[str, Any]) -> int: ...

    async def batch_insert_visits(self, visits: Iterable[Visit]) -> int: ...

    async def subscribe_visit_changes(self, callback: VisitChangeCallback) -> Subscription: ...

    # points of interest
    async def get_poi(self, poi_id: str) -> Optional[PointOfInterest]: ...

    async def get_pois(self, poi_ids: Iterable[str]) -> list[PointOfInterest]: ...

    async def list_pois(
        self,
        *,
        category: Optional[PoiCategory] = None,
        text_search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[PointOfInterest], int]: ...

    async def insert_poi(self, poi: PointOfInterest) -> PointOfInterest: ...

    async def update_poi(self, poi_id: str, patch: dict[str, Any]) -> PointOfInterest: ...

    # profiles
    async def get_profile(self, profile_id: str) -> Optional[Profile]: ...

    async def list_profiles(
        self,
        *,
        role: Optional[Role] = None,
        manager_id: Optional[str] = None,
    ) -> list[Profile]: ...

    async def update_profile(self, profile_id: str, patch: dict[str, Any]) -> Profile: ...

    async def reassign_manager(self, old_manager_id: str, new_manager_id: str) -> int: ...

    # customers
    async def insert_customer(self, customer: Customer) -> Customer: ...

    async def count_customers(
        self,
        *,
        seller_ids: Optional[Iterable[str]] = None,
        status: Optional[CustomerStatus] = None,
        created_since: Optional[datetime] = None,
    ) -> int: ...


def normalize_status_filter(status: StatusFilter) -> Optional[set[VisitStatus]]:
    if status is None:
        return None
    if isinstance(status, VisitStatus):
        return {status}
    return {VisitStatus(item) for item in status}
