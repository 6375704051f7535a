"""Dictionary-backed store used for local runs and tests."""

from __future__ import annotations

import inspect
import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from ..models.domain import (
    Customer,
    CustomerStatus,
    PoiCategory,
    PointOfInterest,
    Profile,
    Role,
    Visit,
)
from ..services.errors import NotFoundError, TransientStoreError
from .store import StatusFilter, VisitChange, VisitChangeCallback, normalize_status_filter

logger = logging.getLogger(__name__)

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class _MemorySubscription:
    def __init__(self, store: "InMemoryStore", callback: VisitChangeCallback) -> None:
        self._store = store
        self._callback = callback

    async def close(self) -> None:
        if self._callback in self._store._listeners:
            self._store._listeners.remove(self._callback)


class InMemoryStore:
    """Implements :class:`~fieldroute.persistence.store.FieldStore` in memory.

    ``fail_operations`` names methods that should raise
    :class:`TransientStoreError`, to exercise failure paths.
    """

    def __init__(
        self,
        *,
        pois: Iterable[PointOfInterest] = (),
        visits: Iterable[Visit] = (),
        profiles: Iterable[Profile] = (),
        customers: Iterable[Customer] = (),
    ) -> None:
        self.pois: dict[str, PointOfInterest] = {poi.id: poi for poi in pois}
        self.visits: dict[str, Visit] = {}
        self.profiles: dict[str, Profile] = {profile.id: profile for profile in profiles}
        self.customers: dict[str, Customer] = {customer.id: customer for customer in customers}
        self.fail_operations: set[str] = set()
        self._listeners: list[VisitChangeCallback] = []
        self._sequence = 0
        for visit in visits:
            self._put_visit(visit)

    def _check(self, operation: str) -> None:
        if operation in self.fail_operations:
            logger.warning(f"Simulated store failure in {operation}")
            raise TransientStoreError(f"Simulated failure in {operation}")

    def _put_visit(self, visit: Visit) -> Visit:
        if visit.created_at is None:
            # monotonically increasing so newest-first ordering is stable
            self._sequence += 1
            visit = replace(
                visit,
                created_at=_EPOCH + timedelta(seconds=self._sequence),
            )
        self.visits[visit.id] = visit
        return visit

    async def _notify(self, event: str, visit_id: Optional[str]) -> None:
        change = VisitChange(event=event, visit_id=visit_id)
        for callback in list(self._listeners):
            # listeners run after the write is committed
            try:
                result = callback(change)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Visit change listener failed on {event} ({visit_id})")

    # visits

    async def get_visit(self, visit_id: str) -> Optional[Visit]:
        self._check("get_visit")
        visit = self.visits.get(visit_id)
        return replace(visit) if visit else None

    async def list_visits(
        self,
        *,
        assignee_ids: Optional[Iterable[str]] = None,
        status: StatusFilter = None,
        point_ids: Optional[Iterable[str]] = None,
    ) -> list[Visit]:
        self._check("list_visits")
        assignees = set(assignee_ids) if assignee_ids is not None else None
        statuses = normalize_status_filter(status)
        points = set(point_ids) if point_ids is not None else None
        rows = [
            replace(visit)
            for visit in self.visits.values()
            if (assignees is None or visit.user_id in assignees)
            and (statuses is None or visit.status in statuses)
            and (points is None or visit.point_id in points)
        ]
        rows.sort(key=lambda visit: visit.created_at, reverse=True)
        return rows

    async def update_visit(self, visit_id: str, patch: dict[str, Any]) -> Visit:
        self._check("update_visit")
        current = self.visits.get(visit_id)
        if current is None:
            raise NotFoundError(f"Visit '{visit_id}' not found.")
        updated = replace(current, **patch)
        self.visits[visit_id] = updated
        await self._notify("UPDATE", visit_id)
        return replace(updated)

    async def batch_update_visits(self, visit_ids: Iterable[str], patch: dict[str, Any]) -> int:
        self._check("batch_update_visits")
        count = 0
        for visit_id in visit_ids:
            current = self.visits.get(visit_id)
            if current is None:
                continue
            self.visits[visit_id] = replace(current, **patch)
            count += 1
        if count:
            await self._notify("UPDATE", None)
        return count

    async def batch_insert_visits(self, visits: Iterable[Visit]) -> int:
        self._check("batch_insert_visits")
        count = 0
        for visit in visits:
            self._put_visit(replace(visit))
            count += 1
        if count:
            await self._notify("INSERT", None)
        return count

    async def subscribe_visit_changes(self, callback: VisitChangeCallback) -> _MemorySubscription:
        self._listeners.append(callback)
        return _MemorySubscription(self, callback)

    # points of interest

    async def get_poi(self, poi_id: str) -> Optional[PointOfInterest]:
        self._check("get_poi")
        poi = self.pois.get(poi_id)
        return replace(poi) if poi else None

    async def get_pois(self, poi_ids: Iterable[str]) -> list[PointOfInterest]:
        self._check("get_pois")
        return [replace(self.pois[poi_id]) for poi_id in dict.fromkeys(poi_ids) if poi_id in self.pois]

    async def list_pois(
        self,
        *,
        category: Optional[PoiCategory] = None,
        text_search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[PointOfInterest], int]:
        self._check("list_pois")
        needle = (text_search or "").strip().lower()
        rows = [
            poi
            for poi in self.pois.values()
            if (category is None or poi.category is category)
            and (
                not needle
                or needle in poi.name.lower()
                or needle in poi.address.lower()
                or needle in poi.neighborhood.lower()
            )
        ]
        rows.sort(key=lambda poi: (poi.name.lower(), poi.id))
        start = (page - 1) * page_size
        return [replace(poi) for poi in rows[start : start + page_size]], len(rows)

    async def insert_poi(self, poi: PointOfInterest) -> PointOfInterest:
        self._check("insert_poi")
        self.pois[poi.id] = replace(poi)
        return replace(poi)

    async def update_poi(self, poi_id: str, patch: dict[str, Any]) -> PointOfInterest:
        self._check("update_poi")
        current = self.pois.get(poi_id)
        if current is None:
            raise NotFoundError(f"Point of interest '{poi_id}' not found.")
        self.pois[poi_id] = replace(current, **patch)
        return replace(self.pois[poi_id])

    # profiles

    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        self._check("get_profile")
        profile = self.profiles.get(profile_id)
        return replace(profile) if profile else None

    async def list_profiles(
        self,
        *,
        role: Optional[Role] = None,
        manager_id: Optional[str] = None,
    ) -> list[Profile]:
        self._check("list_profiles")
        return [
            replace(profile)
            for profile in self.profiles.values()
            if (role is None or profile.role is role)
            and (manager_id is None or profile.manager_id == manager_id)
        ]

    async def update_profile(self, profile_id: str, patch: dict[str, Any]) -> Profile:
        self._check("update_profile")
        current = self.profiles.get(profile_id)
        if current is None:
            raise NotFoundError(f"Profile '{profile_id}' not found.")
        self.profiles[profile_id] = replace(current, **patch)
        return replace(self.profiles[profile_id])

    async def reassign_manager(self, old_manager_id: str, new_manager_id: str) -> int:
        self._check("reassign_manager")
        moved = 0
        for profile_id, profile in list(self.profiles.items()):
            if profile.manager_id == old_manager_id:
                self.profiles[profile_id] = replace(profile, manager_id=new_manager_id)
                moved += 1
        return moved

    # customers

    async def insert_customer(self, customer: Customer) -> Customer:
        self._check("insert_customer")
        if customer.created_at is None:
            customer = replace(customer, created_at=datetime.now(timezone.utc))
        self.customers[customer.id] = customer
        return replace(customer)

    async def count_customers(
        self,
        *,
        seller_ids: Optional[Iterable[str]] = None,
        status: Optional[CustomerStatus] = None,
        created_since: Optional[datetime] = None,
    ) -> int:
        self._check("count_customers")
        sellers = set(seller_ids) if seller_ids is not None else None
        return sum(
            1
            for customer in self.customers.values()
            if (sellers is None or customer.seller_id in sellers)
            and (status is None or customer.status is status)
            and (
                created_since is None
                or (customer.created_at is not None and customer.created_at >= created_since)
            )
        )
