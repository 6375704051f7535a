"""Supabase-backed implementation of the field store."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import asdict
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional

from supabase import AsyncClient

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
from ..services.errors import NotFoundError, TransientStoreError
from .store import StatusFilter, VisitChange, VisitChangeCallback, normalize_status_filter

logger = logging.getLogger(__name__)

VISITS_TABLE = "visits"
POIS_TABLE = "points_of_interest"
PROFILES_TABLE = "profiles"
CUSTOMERS_TABLE = "customers"


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _to_row(values: dict[str, Any]) -> dict[str, Any]:
    return {key: _serialize(value) for key, value in values.items()}


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _visit_from_row(row: dict[str, Any]) -> Visit:
    return Visit(
        id=str(row["id"]),
        point_id=str(row["point_id"]),
        user_id=str(row["user_id"]),
        status=VisitStatus(row.get("status") or VisitStatus.TO_VISIT.value),
        collaborator_count=row.get("collaborator_count"),
        checkin_time=_parse_datetime(row.get("checkin_time")),
        checkout_time=_parse_datetime(row.get("checkout_time")),
        scheduled_for=_parse_datetime(row.get("scheduled_for")),
        responsible_name=row.get("responsible_name"),
        summary=row.get("summary"),
        fraud_justification=row.get("fraud_justification"),
        created_at=_parse_datetime(row.get("created_at")),
    )


def _poi_from_row(row: dict[str, Any]) -> PointOfInterest:
    return PointOfInterest(
        id=str(row["id"]),
        name=row.get("name") or "",
        address=row.get("address") or "",
        neighborhood=row.get("neighborhood") or "",
        category=PoiCategory(row.get("category") or PoiCategory.OTHER.value),
        postal_code=row.get("postal_code"),
        phone=row.get("phone"),
        coordinates=row.get("coordinates"),
        created_by=row.get("created_by"),
        last_visit_at=_parse_datetime(row.get("last_visit_at")),
    )


def _profile_from_row(row: dict[str, Any]) -> Profile:
    is_active = row.get("is_active")
    return Profile(
        id=str(row["id"]),
        role=Role(row.get("role") or Role.SELLER.value),
        manager_id=row.get("manager_id"),
        full_name=row.get("full_name"),
        email=row.get("email"),
        # older rows predate the flag and count as active
        is_active=True if is_active is None else bool(is_active),
        last_latitude=row.get("last_latitude"),
        last_longitude=row.get("last_longitude"),
        last_location_time=_parse_datetime(row.get("last_location_time")),
    )


def _customer_from_row(row: dict[str, Any]) -> Customer:
    return Customer(
        id=str(row["id"]),
        full_name=row.get("full_name") or "",
        seller_id=str(row.get("seller_id") or ""),
        document_id=row.get("document_id"),
        email=row.get("email"),
        phone=row.get("phone"),
        address=row.get("address"),
        course=row.get("course"),
        enrollment_fee=row.get("enrollment_fee"),
        monthly_fee=row.get("monthly_fee"),
        installments=row.get("installments") or 1,
        note=row.get("note"),
        status=CustomerStatus(row.get("status") or CustomerStatus.PENDING.value),
        poi_id=row.get("poi_id"),
        created_at=_parse_datetime(row.get("created_at")),
    )


class _ChannelSubscription:
    def __init__(self, client: AsyncClient, channel: Any) -> None:
        self._client = client
        self._channel = channel

    async def close(self) -> None:
        try:
            await self._client.remove_channel(self._channel)
        except Exception as exc:
            raise TransientStoreError(f"Failed to close realtime channel: {exc}") from exc


class SupabaseStore:
    """Field store over the Supabase tables ``visits``, ``points_of_interest``,
    ``profiles`` and ``customers``.

    Row-level security stays on the database side; this adapter only maps
    rows to domain records and wraps client failures.
    """

    def __init__(self, client: AsyncClient) -> None:
        self.client = client
        self._pending: set[asyncio.Task] = set()

    def _change_handled(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Visit change listener failed: {exc!r}", exc_info=exc)

    async def _execute(self, query: Any, operation: str) -> Any:
        try:
            return await query.execute()
        except Exception as exc:
            logger.error(f"Supabase {operation} failed: {exc}")
            raise TransientStoreError(f"Database operation '{operation}' failed: {exc}") from exc

    # visits

    async def get_visit(self, visit_id: str) -> Optional[Visit]:
        response = await self._execute(
            self.client.table(VISITS_TABLE).select("*").eq("id", visit_id).limit(1),
            "get_visit",
        )
        rows = response.data or []
        return _visit_from_row(rows[0]) if rows else None

    async def list_visits(
        self,
        *,
        assignee_ids: Optional[Iterable[str]] = None,
        status: StatusFilter = None,
        point_ids: Optional[Iterable[str]] = None,
    ) -> list[Visit]:
        query = self.client.table(VISITS_TABLE).select("*")
        if assignee_ids is not None:
            assignees = list(assignee_ids)
            if not assignees:
                return []
            query = query.in_("user_id", assignees)
        statuses = normalize_status_filter(status)
        if statuses is not None:
            query = query.in_("status", sorted(item.value for item in statuses))
        if point_ids is not None:
            points = list(point_ids)
            if not points:
                return []
            query = query.in_("point_id", points)
        response = await self._execute(query.order("created_at", desc=True), "list_visits")
        return [_visit_from_row(row) for row in response.data or []]

    async def update_visit(self, visit_id: str, patch: dict[str, Any]) -> Visit:
        response = await self._execute(
            self.client.table(VISITS_TABLE).update(_to_row(patch)).eq("id", visit_id),
            "update_visit",
        )
        rows = response.data or []
        if not rows:
            raise NotFoundError(f"Visit '{visit_id}' not found.")
        return _visit_from_row(rows[0])

    async def batch_update_visits(self, visit_ids: Iterable[str], patch: dict[str, Any]) -> int:
        ids = list(visit_ids)
        if not ids:
            return 0
        response = await self._execute(
            self.client.table(VISITS_TABLE).update(_to_row(patch)).in_("id", ids),
            "batch_update_visits",
        )
        return len(response.data or [])

    async def batch_insert_visits(self, visits: Iterable[Visit]) -> int:
        rows = []
        for visit in visits:
            row = _to_row(asdict(visit))
            if row.get("created_at") is None:
                row.pop("created_at")
            rows.append(row)
        if not rows:
            return 0
        response = await self._execute(
            self.client.table(VISITS_TABLE).insert(rows),
            "batch_insert_visits",
        )
        return len(response.data or [])

    async def subscribe_visit_changes(self, callback: VisitChangeCallback) -> _ChannelSubscription:
        async def _handle(payload: dict[str, Any]) -> None:
            data = payload.get("data", payload) if isinstance(payload, dict) else {}
            event = data.get("type") or data.get("eventType") or "UNKNOWN"
            record = data.get("record") or data.get("new") or data.get("old_record") or {}
            result = callback(VisitChange(event=str(event), visit_id=record.get("id")))
            if inspect.isawaitable(result):
                await result

        def _on_change(payload: dict[str, Any]) -> None:
            task = asyncio.ensure_future(_handle(payload))
            self._pending.add(task)
            task.add_done_callback(self._change_handled)

        try:
            channel = self.client.channel("public:visits")
            channel.on_postgres_changes("*", schema="public", table=VISITS_TABLE, callback=_on_change)
            await channel.subscribe()
        except Exception as exc:
            logger.error(f"Failed to subscribe to visit changes: {exc}")
            raise TransientStoreError(f"Realtime subscription failed: {exc}") from exc
        return _ChannelSubscription(self.client, channel)

    # points of interest

    async def get_poi(self, poi_id: str) -> Optional[PointOfInterest]:
        response = await self._execute(
            self.client.table(POIS_TABLE).select("*").eq("id", poi_id).limit(1),
            "get_poi",
        )
        rows = response.data or []
        return _poi_from_row(rows[0]) if rows else None

    async def get_pois(self, poi_ids: Iterable[str]) -> list[PointOfInterest]:
        ids = list(dict.fromkeys(poi_ids))
        if not ids:
            return []
        response = await self._execute(
            self.client.table(POIS_TABLE).select("*").in_("id", ids),
            "get_pois",
        )
        return [_poi_from_row(row) for row in response.data or []]

    async def list_pois(
        self,
        *,
        category: Optional[PoiCategory] = None,
        text_search: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[PointOfInterest], int]:
        query = self.client.table(POIS_TABLE).select("*", count="exact")
        if category is not None:
            query = query.eq("category", category.value)
        term = (text_search or "").strip().replace(",", " ")
        if term:
            query = query.or_(
                f"name.ilike.%{term}%,address.ilike.%{term}%,neighborhood.ilike.%{term}%"
            )
        start = (page - 1) * page_size
        response = await self._execute(
            query.order("name").range(start, start + page_size - 1),
            "list_pois",
        )
        rows = response.data or []
        total = response.count if getattr(response, "count", None) is not None else len(rows)
        return [_poi_from_row(row) for row in rows], total

    async def insert_poi(self, poi: PointOfInterest) -> PointOfInterest:
        response = await self._execute(
            self.client.table(POIS_TABLE).insert(_to_row(asdict(poi))),
            "insert_poi",
        )
        rows = response.data or []
        return _poi_from_row(rows[0]) if rows else poi

    async def update_poi(self, poi_id: str, patch: dict[str, Any]) -> PointOfInterest:
        response = await self._execute(
            self.client.table(POIS_TABLE).update(_to_row(patch)).eq("id", poi_id),
            "update_poi",
        )
        rows = response.data or []
        if not rows:
            raise NotFoundError(f"Point of interest '{poi_id}' not found.")
        return _poi_from_row(rows[0])

    # profiles

    async def get_profile(self, profile_id: str) -> Optional[Profile]:
        response = await self._execute(
            self.client.table(PROFILES_TABLE).select("*").eq("id", profile_id).limit(1),
            "get_profile",
        )
        rows = response.data or []
        return _profile_from_row(rows[0]) if rows else None

    async def list_profiles(
        self,
        *,
        role: Optional[Role] = None,
        manager_id: Optional[str] = None,
    ) -> list[Profile]:
        query = self.client.table(PROFILES_TABLE).select("*")
        if role is not None:
            query = query.eq("role", role.value)
        if manager_id is not None:
            query = query.eq("manager_id", manager_id)
        response = await self._execute(query.order("created_at", desc=True), "list_profiles")
        return [_profile_from_row(row) for row in response.data or []]

    async def update_profile(self, profile_id: str, patch: dict[str, Any]) -> Profile:
        response = await self._execute(
            self.client.table(PROFILES_TABLE).update(_to_row(patch)).eq("id", profile_id),
            "update_profile",
        )
        rows = response.data or []
        if not rows:
            raise NotFoundError(f"Profile '{profile_id}' not found.")
        return _profile_from_row(rows[0])

    async def reassign_manager(self, old_manager_id: str, new_manager_id: str) -> int:
        response = await self._execute(
            self.client.table(PROFILES_TABLE)
            .update({"manager_id": new_manager_id})
            .eq("manager_id", old_manager_id),
            "reassign_manager",
        )
        return len(response.data or [])

    # customers

    async def insert_customer(self, customer: Customer) -> Customer:
        row = _to_row(asdict(customer))
        if row.get("created_at") is None:
            row.pop("created_at")
        response = await self._execute(self.client.table(CUSTOMERS_TABLE).insert(row), "insert_customer")
        rows = response.data or []
        return _customer_from_row(rows[0]) if rows else customer

    async def count_customers(
        self,
        *,
        seller_ids: Optional[Iterable[str]] = None,
        status: Optional[CustomerStatus] = None,
        created_since: Optional[datetime] = None,
    ) -> int:
        query = self.client.table(CUSTOMERS_TABLE).select("id", count="exact")
        if seller_ids is not None:
            sellers = list(seller_ids)
            if not sellers:
                return 0
            query = query.in_("seller_id", sellers)
        if status is not None:
            query = query.eq("status", status.value)
        if created_since is not None:
            query = query.gte("created_at", created_since.isoformat())
        response = await self._execute(query, "count_customers")
        return response.count or 0
