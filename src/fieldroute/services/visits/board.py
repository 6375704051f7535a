"""Board view of the visits an actor can see, plus its live feed."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Awaitable, Callable, Optional, Union

from ...models.domain import Coordinate, CustomerStatus, PointOfInterest, Profile, Role, Visit, VisitStatus
from ...persistence.store import FieldStore, Subscription, VisitChange
from .. import hierarchy
from ..errors import TransientStoreError
from ..geospatial import optional_distance_km, poi_location
from .state_machine import is_deferred, next_status

logger = logging.getLogger(__name__)

COLUMN_ORDER = (
    VisitStatus.TO_VISIT,
    VisitStatus.EN_ROUTE,
    VisitStatus.VISITED,
    VisitStatus.FINALIZED,
)


@dataclass(slots=True)
class BoardCard:
    visit: Visit
    poi: Optional[PointOfInterest]
    assignee_name: Optional[str]
    distance_km: Optional[float]
    deferred: bool
    next_status: Optional[VisitStatus]


@dataclass(slots=True)
class Board:
    columns: dict[VisitStatus, list[BoardCard]] = field(
        default_factory=lambda: {status: [] for status in COLUMN_ORDER}
    )

    @property
    def total(self) -> int:
        return sum(len(cards) for cards in self.columns.values())


@dataclass(slots=True)
class BoardSummary:
    counts: dict[VisitStatus, int]
    visited_today: int
    enrolled_this_month: int
    conversion_pct: int


async def _profiles_in_scope(store: FieldStore, actor: Profile) -> dict[str, Profile]:
    if actor.role is Role.ADMIN:
        profiles = await store.list_profiles()
    elif actor.role is Role.MANAGER:
        profiles = await store.list_profiles(manager_id=actor.id)
    else:
        profiles = []
    by_id = {profile.id: profile for profile in profiles}
    by_id[actor.id] = actor
    return by_id


async def load_visible_visits(
    store: FieldStore,
    actor: Profile,
    *,
    manager_filter: Optional[str] = None,
) -> tuple[list[Visit], dict[str, Profile]]:
    profiles_by_id = await _profiles_in_scope(store, actor)
    assignee_ids = hierarchy.visible_assignee_ids(actor, list(profiles_by_id.values()))
    visits = await store.list_visits(assignee_ids=assignee_ids)
    visible = hierarchy.visible_visits(actor, visits, profiles_by_id, manager_filter=manager_filter)
    return visible, profiles_by_id


async def load_board(
    store: FieldStore,
    actor: Profile,
    *,
    reference: Optional[Coordinate] = None,
    manager_filter: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Board:
    now = now or datetime.now(timezone.utc)
    visits, profiles_by_id = await load_visible_visits(store, actor, manager_filter=manager_filter)
    pois = {poi.id: poi for poi in await store.get_pois(visit.point_id for visit in visits)}

    board = Board()
    for visit in visits:
        poi = pois.get(visit.point_id)
        assignee = profiles_by_id.get(visit.user_id)
        board.columns[visit.status].append(
            BoardCard(
                visit=visit,
                poi=poi,
                assignee_name=assignee.display_name if assignee else None,
                distance_km=optional_distance_km(reference, poi_location(poi)),
                deferred=is_deferred(visit, now),
                next_status=next_status(visit.status),
            )
        )
    return board


async def summarize(
    store: FieldStore,
    actor: Profile,
    *,
    today: Optional[date] = None,
) -> BoardSummary:
    """Per-status counts of the visible set and the actor's own daily figures."""

    today = today or datetime.now(timezone.utc).date()
    visits, _ = await load_visible_visits(store, actor)
    counts = {status: 0 for status in COLUMN_ORDER}
    for visit in visits:
        counts[visit.status] += 1

    visited_today = sum(
        1
        for visit in visits
        if visit.user_id == actor.id
        and visit.status in (VisitStatus.VISITED, VisitStatus.FINALIZED)
        and visit.checkin_time is not None
        and visit.checkin_time.date() == today
    )
    month_start = datetime.combine(today.replace(day=1), time.min, tzinfo=timezone.utc)
    enrolled = await store.count_customers(
        seller_ids=[actor.id],
        status=CustomerStatus.ENROLLED,
        created_since=month_start,
    )
    conversion = round(enrolled / visited_today * 100) if visited_today else 0
    return BoardSummary(
        counts=counts,
        visited_today=visited_today,
        enrolled_this_month=enrolled,
        conversion_pct=conversion,
    )


BoardCallback = Callable[[Board], Union[Awaitable[None], None]]


class BoardFeed:
    """Keeps ``board`` current by reloading it on every visit change.

    Any change triggers a full reload of the visible set, so the visibility
    filter is reapplied each time. Use as ``async with BoardFeed(...) as feed``.
    """

    def __init__(
        self,
        store: FieldStore,
        actor: Profile,
        on_reload: Optional[BoardCallback] = None,
        *,
        reference: Optional[Coordinate] = None,
        manager_filter: Optional[str] = None,
    ) -> None:
        self.store = store
        self.actor = actor
        self.on_reload = on_reload
        self.reference = reference
        self.manager_filter = manager_filter
        self.board: Optional[Board] = None
        self.reloads = 0
        self.last_error: Optional[TransientStoreError] = None
        self._subscription: Optional[Subscription] = None
        self._lock = asyncio.Lock()

    async def reload(self) -> Board:
        async with self._lock:
            board = await load_board(
                self.store,
                self.actor,
                reference=self.reference,
                manager_filter=self.manager_filter,
            )
            self.board = board
            self.reloads += 1
        if self.on_reload is not None:
            result = self.on_reload(board)
            if inspect.isawaitable(result):
                await result
        return board

    async def _handle_change(self, change: VisitChange) -> None:
        logger.debug(f"Visit change {change.event} ({change.visit_id}); reloading board for {self.actor.id}")
        try:
            await self.reload()
        except TransientStoreError as exc:
            # the previous board stays in place until the next change arrives
            self.last_error = exc
            logger.error(f"Board reload failed for {self.actor.id}: {exc}")

    async def __aenter__(self) -> "BoardFeed":
        await self.reload()
        self._subscription = await self.store.subscribe_visit_changes(self._handle_change)
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None
