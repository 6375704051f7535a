import asyncio
from datetime import datetime, timezone

import pytest

from fieldroute.models.domain import PointOfInterest, Profile, Role, Visit, VisitStatus
from fieldroute.persistence.memory import InMemoryStore
from fieldroute.services.distribution.service import (
    distribute,
    list_distributable_queue,
    list_distribution_targets,
    set_member_active,
    transfer_team,
)
from fieldroute.services.errors import (
    AuthorizationError,
    NotFoundError,
    PartialBatchError,
    ValidationError,
)

EARLIER = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def _poi(poi_id: str, name: str = "", neighborhood: str = "Centre") -> PointOfInterest:
    return PointOfInterest(
        id=poi_id,
        name=name or f"Point {poi_id}",
        address=f"Street {poi_id}",
        neighborhood=neighborhood,
        coordinates="0, 0",
    )


def _store() -> InMemoryStore:
    return InMemoryStore(
        pois=[_poi("p1", "Lake School"), _poi("p2", "Hill Clinic", "Hillside"), _poi("p3"), _poi("p4")],
        visits=[
            Visit(
                id="v1",
                point_id="p1",
                user_id="s1",
                status=VisitStatus.EN_ROUTE,
                checkin_time=EARLIER,
                scheduled_for=EARLIER,
                fraud_justification="old",
            ),
            Visit(id="v2", point_id="p2", user_id="m1", status=VisitStatus.TO_VISIT),
            Visit(id="v3", point_id="p3", user_id="s3", status=VisitStatus.VISITED),
            Visit(id="v4", point_id="p4", user_id="m1", status=VisitStatus.FINALIZED),
        ],
        profiles=[
            Profile(id="a1", role=Role.ADMIN),
            Profile(id="m1", role=Role.MANAGER),
            Profile(id="m2", role=Role.MANAGER),
            Profile(id="s1", role=Role.SELLER, manager_id="m1"),
            Profile(id="s2", role=Role.SELLER, manager_id="m1"),
            Profile(id="s3", role=Role.SELLER, manager_id="m2"),
        ],
    )


def test_distribute_resets_open_visits_and_creates_missing_ones() -> None:
    store = _store()
    result = asyncio.run(distribute(store, ["p1", "p2", "p4"], "s2", store.profiles["m1"]))

    assert (result.affected, result.updated, result.inserted) == (3, 2, 1)
    reset = store.visits["v1"]
    assert reset.user_id == "s2"
    assert reset.status is VisitStatus.TO_VISIT
    assert reset.checkin_time is None
    assert reset.scheduled_for is None
    assert reset.fraud_justification is None
    assert store.visits["v2"].user_id == "s2"
    # finalized history is kept and a new visit is opened instead
    assert store.visits["v4"].status is VisitStatus.FINALIZED
    new = [v for v in store.visits.values() if v.point_id == "p4" and v.id != "v4"]
    assert len(new) == 1 and new[0].user_id == "s2" and new[0].status is VisitStatus.TO_VISIT


def test_distribute_deduplicates_point_ids() -> None:
    store = _store()
    result = asyncio.run(distribute(store, ["p2", " p2 ", ""], "s1", store.profiles["m1"]))
    assert result.affected == 1


def test_distribute_requires_points_and_known_points() -> None:
    store = _store()
    with pytest.raises(ValidationError):
        asyncio.run(distribute(store, [], "s1", store.profiles["m1"]))
    with pytest.raises(NotFoundError) as excinfo:
        asyncio.run(distribute(store, ["p1", "zz"], "s1", store.profiles["m1"]))
    assert excinfo.value.extra["missing"] == ["zz"]


def test_distribution_targets_depend_on_role() -> None:
    store = _store()
    with pytest.raises(AuthorizationError):
        asyncio.run(distribute(store, ["p2"], "s1", store.profiles["a1"]))
    with pytest.raises(AuthorizationError):
        asyncio.run(distribute(store, ["p2"], "s3", store.profiles["m1"]))
    with pytest.raises(AuthorizationError):
        asyncio.run(distribute(store, ["p2"], "s2", store.profiles["s1"]))
    result = asyncio.run(distribute(store, ["p2"], "m2", store.profiles["a1"]))
    assert result.target_id == "m2"


def test_manager_cannot_take_points_held_by_another_team() -> None:
    store = _store()
    with pytest.raises(AuthorizationError):
        asyncio.run(distribute(store, ["p3"], "s1", store.profiles["m1"]))
    assert store.visits["v3"].user_id == "s3"


def test_failed_insert_batch_reports_partial_progress() -> None:
    store = _store()
    store.fail_operations.add("batch_insert_visits")
    with pytest.raises(PartialBatchError) as excinfo:
        asyncio.run(distribute(store, ["p1", "p4"], "s2", store.profiles["m1"]))
    error = excinfo.value
    assert (error.updated, error.inserted, error.failed_batches) == (1, 0, ["insert"])
    # the committed update is not rolled back
    assert store.visits["v1"].user_id == "s2"


def test_list_distribution_targets() -> None:
    store = _store()
    admin_targets = asyncio.run(list_distribution_targets(store, store.profiles["a1"]))
    manager_targets = asyncio.run(list_distribution_targets(store, store.profiles["m1"]))
    assert sorted(p.id for p in admin_targets) == ["m1", "m2"]
    assert sorted(p.id for p in manager_targets) == ["s1", "s2"]
    with pytest.raises(AuthorizationError):
        asyncio.run(list_distribution_targets(store, store.profiles["s1"]))


def test_distributable_queue_is_own_pending_visits_with_search() -> None:
    store = _store()
    manager = store.profiles["m1"]
    entries = asyncio.run(list_distributable_queue(store, manager))
    assert [entry.visit.id for entry in entries] == ["v2"]
    assert asyncio.run(list_distributable_queue(store, manager, "hillside"))
    assert asyncio.run(list_distributable_queue(store, manager, "lake")) == []


def test_transfer_team_moves_all_direct_reports() -> None:
    store = _store()
    moved = asyncio.run(transfer_team(store, "m1", "m2", store.profiles["a1"]))
    assert moved == 2
    assert {p.id for p in store.profiles.values() if p.manager_id == "m2"} == {"s1", "s2", "s3"}


def test_transfer_team_validation() -> None:
    store = _store()
    admin = store.profiles["a1"]
    with pytest.raises(AuthorizationError):
        asyncio.run(transfer_team(store, "m1", "m2", store.profiles["m1"]))
    with pytest.raises(ValidationError):
        asyncio.run(transfer_team(store, "m1", "m1", admin))
    with pytest.raises(ValidationError):
        asyncio.run(transfer_team(store, "m1", "s3", admin))
    with pytest.raises(NotFoundError):
        asyncio.run(transfer_team(store, "m1", "missing", admin))


def test_set_member_active_respects_hierarchy() -> None:
    store = _store()
    blocked = asyncio.run(set_member_active(store, "s1", False, store.profiles["m1"]))
    assert blocked.is_active is False
    assert store.profiles["s1"].is_active is False

    with pytest.raises(AuthorizationError):
        asyncio.run(set_member_active(store, "s3", False, store.profiles["m1"]))
    with pytest.raises(ValidationError):
        asyncio.run(set_member_active(store, "m1", False, store.profiles["m1"]))
    assert asyncio.run(set_member_active(store, "m2", False, store.profiles["a1"])).is_active is False


def test_failed_update_batch_still_runs_the_insert_batch() -> None:
    store = _store()
    store.fail_operations.add("batch_update_visits")
    with pytest.raises(PartialBatchError) as excinfo:
        asyncio.run(distribute(store, ["p1", "p4"], "s2", store.profiles["m1"]))
    error = excinfo.value
    assert (error.updated, error.inserted, error.failed_batches) == (0, 1, ["update"])
    assert store.visits["v1"].user_id == "s1"
    assert [v.user_id for v in store.visits.values() if v.point_id == "p4" and v.id != "v4"] == ["s2"]


def test_both_batches_failing_are_reported_together() -> None:
    store = _store()
    store.fail_operations.update({"batch_update_visits", "batch_insert_visits"})
    before = dict(store.visits)
    with pytest.raises(PartialBatchError) as excinfo:
        asyncio.run(distribute(store, ["p1", "p4"], "s2", store.profiles["m1"]))
    error = excinfo.value
    assert (error.updated, error.inserted, error.failed_batches) == (0, 0, ["update", "insert"])
    assert error.to_detail()["reason"] == "partial_batch_failure"
    assert store.visits == before
