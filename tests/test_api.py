import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from fieldroute.api import dependencies
from fieldroute.api.dependencies import get_store
from fieldroute.config import settings
from fieldroute.main import create_app
from fieldroute.models.domain import PointOfInterest, Profile, Role, Visit
from fieldroute.persistence.memory import InMemoryStore

API = settings.api_prefix


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore(
        pois=[
            PointOfInterest(id="p1", name="Lake School", address="Lake Rd 1", neighborhood="Lakeside", coordinates="0, 0"),
            PointOfInterest(id="p2", name="Hill Clinic", address="Hill Rd 2", neighborhood="Hillside", coordinates="0.02, 0"),
        ],
        visits=[
            Visit(id="v1", point_id="p1", user_id="s1"),
            Visit(id="v2", point_id="p2", user_id="s1"),
        ],
        profiles=[
            Profile(id="a1", role=Role.ADMIN),
            Profile(id="m1", role=Role.MANAGER),
            Profile(id="m2", role=Role.MANAGER),
            Profile(id="s1", role=Role.SELLER, manager_id="m1", full_name="Sam Seller"),
            Profile(id="s2", role=Role.SELLER, manager_id="m1", is_active=False),
        ],
    )


@pytest.fixture()
def client(store: InMemoryStore) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    return TestClient(app)


def _as(actor_id: str) -> dict:
    return {"X-Actor-Id": actor_id}


def test_health_endpoints(client: TestClient) -> None:
    assert client.get(f"{API}/health").json() == {"status": "ok"}
    assert client.get("/").json()["status"] == "running"
    assert client.get(f"{API}/health/database").json()["configured"] is False


def test_actor_header_is_required(client: TestClient) -> None:
    assert client.get(f"{API}/visits/board").status_code == 401
    assert client.get(f"{API}/visits/board", headers=_as("ghost")).status_code == 401
    assert client.get(f"{API}/visits/board", headers=_as("s2")).status_code == 403


def test_visit_lifecycle_over_http(client: TestClient, store: InMemoryStore) -> None:
    response = client.post(f"{API}/visits/v1/start", headers=_as("s1"), json={"navigation_provider": "waze"})
    assert response.status_code == 200
    assert response.json()["status"] == "en_route"

    conflict = client.post(f"{API}/visits/v2/start", headers=_as("s1"))
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["reason"] == "active_route_exists"

    far = client.post(f"{API}/visits/v1/arrive", headers=_as("s1"), json={"position": {"latitude": 0.05, "longitude": 0}})
    assert far.status_code == 428
    detail = far.json()["detail"]
    assert detail["reason"] == "geofence_justification_required"
    assert detail["distance_km"] > detail["threshold_km"]

    arrived = client.post(
        f"{API}/visits/v1/arrive",
        headers=_as("s1"),
        json={"position": {"latitude": 0.05, "longitude": 0}, "justification": "Main gate closed"},
    )
    assert arrived.status_code == 200
    assert arrived.json()["fraud_justification"] == "Main gate closed"

    missing_count = client.post(f"{API}/visits/v1/finalize", headers=_as("s1"), json={"collaborator_count": "many"})
    assert missing_count.status_code == 400
    assert missing_count.json()["detail"]["reason"] == "collaborator_count_required"

    finalized = client.post(
        f"{API}/visits/v1/finalize",
        headers=_as("s1"),
        json={"collaborator_count": "18", "responsible_name": "Ana"},
    )
    assert finalized.status_code == 200
    assert finalized.json()["collaborator_count"] == 18
    assert store.pois["p1"].last_visit_at is not None

    skipped = client.post(f"{API}/visits/v2/finalize", headers=_as("s1"), json={"collaborator_count": 1})
    assert skipped.status_code == 400
    assert skipped.json()["detail"]["reason"] == "invalid_transition"


def test_board_summary_and_schedule(client: TestClient) -> None:
    later = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
    scheduled = client.post(f"{API}/visits/v2/schedule", headers=_as("s1"), json={"scheduled_for": later})
    assert scheduled.status_code == 200

    board = client.get(f"{API}/visits/board", headers=_as("m1"), params={"lat": 0, "lng": 0})
    assert board.status_code == 200
    body = board.json()
    assert body["total"] == 2
    cards = {card["visit"]["id"]: card for card in body["columns"]["to_visit"]}
    assert cards["v2"]["deferred"] is True
    assert cards["v1"]["distance_km"] == 0.0
    assert cards["v1"]["assignee_name"] == "Sam Seller"

    summary = client.get(f"{API}/visits/summary", headers=_as("s1")).json()
    assert summary["counts"]["to_visit"] == 2
    assert summary["conversion_pct"] == 0


def test_visit_outside_scope_is_forbidden(client: TestClient) -> None:
    response = client.post(f"{API}/visits/v1/start", headers=_as("m2"))
    assert response.status_code == 403
    assert client.post(f"{API}/visits/nope/start", headers=_as("s1")).status_code == 404


def test_optimize_route(client: TestClient) -> None:
    response = client.post(
        f"{API}/routes/optimize",
        headers=_as("s1"),
        json={"reference": {"latitude": 0.03, "longitude": 0}},
    )
    assert response.status_code == 200
    body = response.json()
    assert [item["visit"]["id"] for item in body["items"]] == ["v2", "v1"]
    assert [item["sequence"] for item in body["items"]] == [1, 2]

    no_reference = client.post(f"{API}/routes/optimize", headers=_as("s1"), json={})
    assert no_reference.status_code == 400
    assert no_reference.json()["detail"]["reason"] == "reference_required"


def test_distribution_endpoints(client: TestClient, store: InMemoryStore) -> None:
    targets = client.get(f"{API}/distribution/targets", headers=_as("m1")).json()
    assert sorted(t["id"] for t in targets) == ["s1", "s2"]

    response = client.post(f"{API}/distribution", headers=_as("m1"), json={"point_ids": ["p1"], "target_id": "s2"})
    assert response.status_code == 200
    assert response.json() == {"affected": 1, "updated": 1, "inserted": 0, "target_id": "s2"}
    assert store.visits["v1"].user_id == "s2"

    forbidden = client.post(f"{API}/distribution", headers=_as("s1"), json={"point_ids": ["p1"], "target_id": "s2"})
    assert forbidden.status_code == 403

    store.fail_operations.add("batch_update_visits")
    partial = client.post(f"{API}/distribution", headers=_as("m1"), json={"point_ids": ["p2"], "target_id": "s2"})
    assert partial.status_code == 503
    assert partial.json()["detail"]["failed_batches"] == ["update"]

    assert client.get(f"{API}/distribution/queue", headers=_as("m1")).json() == []


def test_team_endpoints(client: TestClient, store: InMemoryStore) -> None:
    moved = client.post(f"{API}/team/transfer", headers=_as("a1"), json={"old_manager_id": "m1", "new_manager_id": "m2"})
    assert moved.json() == {"moved": 2}
    assert client.post(
        f"{API}/team/transfer", headers=_as("m1"), json={"old_manager_id": "m2", "new_manager_id": "m1"}
    ).status_code == 403

    toggled = client.post(f"{API}/team/s1/active", headers=_as("m2"), json={"active": False})
    assert toggled.status_code == 200
    assert toggled.json()["is_active"] is False

    reported = client.post(f"{API}/team/location", headers=_as("m2"), json={"latitude": 1.5, "longitude": 2.5})
    assert reported.json()["accepted"] is True
    throttled = client.post(f"{API}/team/location", headers=_as("m2"), json={"latitude": 1.6, "longitude": 2.6})
    assert throttled.json()["accepted"] is False

    store.profiles["s2"].last_latitude = 3.0
    store.profiles["s2"].last_longitude = 4.0
    locations = client.get(f"{API}/team/locations", headers=_as("m2")).json()
    assert [(entry["id"], entry["position"]) for entry in locations] == [("s2", {"latitude": 3.0, "longitude": 4.0})]


def test_pois_and_customers(client: TestClient) -> None:
    created = client.post(
        f"{API}/pois",
        headers=_as("s1"),
        json={
            "name": "North Hospital",
            "address": "North Ave 50",
            "neighborhood": "North",
            "category": "hospital",
            "coordinates": "-23.5,-46.6",
        },
    )
    assert created.status_code == 201
    assert created.json()["coordinates"] == "-23.5, -46.6"

    invalid = client.post(
        f"{API}/pois",
        headers=_as("s1"),
        json={"name": "No", "address": "North Ave 50", "neighborhood": "North"},
    )
    assert invalid.status_code == 422

    listing = client.get(f"{API}/pois", headers=_as("s1"), params={"search": "north"}).json()
    assert listing["total"] == 1
    assert listing["has_next_page"] is False

    sale = client.post(
        f"{API}/customers",
        headers=_as("s1"),
        json={"full_name": "Student One", "installments": 10, "poi_id": created.json()["id"]},
    )
    assert sale.status_code == 201
    assert sale.json()["seller_id"] == "s1"
    assert sale.json()["status"] == "pending"


def test_hints_endpoint(client: TestClient) -> None:
    response = client.post(f"{API}/visits/hints", headers=_as("s1"), json={"text": "Talked to Rita Gomes, 15 employees"})
    assert response.json() == {"responsible_name": "Rita Gomes", "collaborator_count": 15}


def test_unconfigured_store_fallback_is_shared_and_announced_once(monkeypatch, caplog) -> None:
    async def no_client():
        return None

    monkeypatch.setattr(dependencies, "get_supabase_client", no_client)
    monkeypatch.setattr(dependencies, "_fallback_store", None)

    async def twice():
        return await dependencies.get_store(), await dependencies.get_store()

    with caplog.at_level(logging.WARNING, logger="fieldroute.api.dependencies"):
        first, second = asyncio.run(twice())

    assert isinstance(first, InMemoryStore)
    assert first is second
    warnings = [record for record in caplog.records if "not configured" in record.getMessage()]
    assert len(warnings) == 1
