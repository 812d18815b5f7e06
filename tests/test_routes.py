"""
Tests for the planning session API.

Run with: python -m pytest tests/test_routes.py
"""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from main import app
from planner.config import merge_config
from server.routes import TickRequest, _tick_limits

client = TestClient(app)

ONE_CANDIDATE = {"candidates": {"max_candidates": 1}}


def _payload(name, terrain="0"):
    return {
        "name": name,
        "terrain": [terrain * 50 for _ in range(50)],
        "sources": [[10, 10], [40, 12]],
        "controller": [25, 40],
        "mineral": {"x": 12, "y": 38, "type": "H"},
    }


@pytest.fixture(scope="module")
def planned_room():
    """Create a session and tick it to completion."""
    response = client.post("/api/rooms", json={"room": _payload("E5S5"), "config": ONE_CANDIDATE})
    assert response.status_code == 200
    response = client.post("/api/rooms/E5S5/tick", json={"max_stages": 1000})
    assert response.status_code == 200
    return response.json()


def test_create_room_starts_at_analysis():
    response = client.post("/api/rooms", json={"room": _payload("E1S1"), "config": ONE_CANDIDATE})
    assert response.status_code == 200
    data = response.json()
    assert data["room"] == "E1S1"
    assert data["status"] == "running"
    assert data["progress"]["stage"] == "analysis"


def test_create_room_rejects_bad_payload():
    payload = _payload("E1S2")
    payload["sources"] = [[99, 99]]
    response = client.post("/api/rooms", json={"room": payload})
    assert response.status_code == 400


def test_tick_advances_by_stage_count():
    client.post("/api/rooms", json={"room": _payload("E2S2"), "config": ONE_CANDIDATE})
    response = client.post("/api/rooms/E2S2/tick", json={"max_stages": 2})
    assert response.status_code == 200
    progress = response.json()["progress"]
    assert progress["stages_run"] == 2
    assert progress["stage"] == "hub"


def test_tick_without_body_uses_configured_seconds():
    client.post("/api/rooms", json={"room": _payload("E3S3"), "config": ONE_CANDIDATE})
    response = client.post("/api/rooms/E3S3/tick")
    assert response.status_code == 200
    assert response.json()["progress"]["stages_run"] >= 1


def test_tick_rejects_empty_budget():
    client.post("/api/rooms", json={"room": _payload("E4S4"), "config": ONE_CANDIDATE})
    assert client.post("/api/rooms/E4S4/tick", json={"max_stages": 0}).status_code == 400
    assert client.post("/api/rooms/E4S4/tick", json={"budget_seconds": -1}).status_code == 400


def test_tick_budget_is_clamped():
    state = SimpleNamespace(config=merge_config(None))
    assert _tick_limits(TickRequest(max_stages=10 ** 9), state) == (10000, 0.0)
    assert _tick_limits(TickRequest(budget_seconds=3600.0), state) == (None, 5.0)
    assert _tick_limits(TickRequest(budget_seconds=0.5), state) == (None, 0.5)
    assert _tick_limits(TickRequest(), state) == (None, 0.05)


def test_oversized_tick_still_runs():
    client.post("/api/rooms", json={"room": _payload("E4S5"), "config": ONE_CANDIDATE})
    response = client.post("/api/rooms/E4S5/tick", json={"max_stages": 10 ** 9})
    assert response.status_code == 200
    assert response.json()["status"] == "complete"


def test_unknown_room_is_404():
    assert client.get("/api/rooms/NOPE1").status_code == 404
    assert client.post("/api/rooms/NOPE1/tick", json={"max_stages": 1}).status_code == 404
    assert client.get("/api/rooms/NOPE1/plan").status_code == 404


def test_plan_not_ready_is_404():
    client.post("/api/rooms", json={"room": _payload("E6S6"), "config": ONE_CANDIDATE})
    response = client.get("/api/rooms/E6S6/plan")
    assert response.status_code == 404
    assert "not ready" in response.json()["detail"]


def test_planned_room_completes(planned_room):
    assert planned_room["status"] == "complete"
    assert planned_room["stage"] == "complete"
    assert planned_room["progress"]["best_score"] is not None


def test_get_plan(planned_room):
    response = client.get("/api/rooms/E5S5/plan")
    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["counts"]["extension"] == 60
    assert data["plan"]["room"] == "E5S5"


def test_operations_for_empty_room(planned_room):
    response = client.post("/api/rooms/E5S5/operations", json={"tier": 1, "existing": []})
    assert response.status_code == 200
    data = response.json()
    assert data["build"][0]["structure_type"] == "spawn"
    assert data["cleanup"] == []
    assert data["complete"] is False


def test_operations_cleanup_stray_structure(planned_room):
    existing = [{"x": 1, "y": 1, "structure_type": "extension", "has_store": False}]
    response = client.post("/api/rooms/E5S5/operations", json={"tier": 2, "existing": existing})
    assert response.status_code == 200
    assert response.json()["cleanup"] == [{
        "op": "destroy",
        "x": 1,
        "y": 1,
        "structure_type": "extension",
        "safe_only": False,
    }]


def test_operations_reject_bad_input(planned_room):
    assert client.post("/api/rooms/E5S5/operations", json={"tier": 9}).status_code == 400
    bad = [{"x": 1, "y": 1, "structure_type": "castle"}]
    response = client.post("/api/rooms/E5S5/operations", json={"tier": 2, "existing": bad})
    assert response.status_code == 400


def test_plan_png(planned_room):
    response = client.get("/api/rooms/E5S5/plan.png")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content[:4] == b"\x89PNG"


def test_events_recorded(planned_room):
    response = client.get("/api/rooms/E5S5/events")
    assert response.status_code == 200
    kinds = [e["event"] for e in response.json()["events"]]
    assert kinds[0] == "complete"
    assert "tick" in kinds
    assert kinds[-1] == "started"


def test_list_rooms(planned_room):
    response = client.get("/api/rooms")
    assert response.status_code == 200
    assert "E5S5" in [r["room"] for r in response.json()["rooms"]]


def test_failed_room_returns_422():
    payload = _payload("E7S7", terrain="1")
    client.post("/api/rooms", json={"room": payload, "config": ONE_CANDIDATE})
    response = client.post("/api/rooms/E7S7/tick", json={"max_stages": 100})
    assert response.json()["status"] == "failed"

    response = client.get("/api/rooms/E7S7/plan")
    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "PlanningFailed"

    kinds = [e["event"] for e in client.get("/api/rooms/E7S7/events").json()["events"]]
    assert kinds[0] == "failed"
