"""Tests for ui/app.py — HTTP surface over the planner session."""

import json

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from core.catalog import DEFAULT_TASKS
from core.session import PlannerSession
from core.sync import InMemoryPlanStore
from core.workspace import load_config, plan_document_path, today_str
from ui.app import _plan_payload, app


@pytest.fixture
def client(workspace, monkeypatch):
    monkeypatch.delenv("FOCUSFLOW_USERNAME", raising=False)
    monkeypatch.delenv("FOCUSFLOW_PASSWORD", raising=False)
    with TestClient(app) as c:
        yield c


def _guest_document(workspace):
    config = load_config(workspace)
    return plan_document_path(config, "guest", today_str(config))


def test_healthz(client):
    assert client.get("/healthz").json() == {"ok": "true"}


def test_first_load_returns_default_plan(client):
    body = client.get("/api/plan").json()
    assert body["ok"] is True
    assert [t["id"] for t in body["plan"]["tasks"]] == [t.id for t in DEFAULT_TASKS]
    assert body["plan"]["energyLevel"] == "medium"
    assert body["completionPercentage"] == 0
    assert body["completedCount"] == 0


def test_default_plan_is_persisted(workspace, monkeypatch):
    monkeypatch.delenv("FOCUSFLOW_USERNAME", raising=False)
    monkeypatch.delenv("FOCUSFLOW_PASSWORD", raising=False)
    with TestClient(app) as c:
        c.post("/api/plan/tasks/2/toggle")
    # shutdown flushes pending writes
    doc = json.loads(_guest_document(workspace).read_text(encoding="utf-8"))
    assert doc["tasks"][1]["id"] == "2"
    assert doc["tasks"][1]["completed"] is True


def test_toggle_task(client):
    body = client.post("/api/plan/tasks/1/toggle").json()
    assert body["plan"]["tasks"][0]["completed"] is True
    assert body["completionPercentage"] == 17  # 1 of 6
    body = client.post("/api/plan/tasks/1/toggle").json()
    assert body["plan"]["tasks"][0]["completed"] is False


def test_add_edit_delete(client):
    body = client.post("/api/plan/tasks").json()
    new = body["plan"]["tasks"][-1]
    assert new["title"] == "New Goal"
    assert new["time"] == "12:00"

    body = client.patch(f"/api/plan/tasks/{new['id']}", json={"field": "time", "value": "07:00"}).json()
    assert body["plan"]["tasks"][0]["id"] == new["id"]

    body = client.patch(f"/api/plan/tasks/{new['id']}", json={"field": "title", "value": "Read"}).json()
    assert body["plan"]["tasks"][0]["title"] == "Read"

    body = client.delete(f"/api/plan/tasks/{new['id']}").json()
    assert new["id"] not in [t["id"] for t in body["plan"]["tasks"]]


def test_edit_rejects_bad_input(client):
    r = client.patch("/api/plan/tasks/1", json={"field": "time", "value": "25:99"})
    assert r.status_code == 400
    assert "Invalid time" in r.json()["detail"]

    r = client.patch("/api/plan/tasks/1", json={"field": "completed", "value": "yes"})
    assert r.status_code == 400

    r = client.patch("/api/plan/tasks/1", json={"field": "title"})
    assert r.status_code == 400


def test_energy_level(client):
    assert client.put("/api/plan/energy", json={"level": "high"}).json()["plan"]["energyLevel"] == "high"
    assert client.put("/api/plan/energy", json={"level": "turbo"}).status_code == 400


def test_workout_mode(client):
    body = client.put("/api/plan/workout", json={"enabled": True}).json()
    ids = [t["id"] for t in body["plan"]["tasks"]]
    assert body["plan"]["workoutMode"] is True
    assert "w1" in ids and "w2" in ids

    body = client.post("/api/plan/workout/toggle").json()
    ids = [t["id"] for t in body["plan"]["tasks"]]
    assert body["plan"]["workoutMode"] is False
    assert "l1" in ids and "w1" not in ids

    assert client.put("/api/plan/workout", json={"enabled": "yes"}).status_code == 400


def test_timer_start_and_stop(client):
    assert client.get("/api/timer").json()["timer"]["status"] == "idle"

    body = client.post("/api/timer/start", json={"task_id": "2"}).json()
    assert body["timer"]["activeTaskId"] == "2"
    assert body["timer"]["status"] == "running"
    assert body["display"] == "90:00"

    # starting the running task again stops it
    body = client.post("/api/timer/start", json={"task_id": "2"}).json()
    assert body["timer"]["status"] == "idle"
    assert body["timer"]["running"] is False

    client.post("/api/timer/start", json={"task_id": "3"})
    body = client.post("/api/timer/stop").json()
    assert body["timer"]["activeTaskId"] == "3"
    assert body["timer"]["running"] is False


def test_timer_unknown_task(client):
    assert client.post("/api/timer/start", json={"task_id": "nope"}).status_code == 404


def test_index_page(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "Focus &amp; Flow" in r.text
    assert "Deep Work Session (Eat the Frog)" in r.text
    assert "absolute machine" not in r.text

    for t in DEFAULT_TASKS:
        client.post(f"/api/plan/tasks/{t.id}/toggle")
    r = client.get("/")
    assert "100% Laziness Defeated" in r.text
    assert "You are an absolute machine today!" in r.text


def test_corrupt_document_is_503(workspace, monkeypatch):
    monkeypatch.delenv("FOCUSFLOW_USERNAME", raising=False)
    monkeypatch.delenv("FOCUSFLOW_PASSWORD", raising=False)
    path = _guest_document(workspace)
    path.parent.mkdir(parents=True)
    path.write_text("{broken", encoding="utf-8")
    with TestClient(app) as c:
        r = c.get("/api/plan")
    assert r.status_code == 503
    assert "Plan not loaded" in r.json()["detail"]


def test_basic_auth(workspace, monkeypatch):
    monkeypatch.setenv("FOCUSFLOW_USERNAME", "alice")
    monkeypatch.setenv("FOCUSFLOW_PASSWORD", "s3cret")
    with TestClient(app) as c:
        assert c.get("/api/plan").status_code == 401
        assert c.get("/api/plan", auth=("alice", "wrong")).status_code == 401
        r = c.get("/api/plan", auth=("alice", "s3cret"))
    assert r.status_code == 200
    assert (workspace / "artifacts" / "test-app" / "users" / "alice").is_dir()


def test_plan_payload_without_plan_is_503(config):
    session = PlannerSession(InMemoryPlanStore(), config)
    with pytest.raises(HTTPException) as exc:
        _plan_payload(session)
    assert exc.value.status_code == 503
