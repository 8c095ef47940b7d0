"""Tests for the FastAPI bridge API.

WHY: The Slack bot only talks to the bridge through these endpoints, so
their status codes and bodies are a contract: /dispatch must report
failures in the body, other endpoints must map backend failures to 502,
and status lookups must 404 for files that were never dispatched.

HOW: FastAPI TestClient with the get_dispatcher dependency overridden by
a FileDispatcher running on FakeBackend's MockTransport and a fresh
FileStatusStore.

RULES:
- Airtable and n8n are never called for real
- Each test gets its own backend, status store, and overrides
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from project_bridge.api.n8n import FileDispatcher
from project_bridge.api.status import FileStatusStore
from project_bridge.server.app import app, get_dispatcher

DISPATCH_BODY = {
    "file_content": "hello",
    "file_name": "notes.txt",
    "project_id": "p1",
    "user_id": "U1",
    "channel_id": "C1",
    "ts": "1739959200.000100",
    "file_id": "F1",
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store():
    return FileStatusStore()


@pytest.fixture
def client(settings, backend, store):
    async def _dispatcher_override():
        async with FileDispatcher(settings, status_store=store, transport=backend.transport) as d:
            yield d

    app.dependency_overrides[get_dispatcher] = _dispatcher_override
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# GET /projects
# ---------------------------------------------------------------------------


class TestListProjects:

    def test_lists_projects_in_order(self, client):
        resp = client.get("/projects")
        assert resp.status_code == 200
        body = resp.json()
        assert [p["id"] for p in body] == ["p1", "p2"]
        assert body[0]["emoji"] == "\U0001f4c1"
        assert body[0]["branch"] == "main"
        assert body[1]["branch"] == "develop"

    def test_airtable_failure_is_502(self, client, backend):
        backend.airtable_status = 500
        resp = client.get("/projects")
        assert resp.status_code == 502
        assert "Failed to fetch projects" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# GET /projects/selection
# ---------------------------------------------------------------------------


class TestProjectSelection:

    def test_returns_blocks_for_file(self, client):
        resp = client.get("/projects/selection", params={"file_id": "F1"})
        assert resp.status_code == 200
        blocks = resp.json()["blocks"]
        assert blocks[1] == {"type": "divider"}
        buttons = blocks[2]["elements"]
        assert [b["action_id"] for b in buttons] == ["select_project_p1", "select_project_p2"]
        assert blocks[-1]["elements"][0]["action_id"] == "cancel_project_selection"

    def test_requires_file_id(self, client):
        resp = client.get("/projects/selection")
        assert resp.status_code == 422

    def test_airtable_timeout_is_502(self, client, backend):
        backend.raise_on = "airtable.test"
        resp = client.get("/projects/selection", params={"file_id": "F1"})
        assert resp.status_code == 502


# ---------------------------------------------------------------------------
# POST /dispatch
# ---------------------------------------------------------------------------


class TestDispatch:

    def test_success(self, client, backend):
        resp = client.post("/dispatch", json=DISPATCH_BODY)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["project"]["name"] == "Demo"
        assert body["response"] == {"status": "accepted"}
        assert body["error"] is None
        assert backend.last_n8n_json()["project"]["branch"] == "main"

    def test_unknown_project_reports_failure(self, client, backend):
        resp = client.post("/dispatch", json=dict(DISPATCH_BODY, project_id="p9"))
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is False
        assert body["project"] is None
        assert body["error"]
        assert backend.n8n_requests() == []

    def test_n8n_failure_reports_failure(self, client, backend):
        backend.n8n_status = 500
        body = client.post("/dispatch", json=DISPATCH_BODY).json()
        assert body["success"] is False
        assert body["project"] is None

    def test_missing_fields_rejected(self, client):
        resp = client.post("/dispatch", json={"file_name": "notes.txt"})
        assert resp.status_code == 422

    def test_records_file_status(self, client, store):
        client.post("/dispatch", json=DISPATCH_BODY)
        assert store.get("F1").status == "dispatched"


# ---------------------------------------------------------------------------
# POST /events and /analytics
# ---------------------------------------------------------------------------


class TestSideChannels:

    def test_forwards_event(self, client, backend):
        event = {"type": "file_shared", "file_id": "F1"}
        resp = client.post("/events", json=event)
        assert resp.status_code == 200
        assert resp.json() == {"response": {"status": "accepted"}}
        sent = backend.last_n8n_json()
        assert sent["type"] == "event_callback"
        assert sent["event"] == event

    def test_event_forward_failure_is_502(self, client, backend):
        backend.n8n_status = 500
        resp = client.post("/events", json={"type": "file_shared"})
        assert resp.status_code == 502

    def test_sends_analytics(self, client, backend):
        resp = client.post("/analytics", json={"data": {"event": "project_selected"}})
        assert resp.status_code == 200
        request = backend.n8n_requests()[-1]
        assert request.url.path.endswith("/webhook/slack-analytics")
        assert backend.last_n8n_json()["data"]["source"] == "airtable-integration"

    def test_analytics_failure_is_502(self, client, backend):
        backend.raise_on = "n8n.test"
        resp = client.post("/analytics", json={"data": {}})
        assert resp.status_code == 502


# ---------------------------------------------------------------------------
# GET /files/{file_id}/status
# ---------------------------------------------------------------------------


class TestFileStatus:

    def test_unknown_file_is_404(self, client):
        resp = client.get("/files/F404/status")
        assert resp.status_code == 404
        assert "F404" in resp.json()["detail"]

    def test_after_dispatch(self, client):
        client.post("/dispatch", json=DISPATCH_BODY)
        resp = client.get("/files/F1/status")
        assert resp.status_code == 200
        body = resp.json()
        assert body["file_id"] == "F1"
        assert body["status"] == "dispatched"
        assert body["project_id"] == "p1"

    def test_after_failed_dispatch(self, client):
        client.post("/dispatch", json=dict(DISPATCH_BODY, project_id="p9"))
        body = client.get("/files/F1/status").json()
        assert body["status"] == "failed"
        assert "p9" in body["error"]

    def test_list_is_empty_before_any_dispatch(self, client):
        resp = client.get("/files")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_list_oldest_update_first(self, client):
        client.post("/dispatch", json=DISPATCH_BODY)
        client.post("/dispatch", json=dict(DISPATCH_BODY, file_id="F2", project_id="p9"))
        body = client.get("/files").json()
        assert [(s["file_id"], s["status"]) for s in body] == [
            ("F1", "dispatched"),
            ("F2", "failed"),
        ]


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}
