"""
API Tests
=========
Tests for GET /health, POST /api/locate and POST /api/fix.
The orchestrator is mocked for /api/fix — no model calls, no copies.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from healer.api.fix_event import get_fix_history, get_orchestrator_factory
from healer.models.error_location import ErrorLocation
from healer.models.fix_result import ApplyResult, BlockRange, FixState
from healer.models.pipeline_outcome import PipelineOutcome
from healer.services.fix_history import InMemoryFixHistory
from main import app

EVENT = {
    "exception": {"values": [{
        "type": "TypeError",
        "value": "x is undefined",
        "stacktrace": {"frames": [{"filename": "app:///src/foo.js", "lineno": 42, "colno": 3}]},
    }]}
}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def fake_orchestrator():
    orchestrator = MagicMock()
    orchestrator.fix_agent.close = AsyncMock()
    orchestrator.handle_event = AsyncMock(return_value=PipelineOutcome(
        state="applied",
        location=ErrorLocation(file="src/foo.js", line=42),
        apply_result=ApplyResult(
            success=True,
            state=FixState.APPLIED,
            diff="--- a/foo.js\n+++ b/foo.js",
            location=BlockRange(start=40, end=44),
            confidence=0.9,
            source="ai",
        ),
        working_copy="/tmp/ws/repo-1",
        summary="done",
    ))
    return orchestrator


def _use(orchestrator, modes=None):
    def factory():
        def build(mode):
            if modes is not None:
                modes.append(mode)
            return orchestrator
        return build
    app.dependency_overrides[get_orchestrator_factory] = factory


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


class TestLocate:

    def test_locates_event(self, client):
        response = client.post("/api/locate", json={"event": EVENT})
        assert response.status_code == 200
        body = response.json()
        assert body["file"] == "src/foo.js"
        assert body["line"] == 42
        assert body["column"] == 3
        assert body["error_type"] == "TypeError"

    def test_unresolved_event(self, client):
        response = client.post("/api/locate", json={"event": {"message": "nothing"}})
        assert response.status_code == 200
        assert response.json()["file"] is None

    def test_event_required(self, client):
        assert client.post("/api/locate", json={}).status_code == 422


class TestFix:

    def test_returns_outcome(self, client, fake_orchestrator):
        modes = []
        _use(fake_orchestrator, modes)
        response = client.post("/api/fix", json={"event": EVENT, "repo_path": "/repo", "mode": "standard"})

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "applied"
        assert body["file"] == "src/foo.js"
        assert body["confidence"] == 0.9
        assert body["working_copy"] == "/tmp/ws/repo-1"
        assert modes == ["standard"]
        fake_orchestrator.handle_event.assert_awaited_once_with(EVENT, "/repo")
        fake_orchestrator.fix_agent.close.assert_awaited_once()

    def test_unknown_mode_rejected(self, client, fake_orchestrator):
        _use(fake_orchestrator)
        response = client.post("/api/fix", json={"event": EVENT, "repo_path": "/repo", "mode": "turbo"})
        assert response.status_code == 422
        fake_orchestrator.handle_event.assert_not_called()

    def test_pipeline_crash_is_500(self, client, fake_orchestrator):
        fake_orchestrator.handle_event.side_effect = RuntimeError("disk full")
        _use(fake_orchestrator)
        response = client.post("/api/fix", json={"event": EVENT, "repo_path": "/repo"})
        assert response.status_code == 500
        assert "disk full" in response.json()["detail"]
        fake_orchestrator.fix_agent.close.assert_awaited_once()


class TestFixHistorySharing:

    def test_default_store_is_shared(self):
        assert get_fix_history() is get_fix_history()

    def test_factory_injects_store(self):
        store = InMemoryFixHistory(10)
        build = get_orchestrator_factory(history=store)
        assert build("standard").fix_agent.history is store
        assert build("enhanced").fix_agent.history is store

    def test_second_request_reuses_previous_fix(self, client, tmp_path):
        repo = tmp_path / "shop"
        (repo / "src").mkdir(parents=True)
        (repo / "src" / "foo.js").write_text("".join(f"const v{i} = {i};\n" for i in range(1, 51)))
        store = InMemoryFixHistory(10)
        app.dependency_overrides[get_fix_history] = lambda: store

        answer = "## Root Cause Analysis\nv41 unchecked\n```js\nconst v42 = guard(v41);\n```"
        body = {"event": EVENT, "repo_path": str(repo), "mode": "enhanced"}
        with patch("healer.api.fix_event.WORKSPACE_ROOT", str(tmp_path / "ws")), \
                patch("healer.llm.client.LLMClient.complete", new_callable=AsyncMock) as mock_complete:
            mock_complete.return_value = answer
            first = client.post("/api/fix", json=body).json()
            second = client.post("/api/fix", json=body).json()

        assert first["state"] == "applied"
        assert first["source"] == "ai"
        assert second["state"] == "applied"
        assert second["source"] == "historical"
        assert "Historical Fix Reference" not in mock_complete.await_args_list[0].args[0]
        assert "Historical Fix Reference" in mock_complete.await_args_list[1].args[0]
