"""Tests for the FastAPI host service.

WHY: The capture page depends on every endpoint's status codes and
bodies. These tests exercise the happy paths and each error branch.

HOW: FastAPI TestClient, in-process. The realtime SDP exchange is
patched at the app module so no network call is made. The shared
session store is cleared around each test.

RULES:
- The realtime service is never called
- Each test is independent; the store is reset before and after
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from live_captions import __version__
from live_captions.api.client import RealtimeAPIError
from live_captions.server.app import app, session_store

from .conftest import text_delta


@pytest.fixture(autouse=True)
def _reset_session_store():
    session_store._sessions.clear()
    yield
    session_store._sessions.clear()


@pytest.fixture
def client():
    return TestClient(app)


def _create(client) -> str:
    resp = client.post("/sessions")
    assert resp.status_code == 201
    return resp.json()["id"]


def _post_event(client, session_id: str, event) -> dict:
    resp = client.post(
        "/sessions/{}/events".format(session_id),
        content=json.dumps(event),
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 200
    return resp.json()


# ---------------------------------------------------------------------------
# Health and credentials
# ---------------------------------------------------------------------------


class TestHealth:
    def test_health_without_key(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {
            "status": "ok",
            "version": __version__,
            "api_key_configured": False,
        }

    def test_health_with_key(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert client.get("/health").json()["api_key_configured"] is True


class TestCredentials:
    def test_no_key(self, client):
        assert client.get("/credentials").json() == {"has_key": False, "from_env": False}

    def test_quoted_key(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", '"sk-quoted"')
        assert client.get("/credentials").json() == {"has_key": True, "from_env": True}

    def test_blank_key(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "''")
        assert client.get("/credentials").json() == {"has_key": False, "from_env": True}


class TestRealtimeConfig:
    def test_config(self, client):
        data = client.get("/realtime/config").json()
        assert data["model"] == "gpt-realtime-preview"
        assert data["ice_servers"] == ["stun:stun.l.google.com:19302"]
        assert data["session"]["input_audio_transcription"] == {"model": "whisper-1"}
        assert data["response"]["modalities"] == ["text"]


# ---------------------------------------------------------------------------
# POST /realtime/answer
# ---------------------------------------------------------------------------


class TestRealtimeAnswer:
    def _post_offer(self, client, body: str = "v=0 offer"):
        return client.post(
            "/realtime/answer",
            content=body,
            headers={"Content-Type": "application/sdp"},
        )

    def test_returns_answer(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        with patch(
            "live_captions.server.app.fetch_answer_sdp",
            new=AsyncMock(return_value="v=0 answer"),
        ) as mock_fetch:
            resp = self._post_offer(client)

        assert resp.status_code == 200
        assert resp.text == "v=0 answer"
        assert resp.headers["content-type"].startswith("application/sdp")
        mock_fetch.assert_awaited_once_with("v=0 offer")

    def test_empty_offer(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        resp = self._post_offer(client, body="   ")
        assert resp.status_code == 400

    def test_missing_key(self, client):
        resp = self._post_offer(client)
        assert resp.status_code == 503
        assert "API key" in resp.json()["detail"]

    def test_remote_rejection(self, client, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        with patch(
            "live_captions.server.app.fetch_answer_sdp",
            new=AsyncMock(side_effect=RealtimeAPIError(401, "bad key")),
        ):
            resp = self._post_offer(client)

        assert resp.status_code == 502
        assert "401 bad key" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Caption sessions
# ---------------------------------------------------------------------------


class TestSessions:
    def test_create(self, client):
        resp = client.post("/sessions")
        assert resp.status_code == 201
        data = resp.json()
        assert len(data["id"]) == 32
        assert isinstance(data["created_at"], float)

    def test_list(self, client):
        first = _create(client)
        second = _create(client)
        session_store.get_session(first).created_at = 1.0
        session_store.get_session(second).created_at = 2.0
        _post_event(client, first, {
            "type": "response.text.done", "event_id": "f1", "text": "Done.",
        })
        client.post("/sessions/{}/stop".format(first))

        resp = client.get("/sessions")

        assert resp.status_code == 200
        sessions = resp.json()["sessions"]
        assert [s["id"] for s in sessions] == [first, second]
        assert sessions[0]["stopped"] is True
        assert sessions[0]["entry_count"] == 1
        assert sessions[1]["stopped"] is False
        assert sessions[1]["entry_count"] == 0

    def test_store_full(self, client, monkeypatch):
        monkeypatch.setattr(session_store, "max_sessions", 1)
        _create(client)
        resp = client.post("/sessions")
        assert resp.status_code == 429

    def test_events_build_transcript(self, client):
        session_id = _create(client)

        first = _post_event(client, session_id, text_delta("Hello", "e1"))
        second = _post_event(client, session_id, text_delta("world", "e2"))

        assert first["changed"] is True
        assert second["transcript"]["live_text"] == "Hello world"
        assert second["transcript"]["text"] == "Hello world"
        assert second["transcript"]["status"] == "Recording System Audio..."

    def test_duplicate_event_unchanged(self, client):
        session_id = _create(client)
        _post_event(client, session_id, text_delta("Hello", "e1"))
        result = _post_event(client, session_id, text_delta("Other", "e1"))
        assert result["changed"] is False
        assert result["transcript"]["live_text"] == "Hello"

    def test_malformed_event_skipped(self, client):
        session_id = _create(client)
        resp = client.post("/sessions/{}/events".format(session_id), content="{oops")
        assert resp.status_code == 200
        assert resp.json()["changed"] is False

    def test_error_event_notice(self, client):
        session_id = _create(client)
        result = _post_event(client, session_id, {
            "type": "error", "event_id": "x1", "error": {"message": "Quota exceeded"},
        })
        assert result["transcript"]["notice"] == {
            "text": "API Error: Quota exceeded",
            "is_error": True,
        }

    def test_get_transcript(self, client):
        session_id = _create(client)
        _post_event(client, session_id, {
            "type": "response.text.done", "event_id": "f1", "text": "Done.",
        })
        data = client.get("/sessions/{}/transcript".format(session_id)).json()
        assert data["id"] == session_id
        assert data["live_text"] == "Done."
        assert data["entries"] == []
        assert data["stopped"] is False

    def test_stop_finalizes(self, client):
        session_id = _create(client)
        _post_event(client, session_id, text_delta("final words", "e1"))

        resp = client.post("/sessions/{}/stop".format(session_id))

        assert resp.status_code == 200
        data = resp.json()
        assert data["stopped"] is True
        assert data["live_text"] == ""
        assert [e["text"] for e in data["entries"]] == ["final words"]
        assert data["status"] == "Not Recording"

    def test_event_after_stop_conflict(self, client):
        session_id = _create(client)
        client.post("/sessions/{}/stop".format(session_id))
        resp = client.post(
            "/sessions/{}/events".format(session_id),
            content=json.dumps(text_delta("late", "e1")),
        )
        assert resp.status_code == 409

    def test_delete(self, client):
        session_id = _create(client)
        resp = client.delete("/sessions/{}".format(session_id))
        assert resp.status_code == 204
        assert client.get("/sessions/{}/transcript".format(session_id)).status_code == 404

    @pytest.mark.parametrize("method, path", [
        ("get", "/sessions/missing/transcript"),
        ("post", "/sessions/missing/stop"),
        ("delete", "/sessions/missing"),
    ])
    def test_unknown_session_404(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 404

    def test_event_unknown_session_404(self, client):
        resp = client.post(
            "/sessions/missing/events",
            content=json.dumps(text_delta("hi", "e1")),
        )
        assert resp.status_code == 404
