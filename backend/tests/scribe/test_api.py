"""
Tests for the recorder HTTP API.
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "app"))

from fastapi.testclient import TestClient

from main import app
from scribe.config import ScribeConfig
from scribe.service import RecorderService, reset_recorder_service


@pytest.fixture(name="client")
def client_fixture():
    reset_recorder_service(RecorderService(config=ScribeConfig()))
    yield TestClient(app)
    reset_recorder_service()


def start(client, tab_id=1, url="https://app.example.com/login"):
    response = client.post("/api/recorder/sessions", json={"tab_id": tab_id, "url": url})
    assert response.status_code == 200
    return response.json()["session_id"]


class TestSessionEndpoints:
    """Test the session lifecycle endpoints."""

    def test_full_lifecycle(self, client, login_actions):
        """Test start, capture, pause, resume, stop and history."""
        session_id = start(client)

        response = client.post("/api/recorder/sessions/actions", json={"actions": login_actions, "tab_id": 1})
        assert response.json() == {"success": True, "appended": 4}

        assert client.post("/api/recorder/sessions/pause").json()["session"]["status"] == "paused"
        assert client.get("/api/recorder/sessions/current").json()["is_paused"] is True
        assert client.post("/api/recorder/sessions/resume").json()["session"]["status"] == "recording"

        stopped = client.post("/api/recorder/sessions/stop").json()
        assert stopped["session"]["id"] == session_id

        history = client.get("/api/recorder/sessions/history").json()["history"]
        assert [s["id"] for s in history] == [session_id]

    def test_start_without_tab(self, client):
        """Test that a missing tab is a 404."""
        response = client.post("/api/recorder/sessions", json={})

        assert response.status_code == 404
        assert response.json()["detail"] == "No tab ID provided"

    def test_second_start_conflicts(self, client):
        """Test that a second active session is a 409."""
        start(client)

        response = client.post("/api/recorder/sessions", json={"tab_id": 2})

        assert response.status_code == 409

    def test_stop_without_session(self, client):
        """Test that stopping nothing is a 404."""
        assert client.post("/api/recorder/sessions/stop").status_code == 404

    def test_current_without_session(self, client):
        """Test the current session when idle."""
        data = client.get("/api/recorder/sessions/current").json()

        assert data["session"] is None
        assert data["is_recording"] is False

    def test_export_csv(self, client, login_actions):
        """Test downloading a session as CSV."""
        session_id = start(client)
        client.post("/api/recorder/sessions/actions", json={"actions": login_actions})
        client.post("/api/recorder/sessions/stop")

        response = client.get(f"/api/recorder/sessions/{session_id}/export", params={"format": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert f"filename={session_id}.csv" in response.headers["content-disposition"]
        assert response.text.startswith('"Step","Type"')

    def test_export_unknown_format(self, client):
        """Test that an unknown export format is a 400."""
        session_id = start(client)
        client.post("/api/recorder/sessions/stop")

        response = client.get(f"/api/recorder/sessions/{session_id}/export", params={"format": "xml"})

        assert response.status_code == 400

    def test_export_unknown_session(self, client):
        """Test that an unknown session is a 404."""
        assert client.get("/api/recorder/sessions/missing/export").status_code == 404


class TestTabEndpoints:
    """Test tab lifecycle endpoints."""

    def test_tab_updated_and_removed(self, client):
        """Test that navigation is captured and closing the tab stops recording."""
        start(client, tab_id=3, url="https://app.example.com/")

        client.post("/api/recorder/tabs/3/updated", json={"url": "https://app.example.com/next"})
        current = client.get("/api/recorder/sessions/current").json()
        assert current["action_count"] == 1

        response = client.post("/api/recorder/tabs/3/removed")
        assert response.json() == {"success": True, "stopped": True}


class TestGenerateEndpoint:
    """Test script generation over HTTP."""

    def test_generate_from_actions(self, client, login_actions):
        """Test generation from posted actions."""
        response = client.post(
            "/api/recorder/generate",
            json={"framework": "selenium", "actions": login_actions},
        )

        assert response.status_code == 200
        assert 'driver.get("https://app.example.com/login")' in response.json()["script"]

    def test_generate_from_latest_session(self, client, login_actions):
        """Test generation from the last recorded session."""
        start(client)
        client.post("/api/recorder/sessions/actions", json={"actions": login_actions})
        client.post("/api/recorder/sessions/stop")

        response = client.post("/api/recorder/generate", json={"framework": "puppeteer"})

        assert response.status_code == 200
        assert "page.goto('https://app.example.com/login'" in response.json()["script"]

    def test_unsupported_framework(self, client, login_actions):
        """Test that an unknown framework is a 400."""
        response = client.post("/api/recorder/generate", json={"framework": "watir", "actions": login_actions})

        assert response.status_code == 400
        assert response.json()["detail"] == "Unsupported framework: watir"

    def test_nothing_recorded(self, client):
        """Test generating with no actions and no sessions."""
        assert client.post("/api/recorder/generate", json={}).status_code == 404


class TestNetworkEndpoints:
    """Test network capture endpoints."""

    def test_ingest_and_export(self, client):
        """Test that ingested traffic is summarized and exported."""
        start(client)
        client.post("/api/recorder/network/events", json={
            "event": "onBeforeRequest", "requestId": "r1", "url": "https://app.example.com/api/items",
            "method": "GET", "type": "xmlhttprequest", "timeStamp": 1000,
        })
        client.post("/api/recorder/network/events", json={
            "event": "onCompleted", "requestId": "r1", "statusCode": 200, "timeStamp": 1100,
        })

        summary = client.get("/api/recorder/network/summary").json()
        assert summary["total_requests"] == 1

        har = client.get("/api/recorder/network/export", params={"format": "har"}).json()
        assert len(har["log"]["entries"]) == 1

    def test_bad_event(self, client):
        """Test that an unknown event kind is a 400."""
        response = client.post("/api/recorder/network/events", json={"event": "onTeleport", "requestId": "r1"})

        assert response.status_code == 400


class TestMiscEndpoints:
    """Test the message endpoint and app-level routes."""

    def test_message(self, client):
        """Test dispatching an extension message."""
        response = client.post("/api/recorder/messages", json={"type": "CHECK_RECORDING_STATE"})

        assert response.json()["success"] is True
        assert response.json()["is_recording"] is False

    def test_frameworks(self, client):
        """Test the framework listing."""
        frameworks = client.get("/api/frameworks").json()["frameworks"]

        assert set(frameworks) == {"playwright", "selenium", "cypress", "puppeteer"}

    def test_health(self, client):
        """Test the health check."""
        assert client.get("/api/health").json()["status"] == "healthy"
