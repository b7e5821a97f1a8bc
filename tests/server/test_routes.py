"""Tests for the DeskPilot HTTP and WebSocket surface"""

import json

import pytest
from fastapi.testclient import TestClient

from deskpilot.app import DeskPilot
from deskpilot.server import app as server_app
from deskpilot.server.app import api, set_app, token_matches

SECRET = "test-secret"
AUTH = {"Authorization": f"Bearer {SECRET}"}


def action_block(tool, **args):
    return f"```action\n{json.dumps({'tool': tool, 'args': args})}\n```"


def schedule_block(when, tool, **args):
    return f"```schedule\n{json.dumps({'when': when, 'tool': tool, 'args': args, 'description': 'Check'})}\n```"


def _config(max_requests=60):
    return {
        "llm": {"provider": "scripted", "model": "scripted-model"},
        "bridge": {"url": "http://bridge.test", "auth_token": "bridge-token"},
        "api_secret": SECRET,
        "agent_name": "JARVIS",
        "storage": {"memory": True},
        "rate_limit": {"max_requests": max_requests, "window_seconds": 60},
    }


@pytest.fixture
def make_client(llm, bridge):
    clients = []

    def factory(**config_kwargs):
        set_app(DeskPilot(_config(**config_kwargs), llm_client=llm, bridge_client=bridge.client()))
        client = TestClient(api)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)
    set_app(None)


@pytest.fixture
def client(make_client):
    return make_client()


# =========================================================================
# Liveness and configuration
# =========================================================================


class TestStatus:

    def test_root(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "online"
        assert data["agent"] == "JARVIS"
        assert "timestamp" in data

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "awake"
        assert resp.json()["schedules"] == 0

    def test_unconfigured_is_503(self, monkeypatch, tmp_path):
        monkeypatch.setattr(server_app, "_config_path", str(tmp_path / "missing.yaml"))
        set_app(None)
        resp = TestClient(api).get("/")
        assert resp.status_code == 503
        assert resp.json() == {"error": "Not configured"}


# =========================================================================
# Authentication and throttling
# =========================================================================


class TestAuth:

    @pytest.mark.parametrize("headers", [
        {},
        {"Authorization": "Bearer wrong"},
        {"Authorization": SECRET},
        {"Authorization": "Basic dGVzdA=="},
    ])
    def test_rejects_bad_credentials(self, client, headers):
        resp = client.get("/state", headers=headers)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_chat_requires_auth(self, client, llm):
        assert client.post("/chat", json={"message": "hi"}).status_code == 401
        assert llm.calls == []

    def test_token_matches(self):
        assert token_matches("abc", "abc")
        assert not token_matches("abd", "abc")
        assert not token_matches(None, "abc")
        assert not token_matches("", "")


class TestRateLimit:

    def test_guarded_route_throttles(self, make_client):
        client = make_client(max_requests=2)
        assert client.get("/state", headers=AUTH).status_code == 200
        assert client.get("/history", headers=AUTH).status_code == 200

        resp = client.get("/state", headers=AUTH)
        assert resp.status_code == 429
        assert resp.json()["error"] == "Rate limit exceeded"
        retry_after = resp.json()["retryAfter"]
        assert 0 < retry_after <= 60
        assert resp.headers["Retry-After"] == str(retry_after)
        assert resp.headers["X-RateLimit-Reset"] == str(retry_after)

    def test_chat_throttles_without_calling_model(self, make_client, llm):
        client = make_client(max_requests=1)
        assert client.post("/chat", json={"message": "one"}, headers=AUTH).status_code == 200

        resp = client.post("/chat", json={"message": "two"}, headers=AUTH)
        assert resp.status_code == 429
        assert len(llm.calls) == 1

    def test_sessions_have_separate_windows(self, make_client):
        client = make_client(max_requests=1)
        assert client.get("/state?session_id=a", headers=AUTH).status_code == 200
        assert client.get("/state?session_id=b", headers=AUTH).status_code == 200
        assert client.get("/state?session_id=a", headers=AUTH).status_code == 429


# =========================================================================
# Chat and session routes
# =========================================================================


class TestChatRoutes:

    def test_chat(self, client, llm, bridge):
        llm.queue("Checking.\n" + action_block("battery_status"))

        resp = client.post("/chat", json={"message": "battery?"}, headers=AUTH)

        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Checking."
        assert data["action"] == {
            "tool": "battery_status", "args": {}, "result": "Battery: 87%, charging", "success": True,
        }
        assert bridge.executed_tools() == ["battery_status"]

    def test_chat_requires_message(self, client):
        assert client.post("/chat", json={}, headers=AUTH).status_code == 422

    def test_state_and_history(self, client, llm):
        llm.queue("Hello!")
        client.post("/chat", json={"message": "hi"}, headers=AUTH)

        state = client.get("/state", headers=AUTH).json()
        assert state["historyLength"] == 2
        assert state["pendingAction"] is None

        history = client.get("/history", headers=AUTH).json()
        assert history["history"][-1] == {"role": "assistant", "content": "Hello!"}
        assert "lastActive" in history

    def test_clear(self, client, llm):
        client.post("/chat", json={"message": "hi"}, headers=AUTH)
        assert client.post("/clear", headers=AUTH).json() == {"success": True}
        assert client.get("/state", headers=AUTH).json()["historyLength"] == 0

    def test_execute(self, client, llm):
        resp = client.post("/execute", json={"tool": "battery_status", "args": {}}, headers=AUTH)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["result"] == "Battery: 87%, charging"
        assert llm.calls == []

    def test_execute_requires_tool(self, client):
        resp = client.post("/execute", json={"tool": "  "}, headers=AUTH)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Tool name is required"}

    def test_reset(self, client, llm):
        llm.queue(schedule_block("every hour", "battery_status"))
        client.post("/chat", json={"message": "hourly battery"}, headers=AUTH)

        resp = client.post("/reset", headers=AUTH)
        assert resp.json() == {
            "success": True,
            "message": "History cleared, preferences kept",
            "schedulesCancelled": 1,
        }
        assert client.post("/reset", headers=AUTH).json()["schedulesCancelled"] == 0

    def test_bridge_status(self, client, bridge):
        assert client.get("/bridge", headers=AUTH).json()["online"] is True
        bridge.online = False
        assert client.get("/bridge", headers=AUTH).json()["online"] is False


class TestScheduleRoutes:

    def test_list_and_cancel(self, client, llm):
        llm.queue("Ok.\n" + schedule_block("every day at 5pm", "music_play", query="chill"))
        turn = client.post("/chat", json={"message": "music at 5pm daily"}, headers=AUTH).json()
        schedule_id = turn["scheduled"]["id"]

        schedules = client.get("/schedules", headers=AUTH).json()["schedules"]
        assert [s["id"] for s in schedules] == [schedule_id]
        assert schedules[0]["time"] == "0 17 * * *"
        assert schedules[0]["type"] == "recurring"
        assert client.get("/health").json()["schedules"] == 1

        assert client.delete(f"/schedules/{schedule_id}", headers=AUTH).json() == {"success": True}
        assert client.get("/schedules", headers=AUTH).json() == {"schedules": []}
        assert client.get("/health").json()["schedules"] == 0

    def test_cancel_unknown_succeeds(self, client):
        assert client.delete("/schedules/nope", headers=AUTH).json() == {"success": True}


# =========================================================================
# WebSocket
# =========================================================================


class TestRealtime:

    def test_connect_and_ping(self, client):
        with client.websocket_connect("/ws?session_id=default") as ws:
            hello = ws.receive_json()
            assert hello["type"] == "notification"
            assert hello["payload"] == {"title": "Connected", "message": "Real-time updates enabled"}

            ws.send_text("not json")
            ws.send_text(json.dumps({"type": "ping"}))
            pong = ws.receive_json()
            assert pong["type"] == "ping"
            assert pong["payload"] == {"pong": True}

    def test_chat_with_invalid_token(self, client, llm):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text(json.dumps({"type": "chat", "message": "hi", "token": "wrong"}))
            error = ws.receive_json()
            assert error["payload"] == {"title": "Error", "message": "Invalid token"}
        assert llm.calls == []

    def test_chat_over_websocket(self, client, llm):
        llm.queue("Hi there")
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text(json.dumps({"type": "chat", "message": "hello", "token": SECRET}))
            event = ws.receive_json()
            assert event["type"] == "chat"
            assert event["payload"]["message"] == "Hi there"

    def test_notify_reaches_socket(self, client):
        with client.websocket_connect("/ws?session_id=default") as ws:
            ws.receive_json()
            resp = client.post("/notify", json={"title": "Build", "message": "passed"}, headers=AUTH)
            assert resp.json() == {"success": True, "delivered": 1}
            event = ws.receive_json()
            assert event["type"] == "notification"
            assert event["payload"] == {"title": "Build", "message": "passed"}
