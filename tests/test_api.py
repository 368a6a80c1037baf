"""Tests for API endpoints."""

import pytest
from fastapi.testclient import TestClient

from hapticsync.api.app import init_app
from hapticsync.core.config import SystemConfig
from hapticsync.core.control import SessionController
from hapticsync.devices.mock import MockDevice, MockDeviceClient, MockLauncher
from hapticsync.sync.engine import SyncEngine


@pytest.fixture
def api_config(media_dir, funscript_dir):
    """Configuration with asset directories and a slow heartbeat"""
    return SystemConfig.from_dict(
        {
            "assets": {"media_dir": str(media_dir), "funscript_dir": str(funscript_dir)},
            "network": {"heartbeat_interval_ms": 60000},
        }
    )


@pytest.fixture
def app(api_config, scheduler_factory):
    """Application whose controller runs against a mock client"""

    def controller_factory(config):
        controller = SessionController(
            config, MockDeviceClient([MockDevice(0, "Lovense Lush")]), MockLauncher()
        )
        controller.engine = SyncEngine(
            controller.session,
            foreground_factory=scheduler_factory,
            background_factory=scheduler_factory,
        )
        return controller

    return init_app(api_config, controller_factory)


@pytest.fixture
def client(app):
    """Test client with startup and shutdown events run"""
    with TestClient(app) as client:
        yield client


def receive(websocket, message_type):
    """Next message of ``message_type``, skipping heartbeats and broadcasts"""
    for _ in range(10):
        message = websocket.receive_json()
        if message["type"] == message_type:
            return message
    raise AssertionError(f"No {message_type} message received")


class TestStartup:
    def test_unavailable_before_startup(self, app):
        client = TestClient(app)
        response = client.get("/api/status")
        assert response.status_code == 503

    def test_health_before_startup(self, app):
        client = TestClient(app)
        assert client.get("/health").json()["status"] == "starting"

    def test_health(self, client):
        data = client.get("/health").json()
        assert data == {
            "status": "healthy",
            "controller": True,
            "connected": True,
            "media_active": False,
        }


class TestMessageEndpoints:
    """Chat text endpoints"""

    def test_message(self, client):
        response = client.post("/api/messages", json={"text": "<lush:VIBRATE:50>"})
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["commands"][0]["intensity"] == 50

    def test_parse(self, client):
        response = client.post("/api/parse", json={"text": "<lush:STOP> hi"})
        assert [c["type"] for c in response.json()["commands"]] == ["stop"]

    def test_stream(self, client):
        assert client.post("/api/stream/start").status_code == 200
        response = client.post("/api/stream/token", json={"token": "<lush:VIBRATE:40>"})
        assert len(response.json()["commands"]) == 1
        assert client.post("/api/stream/end").status_code == 200

    def test_missing_text(self, client):
        assert client.post("/api/messages", json={}).status_code == 422


class TestDeviceEndpoints:
    def test_list_devices(self, client):
        devices = client.get("/api/devices").json()
        assert len(devices) == 1
        assert devices[0]["name"] == "Lovense Lush"
        assert devices[0]["channel"] == "-"

    def test_set_channel(self, client):
        response = client.put("/api/devices/0/channel", json={"channel": "b"})
        assert response.status_code == 200
        assert client.get("/api/devices").json()[0]["channel"] == "B"

    def test_invalid_channel(self, client):
        response = client.put("/api/devices/0/channel", json={"channel": "Z"})
        assert response.status_code == 422

    def test_unknown_device(self, client):
        response = client.put("/api/devices/9/channel", json={"channel": "A"})
        assert response.status_code == 404

    def test_invert(self, client):
        response = client.put("/api/devices/0/inverted", json={"inverted": True})
        assert response.status_code == 200
        assert client.get("/api/devices").json()[0]["inverted"] is True

    def test_stop(self, client):
        response = client.post("/api/devices/stop")
        assert response.json()["message"] == "Stopped 1 devices"


class TestModeEndpoints:
    def test_list_modes(self, client):
        modes = {m["mode_id"]: m for m in client.get("/api/modes").json()}
        assert modes["basic"]["enabled"] is True
        assert "sine" in modes["basic"]["patterns"]

    def test_enable_mode(self, client):
        response = client.put("/api/modes/hypno", json={"enabled": True})
        assert response.status_code == 200
        modes = {m["mode_id"]: m for m in client.get("/api/modes").json()}
        assert modes["hypno"]["enabled"] is True

    def test_basic_cannot_be_disabled(self, client):
        response = client.put("/api/modes/basic", json={"enabled": False})
        assert response.status_code == 422

    def test_unknown_mode(self, client):
        response = client.put("/api/modes/nope", json={"enabled": True})
        assert response.status_code == 404

    def test_multiplier_range(self, client):
        response = client.put("/api/modes/hypno", json={"intensity_multiplier": 5})
        assert response.status_code == 422

    def test_preview(self, client):
        response = client.get("/api/patterns/ramp_up/preview", params={"steps": 4})
        assert response.json()["values"] == [0, 25, 50, 75]

    def test_preview_invalid_steps(self, client):
        response = client.get("/api/patterns/sine/preview", params={"steps": 0})
        assert response.status_code == 422


class TestMediaEndpoints:
    """Media listing, loading and player events"""

    def test_list_media(self, client):
        assert client.get("/api/media").json() == [
            {"filename": "clip.mp4", "has_funscript": True},
            {"filename": "other.webm", "has_funscript": False},
        ]

    def test_load_and_play(self, client):
        loaded = client.post("/api/media/load", json={"filename": "clip.mp4"}).json()
        assert loaded["media"] == "clip.mp4"
        assert loaded["state"] == "paused"

        playing = client.post("/api/media/event", json={"type": "play"}).json()
        assert playing["state"] == "playing"
        assert client.get("/health").json()["media_active"] is True

    def test_empty_filename(self, client):
        response = client.post("/api/media/load", json={"filename": "  "})
        assert response.status_code == 422

    def test_seek_requires_position(self, client):
        response = client.post("/api/media/event", json={"type": "seek"})
        assert response.status_code == 422

    def test_unknown_event_type(self, client):
        response = client.post("/api/media/event", json={"type": "rewind"})
        assert response.status_code == 422

    def test_media_status(self, client):
        assert client.get("/api/media/status").json()["state"] == "idle"

    def test_timeline(self, client):
        response = client.post(
            "/api/timeline/play",
            json={"blocks": [{"pattern": "square", "channel": "A", "duration": 1000}]},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["media"] == "timeline"
        assert data["state"] == "playing"
        assert list(data["channels"]) == ["A"]

    def test_empty_timeline(self, client):
        response = client.post("/api/timeline/play", json={"blocks": []})
        assert response.status_code == 422

    def test_timeline_invalid_channel(self, client):
        response = client.post(
            "/api/timeline/play", json={"blocks": [{"pattern": "sine", "channel": "Z"}]}
        )
        assert response.status_code == 422


class TestSettingsEndpoints:
    def test_update_settings(self, client):
        response = client.put("/api/settings", json={"global_intensity": 50})
        assert response.status_code == 200
        assert response.json()["global_intensity"] == 50
        status = client.get("/api/status").json()
        assert status["settings"]["global_intensity"] == 50

    def test_invalid_settings(self, client):
        response = client.put("/api/settings", json={"polling_interval_ms": 5})
        assert response.status_code == 422

    def test_status(self, client):
        status = client.get("/api/status").json()
        assert status["running"] is True
        assert status["queue_length"] == 0


class TestWebSocket:
    """Media front-end link"""

    def test_initial_status_and_ping(self, client):
        with client.websocket_connect("/ws") as websocket:
            status = receive(websocket, "status")
            assert status["data"]["running"] is True

            websocket.send_json({"type": "ping"})
            assert receive(websocket, "pong")["type"] == "pong"

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws") as websocket:
            receive(websocket, "status")
            websocket.send_text("not json")
            assert receive(websocket, "error")["message"] == "Invalid JSON"

    def test_load_event(self, client):
        with client.websocket_connect("/ws") as websocket:
            receive(websocket, "status")
            websocket.send_json({"type": "load", "media_name": "clip.mp4"})
            state = receive(websocket, "media_state")
            assert state["data"]["media"] == "clip.mp4"

    def test_invalid_event(self, client):
        with client.websocket_connect("/ws") as websocket:
            receive(websocket, "status")
            websocket.send_json({"type": "seek"})
            assert receive(websocket, "error")["type"] == "error"

    def test_unknown_message_type(self, client):
        with client.websocket_connect("/ws") as websocket:
            receive(websocket, "status")
            websocket.send_json({"type": "dance"})
            error = receive(websocket, "error")
            assert error["message"] == "Unknown message type: dance"
