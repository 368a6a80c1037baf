import asyncio
import json

import pytest
import yaml

from hapticsync.core.config import SystemConfig
from hapticsync.core.session import SessionContext
from hapticsync.devices.base import Capability
from hapticsync.devices.mock import MockDevice, MockDeviceClient, MockLauncher


class FakeClock:
    """Millisecond clock advanced by hand"""

    def __init__(self, start: float = 0.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class StubScheduler:
    """Loop stand-in; tests call ``evaluate`` themselves"""

    def __init__(self, callback, interval_ms):
        self.callback = callback
        self.interval = interval_ms
        self.running = False
        self.starts = 0

    def start(self):
        self.running = True
        self.starts += 1

    def stop(self):
        self.running = False

    def set_interval(self, interval_ms):
        self.interval = interval_ms


class SchedulerFactory:
    def __init__(self):
        self.created = []

    def __call__(self, callback, interval_ms):
        scheduler = StubScheduler(callback, interval_ms)
        self.created.append(scheduler)
        return scheduler


@pytest.fixture
def fake_clock():
    """Manually advanced clock"""
    return FakeClock()


@pytest.fixture
def scheduler_factory():
    """Factory recording the stub schedulers it creates"""
    return SchedulerFactory()


@pytest.fixture
def instant_sleep():
    """Sleep replacement that records requested delays and only yields"""
    delays = []

    async def sleep(seconds):
        delays.append(seconds)
        await asyncio.sleep(0)

    sleep.delays = delays
    return sleep


@pytest.fixture
def system_config():
    """Default system configuration"""
    return SystemConfig.create_default()


@pytest.fixture
def device():
    """Single-motor vibrator"""
    return MockDevice(0, "Lovense Lush")


@pytest.fixture
def dual_device():
    """Two-motor vibrator"""
    return MockDevice(1, "Lovense Edge", motors=2)


@pytest.fixture
def stroker():
    """Position-controlled device"""
    return MockDevice(2, "Kiiroo Launch", capabilities={Capability.LINEAR})


@pytest.fixture
def client(device):
    """Connected mock client holding one device"""
    return MockDeviceClient([device])


@pytest.fixture
def launcher():
    return MockLauncher()


@pytest.fixture
def session(client, system_config, launcher):
    """Session context over the mock client"""
    return SessionContext(client, system_config, launcher=launcher)


@pytest.fixture
def funscript_dir(tmp_path):
    """Directory with a two-channel funscript for clip.mp4"""
    directory = tmp_path / "funscripts"
    directory.mkdir()
    primary = {
        "version": "1.0",
        "inverted": False,
        "range": 100,
        "actions": [
            {"at": 0, "pos": 0},
            {"at": 500, "pos": 100},
            {"at": 1000, "pos": 0},
            {"at": 1500, "pos": 100},
        ],
    }
    channel_b = {"actions": [{"at": 250, "pos": 40}, {"at": 750, "pos": 60}]}
    (directory / "clip.funscript").write_text(json.dumps(primary))
    (directory / "clip_B.funscript").write_text(json.dumps(channel_b))
    return directory


@pytest.fixture
def media_dir(tmp_path):
    """Directory with two media files and an unrelated file"""
    directory = tmp_path / "media"
    directory.mkdir()
    (directory / "clip.mp4").write_bytes(b"")
    (directory / "other.webm").write_bytes(b"")
    (directory / "notes.txt").write_text("not media")
    return directory


@pytest.fixture
def config_file(tmp_path):
    """Create a temporary config file for testing"""
    config_path = tmp_path / "hapticsync.yaml"
    data = {
        "sync": {"polling_interval_ms": 100, "loop_on_end": True},
        "network": {"port": 9000},
    }
    with open(config_path, "w") as f:
        yaml.dump(data, f)
    return config_path
