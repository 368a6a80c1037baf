"""Tests for command dispatch and device server control."""

import asyncio

import pytest

from hapticsync.commands.models import (
    Linear,
    MediaAction,
    MediaCommand,
    Oscillate,
    SequenceRun,
    Stop,
    SystemAction,
    SystemCommand,
    Vibrate,
    VibratePattern,
)
from hapticsync.core.config import SystemConfig
from hapticsync.core.dispatcher import CommandDispatcher
from hapticsync.core.playback import PatternPlayer
from hapticsync.core.session import SessionContext
from hapticsync.devices.mock import MockDeviceClient, MockLauncher


@pytest.fixture
def dispatcher(session, instant_sleep):
    """Dispatcher whose patterns never really sleep"""
    return CommandDispatcher(session, PatternPlayer(session, sleep=instant_sleep))


class TestDeviceCommands:
    """Direct device operations"""

    async def test_vibrate(self, dispatcher, device):
        await dispatcher.execute(Vibrate(intensity=50))
        assert device.calls == [("vibrate", 0.5)]

    async def test_vibrate_falls_back_to_scalar(self, dispatcher, device):
        device.failing.add("vibrate")
        await dispatcher.execute(Vibrate(intensity=40))
        assert device.calls == [("scalar", 0, 0.4)]

    async def test_missing_motor_skipped(self, dispatcher, device):
        await dispatcher.execute(Vibrate(intensity=40, motor_index=3))
        assert device.calls == []

    async def test_oscillate_needs_capability(self, dispatcher, device):
        await dispatcher.execute(Oscillate(intensity=40))
        assert device.calls == []

    async def test_linear(self, session, dispatcher, stroker):
        session.client.add_device(stroker)
        await dispatcher.execute(Linear(start_pos=10, end_pos=90, duration=500, device_index=1))
        assert stroker.calls == [("linear", 0.9, 500)]

    async def test_linear_needs_capability(self, dispatcher, device):
        await dispatcher.execute(Linear(start_pos=10, end_pos=90, duration=500))
        assert device.calls == []

    async def test_out_of_range_position_uses_first_device(self, dispatcher, device):
        await dispatcher.execute(Vibrate(intensity=20, device_index=7))
        assert device.calls == [("vibrate", 0.2)]

    async def test_stop_silences_every_device(self, session, dispatcher, device, dual_device):
        session.client.add_device(dual_device)
        await dispatcher.execute(Stop())
        assert device.calls == [("vibrate", 0)]
        assert dual_device.calls == [("vibrate", 0)]

    async def test_pattern_command_starts_player(self, dispatcher, device):
        await dispatcher.execute(VibratePattern(pattern=(10, 20), intervals=(100,), loop=1))
        handle = dispatcher.player.active(0)
        if handle is not None:
            await handle.wait()
        assert device.ops("vibrate") == [("vibrate", 0.1), ("vibrate", 0.2)]

    async def test_unknown_sequence_is_ignored(self, dispatcher, device):
        await dispatcher.execute(SequenceRun(name="denial_cycle"))
        assert device.calls == []
        assert dispatcher.player.active_patterns() == {}


class TestQueue:
    """FIFO draining rules"""

    async def test_drain_in_order(self, dispatcher, device):
        dispatcher.enqueue([Vibrate(intensity=10), Vibrate(intensity=20)])
        await dispatcher.drain()
        assert device.calls == [("vibrate", 0.1), ("vibrate", 0.2)]
        assert len(dispatcher.queue) == 0

    async def test_drain_skips_while_media_active(self, session, dispatcher, device):
        session.media_active = True
        dispatcher.enqueue([Vibrate(intensity=10)])
        await dispatcher.drain()
        assert device.calls == []
        assert len(dispatcher.queue) == 0

    async def test_drain_skips_when_disconnected(self, device, system_config):
        session = SessionContext(MockDeviceClient([device], connected=False), system_config)
        dispatcher = CommandDispatcher(session)
        dispatcher.enqueue([Vibrate(intensity=10)])
        await dispatcher.drain()
        assert device.calls == []

    async def test_drain_skips_immediate_commands(self, dispatcher):
        handled = []

        async def handler(command):
            handled.append(command)

        dispatcher.media_handler = handler
        dispatcher.enqueue([MediaCommand(action=MediaAction.LIST)])
        await dispatcher.drain()
        assert handled == []

    async def test_clear_queue(self, dispatcher):
        dispatcher.enqueue([Vibrate(intensity=10)])
        dispatcher.clear_queue()
        assert len(dispatcher.queue) == 0


class TestMediaCommands:
    async def test_routed_to_handler(self, dispatcher):
        handled = []

        async def handler(command):
            handled.append(command.action)

        dispatcher.media_handler = handler
        await dispatcher.execute(MediaCommand(action=MediaAction.STOP))
        assert handled == [MediaAction.STOP]

    async def test_handler_errors_are_contained(self, dispatcher):
        async def handler(command):
            raise RuntimeError("player gone")

        dispatcher.media_handler = handler
        await dispatcher.execute(MediaCommand(action=MediaAction.LIST))


class TestSystemCommands:
    """Device server launch and connection"""

    @pytest.fixture
    def offline(self, device):
        config = SystemConfig.from_dict(
            {"dispatch": {"auto_connect_delay_ms": 0, "system_cooldown_ms": 0}}
        )
        client = MockDeviceClient([device], connected=False)
        launcher = MockLauncher()
        session = SessionContext(client, config, launcher=launcher)
        return CommandDispatcher(session)

    async def test_start_then_auto_connect(self, offline):
        await offline.execute(SystemCommand(action=SystemAction.START))
        assert offline.session.launcher.start_calls == 1
        await asyncio.sleep(0.05)
        assert offline.session.client.connect_calls == 1
        assert offline.session.connected
        assert not offline.is_starting_server

    async def test_duplicate_start_suppressed(self, session, dispatcher, launcher):
        await dispatcher.execute(SystemCommand(action=SystemAction.START))
        await dispatcher.execute(SystemCommand(action=SystemAction.START))
        assert launcher.start_calls == 1
        assert dispatcher.is_starting_server
        session.timers.clear_all()

    async def test_failed_launch_does_not_connect(self, offline):
        offline.session.launcher.success = False
        await offline.execute(SystemCommand(action=SystemAction.START))
        await asyncio.sleep(0.05)
        assert offline.session.client.connect_calls == 0

    async def test_start_without_launcher(self, device, system_config):
        session = SessionContext(MockDeviceClient([device]), system_config)
        dispatcher = CommandDispatcher(session)
        await dispatcher.execute(SystemCommand(action=SystemAction.START))
        assert session.timers.pending == 0

    async def test_connect_when_connected_is_noop(self, session, dispatcher):
        await dispatcher.execute(SystemCommand(action=SystemAction.CONNECT))
        assert session.client.connect_calls == 0

    async def test_connect(self, offline):
        await offline.execute(SystemCommand(action=SystemAction.CONNECT))
        assert offline.session.client.connect_calls == 1

    async def test_disconnect_clears_queue(self, session, dispatcher):
        dispatcher.enqueue([Vibrate(intensity=10)])
        await dispatcher.execute(SystemCommand(action=SystemAction.DISCONNECT))
        assert session.client.disconnect_calls == 1
        assert len(dispatcher.queue) == 0
        assert not session.connected
