"""Tests for the funscript sync engine and action routing."""

import pytest

from hapticsync.common.exceptions import ValidationError
from hapticsync.sync.actuation import ActionRouter, devices_for_channel, rescale
from hapticsync.sync.engine import MediaClock, PlayState, SyncEngine
from hapticsync.sync.events import (
    ClockEvent,
    EndedEvent,
    LoadEvent,
    PauseEvent,
    PlayEvent,
    SeekEvent,
    StopEvent,
    TickEvent,
    VisibilityEvent,
    event_from_dict,
)
from hapticsync.sync.funscript import Funscript, FunscriptAction, FunscriptLoader


def script(*points, inverted=False):
    return Funscript(
        actions=[FunscriptAction(at=at, pos=pos) for at, pos in points],
        inverted=inverted,
    )


CLIP = ((0, 0), (500, 100), (1000, 0), (1500, 100))


@pytest.fixture
def engine(session, fake_clock, scheduler_factory, funscript_dir):
    """Engine on a fake media clock with stub loops"""
    return SyncEngine(
        session,
        loader=FunscriptLoader(funscript_dir),
        clock=MediaClock(now=fake_clock),
        foreground_factory=scheduler_factory,
        background_factory=scheduler_factory,
    )


async def load(engine, *points, virtual=False):
    await engine.dispatch(
        LoadEvent(media_name="clip.mp4", funscripts={"-": script(*points)}, virtual=virtual)
    )


async def step(engine, fake_clock, ms):
    fake_clock.advance(ms)
    return await engine.evaluate()


class TestEvaluation:
    """Cursor advancement over the media clock"""

    async def test_each_action_executes_once(self, engine, fake_clock, device):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())

        assert await engine.evaluate() == 1
        for _ in range(3):
            assert await step(engine, fake_clock, 500) == 1
        assert await step(engine, fake_clock, 500) == 0

        assert device.calls == [
            ("scalar", 0, 0.0),
            ("scalar", 0, 1.0),
            ("scalar", 0, 0.0),
            ("scalar", 0, 1.0),
        ]
        assert engine.executed_count == 4

    async def test_clock_in_small_steps_executes_each_action_once(self, engine, fake_clock, device):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.evaluate()
        for _ in range(20):
            await step(engine, fake_clock, 100)

        assert engine.current_time() == pytest.approx(2000)
        assert engine.executed_count == 4
        assert [c[2] for c in device.calls] == [0.0, 1.0, 0.0, 1.0]

    async def test_seek_backward_replays_action_in_effect(self, engine, fake_clock, device):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.evaluate()
        await step(engine, fake_clock, 500)
        await step(engine, fake_clock, 500)
        await step(engine, fake_clock, 200)
        assert engine.executed_count == 3

        await engine.dispatch(SeekEvent(position_ms=300))
        assert engine.executed_count == 4
        assert device.calls[-1] == ("scalar", 0, 0.0)
        assert engine.cursors["-"].index == 1

    async def test_seek_while_paused_does_not_actuate(self, engine, device):
        await load(engine, *CLIP)
        await engine.dispatch(SeekEvent(position_ms=1200))
        await engine.dispatch(SeekEvent(position_ms=300))
        assert device.calls == []
        assert engine.cursors["-"].index == 1

    async def test_forward_jump_skips_actions(self, engine, fake_clock, device):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.evaluate()

        assert await step(engine, fake_clock, 5000) == 0
        assert engine.cursors["-"].index == 4
        assert engine.executed_count == 1

    async def test_backward_jump_replays_previous_action(self, engine, fake_clock, device):
        await load(engine, (0, 10), (1000, 20), (2000, 30), (3000, 40), (4000, 50))
        await engine.dispatch(PlayEvent())
        await engine.evaluate()
        for _ in range(4):
            await step(engine, fake_clock, 1000)
        assert engine.executed_count == 5

        await engine.dispatch(ClockEvent(position_ms=500))
        assert await engine.evaluate() == 1
        assert device.calls[-1] == ("scalar", 0, 0.1)
        assert engine.cursors["-"].index == 1

    async def test_play_position_reissues_current_action(self, engine, device):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent(position_ms=1000))
        await engine.evaluate()
        assert device.calls == [("scalar", 0, 0.0)]

    async def test_sync_offset_shifts_time(self, session, engine, device):
        session.update_settings(sync_offset_ms=500)
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.evaluate()
        assert device.calls == [("scalar", 0, 1.0)]

    async def test_tick_event_evaluates(self, engine, device):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.dispatch(TickEvent())
        assert engine.executed_count == 1

    async def test_not_playing(self, engine):
        await load(engine, *CLIP)
        assert await engine.evaluate() == 0

    async def test_virtual_item_ends_itself(self, engine, fake_clock):
        await load(engine, (0, 10), (100, 20), virtual=True)
        await engine.dispatch(PlayEvent())
        await engine.evaluate()
        await step(engine, fake_clock, 200)
        assert engine.play_state == PlayState.ENDED


class TestLifecycle:
    """Load, pause, stop, end and visibility transitions"""

    async def test_load_from_directory(self, engine):
        await engine.dispatch(LoadEvent(media_name="clip.mp4"))
        assert set(engine.funscripts) == {"-", "B"}
        assert engine.primary == "-"
        assert engine.play_state == PlayState.PAUSED
        assert engine.duration == 1500

    async def test_new_item_discards_cached_funscripts(self, engine, funscript_dir):
        (funscript_dir / "other.funscript").write_text('{"actions": [{"at": 0, "pos": 50}]}')
        await engine.dispatch(LoadEvent(media_name="clip.mp4"))
        assert len(engine.loader._cache) == 2

        await engine.dispatch(LoadEvent(media_name="other.mp4"))
        assert list(engine.loader._cache) == [str(funscript_dir / "other.funscript")]

    async def test_reload_keeps_cache(self, engine):
        await engine.dispatch(LoadEvent(media_name="clip.mp4"))
        cached = dict(engine.loader._cache)
        await engine.dispatch(LoadEvent(media_name="clip.mp4"))
        assert engine.loader._cache == cached

    async def test_load_without_funscript(self, engine):
        await engine.dispatch(LoadEvent(media_name="other.webm"))
        assert not engine.loaded
        assert engine.play_state == PlayState.IDLE

    async def test_play_without_load_is_ignored(self, session, engine, scheduler_factory):
        await engine.dispatch(PlayEvent())
        assert scheduler_factory.created == []
        assert not session.media_active

    async def test_play_starts_foreground_loop(self, session, engine, scheduler_factory):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        assert session.media_active
        assert engine.loop_running == "foreground"
        assert scheduler_factory.created[0].interval == session.settings.polling_interval_ms

    async def test_pause_stops_devices(self, session, engine, scheduler_factory):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.dispatch(PauseEvent())
        assert session.client.stop_all_calls == 1
        assert engine.play_state == PlayState.PAUSED
        assert not session.media_active
        assert engine.loop_running is None

    async def test_pause_while_hidden_is_ignored(self, session, engine):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.dispatch(VisibilityEvent(hidden=True))
        await engine.dispatch(PauseEvent())
        assert session.client.stop_all_calls == 0
        assert engine.playing
        assert engine.loop_running == "background"

    async def test_visibility_switches_loops(self, engine, scheduler_factory):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.dispatch(VisibilityEvent(hidden=True))
        foreground, background = scheduler_factory.created
        assert not foreground.running
        assert background.running

        await engine.dispatch(VisibilityEvent(hidden=False))
        assert foreground.running
        assert not background.running
        assert len(scheduler_factory.created) == 2

    async def test_ended_stops(self, session, engine):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.dispatch(EndedEvent())
        assert engine.play_state == PlayState.ENDED
        assert session.client.stop_all_calls == 1
        assert not session.media_active

    async def test_ended_loops(self, session, engine, fake_clock):
        session.update_settings(loop_on_end=True)
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await engine.evaluate()
        await step(engine, fake_clock, 500)

        await engine.dispatch(EndedEvent())
        assert engine.playing
        assert engine.cursors["-"].index == 0
        assert engine.clock.position() == 0
        assert session.client.stop_all_calls == 0

    async def test_stop_rewinds(self, session, engine, fake_clock):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        await step(engine, fake_clock, 600)
        await engine.dispatch(StopEvent())
        assert engine.cursors["-"].index == 0
        assert engine.clock.position() == 0
        assert engine.play_state == PlayState.PAUSED
        assert session.client.stop_all_calls == 1

    async def test_apply_settings_updates_interval(self, session, engine, scheduler_factory):
        await load(engine, *CLIP)
        await engine.dispatch(PlayEvent())
        session.update_settings(polling_interval_ms=100)
        engine.apply_settings()
        assert scheduler_factory.created[0].interval == 100

    async def test_describe(self, engine):
        await load(engine, *CLIP)
        status = engine.describe()
        assert status["media"] == "clip.mp4"
        assert status["state"] == "paused"
        assert status["channels"]["-"]["cursor"] == 0


class TestMediaClock:
    def test_extrapolates_while_running(self, fake_clock):
        clock = MediaClock(now=fake_clock)
        clock.set(100)
        fake_clock.advance(50)
        assert clock.position() == 100

        clock.resume()
        fake_clock.advance(50)
        assert clock.position() == 150

        clock.pause()
        fake_clock.advance(50)
        assert clock.position() == 150


class TestActuation:
    """Scaling, inversion and routing of single actions"""

    @pytest.mark.parametrize(
        "raw,intensity,expected",
        [(100, 50, 75), (0, 200, 0), (50, 400, 50), (100, 100, 100), (30, 0, 50)],
    )
    def test_rescale(self, raw, intensity, expected):
        assert rescale(raw, intensity) == expected

    async def test_funscript_inversion(self, session, device):
        router = ActionRouter(session)
        action = FunscriptAction(at=0, pos=20)
        await router.execute(action, script(inverted=True), [device])
        assert device.calls == [("scalar", 0, 0.8)]

    async def test_inversions_cancel(self, session, device):
        session.devices.set_inverted(device.index, True)
        router = ActionRouter(session)
        await router.execute(FunscriptAction(at=0, pos=20), script(inverted=True), [device])
        assert device.calls == [("scalar", 0, 0.2)]

    async def test_linear_device(self, session, stroker):
        session.client.add_device(stroker)
        router = ActionRouter(session)
        await router.execute(FunscriptAction(at=0, pos=30), script(), [stroker])
        assert stroker.calls == [("linear", 0.3, 100)]

    async def test_per_motor_positions(self, session, dual_device):
        router = ActionRouter(session)
        await router.execute(FunscriptAction(at=0, pos=[20, 80]), script(), [dual_device])
        assert dual_device.calls == [("scalar", 0, 0.2), ("scalar", 1, 0.8)]

    async def test_scalar_position_drives_every_motor(self, session, dual_device):
        router = ActionRouter(session)
        await router.execute(FunscriptAction(at=0, pos=40), script(), [dual_device])
        assert dual_device.calls == [("scalar", 0, 0.4), ("scalar", 1, 0.4)]

    async def test_failure_isolated(self, session, device, dual_device):
        device.failing.add("scalar")
        router = ActionRouter(session)
        failures = await router.execute(
            FunscriptAction(at=0, pos=60), script(), [device, dual_device]
        )
        assert failures == 1
        assert dual_device.calls == [("scalar", 0, 0.6), ("scalar", 1, 0.6)]

    async def test_disconnected(self, session, device):
        await session.client.disconnect()
        router = ActionRouter(session)
        assert await router.execute(FunscriptAction(at=0, pos=60), script(), [device]) == 0
        assert device.calls == []

    def test_channel_routing(self, session, device, dual_device, stroker):
        session.client.add_device(dual_device)
        session.client.add_device(stroker)
        session.devices.set_channel(dual_device.index, "B")
        session.devices.set_channel(stroker.index, "C")
        loaded = ["-", "B"]

        assert devices_for_channel(session, "-", "-", loaded) == [device]
        assert devices_for_channel(session, "B", "-", loaded) == [dual_device]
        assert devices_for_channel(session, "C", "-", loaded) == []

    def test_unassigned_devices_follow_primary(self, session, device):
        assert devices_for_channel(session, "A", "A", ["A", "B"]) == [device]
        assert devices_for_channel(session, "B", "A", ["A", "B"]) == []


class TestEventParsing:
    def test_seek(self):
        assert event_from_dict({"type": "seek", "position": 1200}) == SeekEvent(1200.0)

    def test_play_without_position(self):
        assert event_from_dict({"type": "PLAY"}) == PlayEvent()

    def test_visibility(self):
        assert event_from_dict({"type": "visibility", "hidden": True}) == VisibilityEvent(True)

    def test_load(self):
        event = event_from_dict({"type": "load", "filename": "clip.mp4"})
        assert event.media_name == "clip.mp4"

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "rewind"},
            {"type": "seek"},
            {"type": "seek", "position": "soon"},
            {"type": "load"},
        ],
    )
    def test_invalid_events(self, data):
        with pytest.raises(ValidationError):
            event_from_dict(data)
