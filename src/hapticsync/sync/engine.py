"""Funscript sync engine.

Tracks a media clock and issues every funscript action once it is due. All
player input arrives through ``SyncEngine.dispatch`` as a MediaEvent; the
engine's play and tracking states are the single source of truth for what
happens on the next evaluation step.

Each loaded channel owns a cursor (next unconsumed action) and the time it
was last evaluated at. A step:

1. computes ``t = media clock + sync offset``
2. rescans the cursor when ``|t - last|`` exceeds the seek threshold,
   replaying the action at the new position after a backward jump
3. executes every action with ``at <= t`` from the cursor on
4. resets the cursor when ``t`` is negative
5. stores ``t`` as the last evaluated time

Steps come from a foreground DriftCorrectedScheduler at the polling interval
while the player is visible and from a background WorkerScheduler while it
is hidden. Both drive the same cursors.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..common.channels import CHANNELS
from ..core.scheduler import DriftCorrectedScheduler, Tick, monotonic_ms
from ..core.session import SessionContext
from ..core.timer_worker import WorkerScheduler
from .actuation import ActionRouter, devices_for_channel
from .events import (
    ClockEvent,
    EndedEvent,
    LoadEvent,
    MediaEvent,
    MediaEventType,
    PlayEvent,
    SeekEvent,
    VisibilityEvent,
)
from .funscript import Funscript, FunscriptAction, FunscriptLoader, primary_channel

logger = logging.getLogger(__name__)

SchedulerFactory = Callable[[Callable[[Tick], Any], float], Any]


class PlayState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


class TrackingState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    RESYNCHRONIZING = "resynchronizing"


@dataclass
class ChannelCursor:
    funscript: Funscript
    index: int = 0
    last_time: float = 0.0

    def reset(self) -> None:
        self.index = 0
        self.last_time = 0.0


class MediaClock:
    """Media position extrapolated from the last reported position"""

    def __init__(self, now: Callable[[], float] = monotonic_ms):
        self._now = now
        self._position = 0.0
        self._stamp = now()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def position(self) -> float:
        if self._running:
            return self._position + (self._now() - self._stamp)
        return self._position

    def set(self, position_ms: float) -> None:
        self._position = float(position_ms)
        self._stamp = self._now()

    def resume(self) -> None:
        if not self._running:
            self._stamp = self._now()
            self._running = True

    def pause(self) -> None:
        self._position = self.position()
        self._running = False


class SyncEngine:
    def __init__(
        self,
        session: SessionContext,
        loader: Optional[FunscriptLoader] = None,
        router: Optional[ActionRouter] = None,
        clock: Optional[MediaClock] = None,
        foreground_factory: Optional[SchedulerFactory] = None,
        background_factory: Optional[SchedulerFactory] = None,
    ):
        self.session = session
        self.loader = loader or FunscriptLoader(session.config.assets.funscript_dir)
        self.router = router or ActionRouter(session)
        self.clock = clock or MediaClock()
        self.seek_threshold_ms = session.config.sync.seek_threshold_ms

        self.play_state = PlayState.IDLE
        self.tracking = TrackingState.IDLE
        self.media_name: Optional[str] = None
        self.virtual = False
        self.hidden = False
        self.funscripts: Dict[str, Funscript] = {}
        self.cursors: Dict[str, ChannelCursor] = {}
        self.primary: Optional[str] = None
        self.executed_count = 0
        self.last_heartbeat: Optional[float] = None

        self._foreground_factory = foreground_factory or self._default_foreground
        self._background_factory = background_factory or self._default_background
        self._foreground = None
        self._background = None
        self._evaluating = False

        self._handlers = {
            MediaEventType.LOAD: self._on_load,
            MediaEventType.PLAY: self._on_play,
            MediaEventType.PAUSE: self._on_pause,
            MediaEventType.SEEK: self._on_seek,
            MediaEventType.ENDED: self._on_ended,
            MediaEventType.VISIBILITY: self._on_visibility,
            MediaEventType.CLOCK: self._on_clock,
            MediaEventType.TICK: self._on_tick,
            MediaEventType.STOP: self._on_stop,
        }

    # Scheduler construction

    def _default_foreground(self, callback, interval_ms: float) -> DriftCorrectedScheduler:
        return DriftCorrectedScheduler(callback, interval_ms, name="sync-foreground")

    def _default_background(self, callback, interval_ms: float) -> WorkerScheduler:
        scheduler_config = self.session.config.scheduler
        return WorkerScheduler(
            callback,
            interval_ms,
            on_heartbeat=self._on_heartbeat,
            heartbeat_threshold_ms=scheduler_config.heartbeat_threshold_ms,
            heartbeat_check_ms=scheduler_config.heartbeat_check_ms,
        )

    # State

    @property
    def loaded(self) -> bool:
        return bool(self.cursors)

    @property
    def playing(self) -> bool:
        return self.play_state == PlayState.PLAYING

    @property
    def duration(self) -> float:
        return max((f.duration for f in self.funscripts.values()), default=0)

    def current_time(self) -> float:
        return self.clock.position() + self.session.settings.sync_offset_ms

    async def dispatch(self, event: MediaEvent) -> None:
        """Single entry point for player events"""
        logger.debug(f"Media event: {event}")
        await self._handlers[event.type](event)

    # Event handlers

    async def _on_load(self, event: LoadEvent) -> None:
        self._stop_loops()
        self.cursors = {}
        self.funscripts = {}
        self.primary = None
        self.session.media_active = False
        self.clock.pause()
        self.clock.set(0)

        if event.media_name != self.media_name:
            self.loader.clear_cache()
        self.media_name = event.media_name
        self.virtual = event.virtual
        if event.funscripts is not None:
            funscripts = {ch: f for ch, f in event.funscripts.items() if f.actions}
        elif self.loader.funscript_dir is not None:
            funscripts = self.loader.load_channels(event.media_name, CHANNELS)
        else:
            logger.warning("No funscript directory configured")
            funscripts = {}

        if not funscripts:
            self.play_state = PlayState.IDLE
            self.tracking = TrackingState.IDLE
            logger.warning(f"No funscript found for {event.media_name}")
            return

        self.funscripts = funscripts
        self.cursors = {ch: ChannelCursor(f) for ch, f in funscripts.items()}
        self.primary = primary_channel(funscripts)
        self.play_state = PlayState.PAUSED
        self.tracking = TrackingState.TRACKING
        logger.info(
            f"Loaded {event.media_name}: channels {', '.join(funscripts)} "
            f"(primary {self.primary})"
        )

    async def _on_play(self, event: PlayEvent) -> None:
        if not self.loaded:
            logger.info("Play ignored: no funscript loaded")
            return
        if event.position_ms is not None:
            self.clock.set(event.position_ms)
        self.clock.resume()

        now = self.current_time()
        for cursor in self.cursors.values():
            # re-issue the action in effect at the play position
            cursor.index = max(0, cursor.funscript.index_after(now) - 1)
            cursor.last_time = now

        self.play_state = PlayState.PLAYING
        self.session.media_active = True
        self._start_loop()
        logger.info(f"Playback started at {now:.0f}ms")

    async def _on_pause(self, event: MediaEvent) -> None:
        if self.hidden:
            logger.info("Pause while hidden, background tracking continues")
            return
        self.clock.pause()
        self._stop_loops()
        if self.loaded:
            self.play_state = PlayState.PAUSED
        self.session.media_active = False
        await self._stop_devices()
        logger.info("Playback paused")

    async def _on_seek(self, event: SeekEvent) -> None:
        self.clock.set(event.position_ms)
        now = self.current_time()
        for channel, cursor in self.cursors.items():
            old_index = cursor.index
            cursor.index = cursor.funscript.index_after(now)
            cursor.last_time = now
            if self.playing and 0 < cursor.index < old_index:
                await self._execute(channel, cursor.funscript.actions[cursor.index - 1])
        logger.info(f"Seeked to {event.position_ms:.0f}ms")

    async def _on_ended(self, event: MediaEvent) -> None:
        if not self.loaded:
            return
        if self.session.settings.loop_on_end:
            for cursor in self.cursors.values():
                cursor.reset()
            self.clock.set(0)
            self.clock.resume()
            self.play_state = PlayState.PLAYING
            self.session.media_active = True
            self._start_loop()
            logger.info("Media ended, looping")
            return

        self.clock.pause()
        self.play_state = PlayState.ENDED
        self.session.media_active = False
        await self._stop_devices()
        self._stop_loops()
        logger.info("Media ended")

    async def _on_visibility(self, event: VisibilityEvent) -> None:
        if event.hidden == self.hidden:
            return
        self.hidden = event.hidden
        logger.info(f"Player {'hidden' if self.hidden else 'visible'}")
        if self.playing:
            self._start_loop()

    async def _on_clock(self, event: ClockEvent) -> None:
        self.clock.set(event.position_ms)

    async def _on_tick(self, event: MediaEvent) -> None:
        await self.evaluate()

    async def _on_stop(self, event: MediaEvent) -> None:
        self._stop_loops()
        self.clock.pause()
        self.clock.set(0)
        for cursor in self.cursors.values():
            cursor.reset()
        if self.loaded:
            self.play_state = PlayState.PAUSED
        self.session.media_active = False
        await self._stop_devices()
        logger.info("Media playback stopped")

    # Evaluation

    async def evaluate(self) -> int:
        """Run one step over every channel; returns the actions executed"""
        if self._evaluating or not self.playing or not self.loaded:
            return 0
        self._evaluating = True
        try:
            now = self.current_time()
            executed = 0
            for channel, cursor in list(self.cursors.items()):
                executed += await self._advance(channel, cursor, now)
            if self.virtual and now > self.duration:
                await self._on_ended(EndedEvent())
            return executed
        finally:
            self._evaluating = False

    async def _advance(self, channel: str, cursor: ChannelCursor, now: float) -> int:
        actions = cursor.funscript.actions
        executed = 0

        delta = now - cursor.last_time
        if abs(delta) > self.seek_threshold_ms:
            self.tracking = TrackingState.RESYNCHRONIZING
            new_index = cursor.funscript.index_after(now)
            logger.info(
                f"Channel {channel}: {delta:+.0f}ms jump, cursor {cursor.index} -> {new_index}"
            )
            cursor.index = new_index
            if delta < 0 and new_index > 0:
                await self._execute(channel, actions[new_index - 1])
                executed += 1
            self.tracking = TrackingState.TRACKING

        while cursor.index < len(actions) and actions[cursor.index].at <= now:
            await self._execute(channel, actions[cursor.index])
            cursor.index += 1
            executed += 1

        if now < 0:
            cursor.reset()
        else:
            cursor.last_time = now
        return executed

    async def _execute(self, channel: str, action: FunscriptAction) -> None:
        funscript = self.funscripts[channel]
        targets = devices_for_channel(
            self.session, channel, self.primary, list(self.funscripts)
        )
        self.executed_count += 1
        await self.router.execute(action, funscript, targets)

    # Loops

    def _on_scheduler_tick(self, tick: Tick):
        return self.evaluate()

    def _on_heartbeat(self, timestamp: float) -> None:
        self.last_heartbeat = timestamp
        logger.debug(f"Background timer heartbeat at {timestamp:.0f}")

    def _start_loop(self) -> None:
        interval = self.session.settings.polling_interval_ms
        if self.hidden:
            self._stop_foreground()
            if self._background is None:
                self._background = self._background_factory(self._on_scheduler_tick, interval)
            self._background.start()
        else:
            self._stop_background()
            if self._foreground is None:
                self._foreground = self._foreground_factory(self._on_scheduler_tick, interval)
            self._foreground.start()

    def _stop_foreground(self) -> None:
        if self._foreground is not None:
            self._foreground.stop()

    def _stop_background(self) -> None:
        if self._background is not None:
            self._background.stop()

    def _stop_loops(self) -> None:
        self._stop_foreground()
        self._stop_background()

    @property
    def loop_running(self) -> Optional[str]:
        """Which loop is active, if any"""
        if self._foreground is not None and self._foreground.running:
            return "foreground"
        if self._background is not None and self._background.running:
            return "background"
        return None

    def apply_settings(self) -> None:
        """Push a changed polling interval to both loops"""
        interval = self.session.settings.polling_interval_ms
        for scheduler in (self._foreground, self._background):
            if scheduler is not None:
                scheduler.set_interval(interval)

    async def _stop_devices(self) -> None:
        if not self.session.connected:
            return
        try:
            await self.session.client.stop_all()
        except Exception as e:
            logger.error(f"Failed to stop devices: {e}")

    async def close(self) -> None:
        self._stop_loops()
        if self._foreground is not None and hasattr(self._foreground, "wait_stopped"):
            await self._foreground.wait_stopped()
        if self._background is not None and hasattr(self._background, "close"):
            await asyncio.get_running_loop().run_in_executor(None, self._background.close)
        self.session.media_active = False

    def describe(self) -> Dict[str, Any]:
        return {
            "media": self.media_name,
            "state": self.play_state.value,
            "tracking": self.tracking.value,
            "hidden": self.hidden,
            "loop": self.loop_running,
            "position": self.clock.position(),
            "current_time": self.current_time(),
            "duration": self.duration,
            "primary_channel": self.primary,
            "executed_actions": self.executed_count,
            "last_heartbeat": self.last_heartbeat,
            "channels": {
                channel: {
                    "cursor": cursor.index,
                    "last_time": cursor.last_time,
                    **cursor.funscript.to_dict(),
                }
                for channel, cursor in self.cursors.items()
            },
        }
