"""Background timer thread driven by message passing.

The worker owns its own clock and never touches caller state. Callers post
``{"command": "start", "data": {"interval": ms}}``, ``{"command": "stop"}``
or ``{"command": "interval", "data": {"interval": ms}}`` and receive
``{"type": "tick", "timestamp": ms, "drift": ms}`` and
``{"type": "heartbeat", "timestamp": ms}`` events.
"""

import asyncio
import logging
import queue
import threading
import time
from typing import Any, Callable, Dict, Optional, Set

from .config import SystemDefaults
from .scheduler import Tick

logger = logging.getLogger(__name__)

EventHandler = Callable[[Dict[str, Any]], None]

_SHUTDOWN = {"command": "_shutdown"}


def wall_ms() -> float:
    return time.time() * 1000


class TimerWorker(threading.Thread):
    """Drift-corrected tick loop on its own thread"""

    def __init__(
        self,
        on_event: Optional[EventHandler] = None,
        heartbeat_threshold_ms: int = SystemDefaults.HEARTBEAT_THRESHOLD_MS,
        heartbeat_check_ms: int = SystemDefaults.HEARTBEAT_CHECK_MS,
        clock: Callable[[], float] = wall_ms,
    ):
        super().__init__(name="timer-worker", daemon=True)
        self.inbox: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self.outbox: "queue.Queue[Dict[str, Any]]" = queue.Queue()
        self._on_event = on_event
        self._clock = clock
        self._heartbeat_threshold = heartbeat_threshold_ms
        self._heartbeat_check = heartbeat_check_ms

        self._interval = float(SystemDefaults.DEFAULT_TICK_INTERVAL_MS)
        self._running = False
        self._expected_time = 0.0
        self._next_fire: Optional[float] = None
        self._last_tick = self._clock()
        self._next_check = self._last_tick + self._heartbeat_check

    def post(self, message: Dict[str, Any]) -> None:
        self.inbox.put(message)

    def shutdown(self, timeout: Optional[float] = 1.0) -> None:
        """Terminate the thread"""
        self.inbox.put(_SHUTDOWN)
        if self.is_alive():
            self.join(timeout)

    def run(self) -> None:
        logger.debug("Timer worker thread started")
        while True:
            try:
                message = self.inbox.get(timeout=self._seconds_until_due())
            except queue.Empty:
                message = None

            if message is _SHUTDOWN:
                break
            if message is not None:
                self.handle(message)
            self.poll()
        logger.debug("Timer worker thread exited")

    def handle(self, message: Dict[str, Any]) -> None:
        """Apply one control message"""
        command = message.get("command")
        data = message.get("data") or {}

        if command == "start":
            self._interval = float(data.get("interval") or self._interval)
            if self._running:
                return
            self._running = True
            self._expected_time = self._clock() + self._interval
            self._next_fire = self._expected_time
        elif command == "stop":
            self._running = False
            self._next_fire = None
        elif command == "interval":
            self._interval = float(data.get("interval") or self._interval)
        else:
            logger.warning(f"Timer worker ignoring unknown command: {command}")

    def _seconds_until_due(self) -> float:
        now = self._clock()
        due = self._next_check
        if self._next_fire is not None:
            due = min(due, self._next_fire)
        return max(0.0, (due - now) / 1000)

    def poll(self) -> None:
        """Emit any tick or heartbeat that is due"""
        now = self._clock()
        if self._running and self._next_fire is not None and now >= self._next_fire:
            drift = now - self._expected_time
            self._emit({"type": "tick", "timestamp": now, "drift": drift})
            self._last_tick = now
            self._expected_time += self._interval
            self._next_fire = now + max(0.0, self._interval - drift)

        if now >= self._next_check:
            self._next_check = now + self._heartbeat_check
            if now - self._last_tick >= self._heartbeat_threshold:
                self._emit({"type": "heartbeat", "timestamp": now})

    def _emit(self, event: Dict[str, Any]) -> None:
        if self._on_event is not None:
            try:
                self._on_event(event)
            except Exception as e:
                logger.error(f"Timer worker event handler failed: {e}")
        else:
            self.outbox.put(event)


class WorkerScheduler:
    """Asyncio-facing scheduler backed by a TimerWorker thread.

    Offers the same start/stop/set_interval surface as
    DriftCorrectedScheduler; ticks are marshalled onto the event loop.
    """

    def __init__(
        self,
        callback: Callable[[Tick], Any],
        interval_ms: float = SystemDefaults.DEFAULT_TICK_INTERVAL_MS,
        on_heartbeat: Optional[Callable[[float], Any]] = None,
        heartbeat_threshold_ms: int = SystemDefaults.HEARTBEAT_THRESHOLD_MS,
        heartbeat_check_ms: int = SystemDefaults.HEARTBEAT_CHECK_MS,
    ):
        self._callback = callback
        self._on_heartbeat = on_heartbeat
        self._interval = float(interval_ms)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False
        self._tasks: Set[asyncio.Future] = set()
        self._worker = TimerWorker(
            on_event=self._forward,
            heartbeat_threshold_ms=heartbeat_threshold_ms,
            heartbeat_check_ms=heartbeat_check_ms,
        )

    @property
    def running(self) -> bool:
        return self._running

    @property
    def interval(self) -> float:
        return self._interval

    def start(self) -> None:
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        if not self._worker.is_alive():
            self._worker.start()
        self._running = True
        self._worker.post({"command": "start", "data": {"interval": self._interval}})

    def stop(self) -> None:
        self._cancel_pending()
        if not self._running:
            return
        self._running = False
        self._worker.post({"command": "stop"})

    def set_interval(self, interval_ms: float) -> None:
        self._interval = float(interval_ms)
        self._worker.post({"command": "interval", "data": {"interval": self._interval}})

    def close(self) -> None:
        self.stop()
        self._worker.shutdown()

    def _forward(self, event: Dict[str, Any]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._deliver, event)

    def _deliver(self, event: Dict[str, Any]) -> None:
        if event["type"] == "tick":
            if not self._running:
                return
            tick = Tick(
                timestamp=event["timestamp"],
                drift=event["drift"],
                expected_time=event["timestamp"] - event["drift"],
            )
            result = self._callback(tick)
            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)
        elif event["type"] == "heartbeat" and self._on_heartbeat is not None:
            self._on_heartbeat(event["timestamp"])

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Tick callback failed: {task.exception()}")

    def _cancel_pending(self) -> None:
        """Cancel in-flight tick callbacks other than the one calling stop()"""
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in list(self._tasks):
            if task is not current:
                task.cancel()
