"""Drift-corrected periodic tick source."""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..common.exceptions import ValidationError
from .config import SystemDefaults

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[Any]]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class Tick:
    """One scheduler firing"""

    timestamp: float
    drift: float
    expected_time: float


class DriftCorrectedScheduler:
    """Periodic ticks that self-correct for late firings.

    Each firing computes ``drift = now - expected``, emits a Tick, advances the
    expected time by one interval and sleeps ``max(0, interval - drift)`` so a
    late tick pulls the next one earlier. Expected tick boundaries therefore
    stay exactly one interval apart however much each handler lags.

    ``clock`` returns milliseconds and ``sleep`` takes seconds, mirroring
    ``asyncio.sleep``; both can be swapped for deterministic tests.
    """

    def __init__(
        self,
        callback: Callable[[Tick], Any],
        interval_ms: float = SystemDefaults.DEFAULT_TICK_INTERVAL_MS,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleep] = None,
        name: str = "scheduler",
    ):
        if interval_ms <= 0:
            raise ValidationError("Scheduler interval must be positive")
        self._callback = callback
        self._interval = float(interval_ms)
        self._clock = clock or monotonic_ms
        self._sleep = sleep or asyncio.sleep
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._expected_time = 0.0
        self.tick_count = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def expected_time(self) -> float:
        return self._expected_time

    def start(self) -> None:
        """Start ticking; a no-op if already running"""
        if self.running:
            return
        self._expected_time = self._clock() + self._interval
        self._task = asyncio.create_task(self._run(), name=self._name)
        logger.debug(f"{self._name} started at {self._interval}ms")

    def stop(self) -> None:
        """Cancel the pending firing; safe to call when not running"""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug(f"{self._name} stopped after {self.tick_count} ticks")

    async def wait_stopped(self) -> None:
        """Stop and wait for the tick task to unwind"""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def set_interval(self, interval_ms: float) -> None:
        """Change the interval from the next tick on"""
        if interval_ms <= 0:
            raise ValidationError("Scheduler interval must be positive")
        self._interval = float(interval_ms)

    async def _run(self) -> None:
        delay = self._interval
        while True:
            await self._sleep(delay / 1000)

            now = self._clock()
            drift = now - self._expected_time
            tick = Tick(timestamp=now, drift=drift, expected_time=self._expected_time)
            self.tick_count += 1

            try:
                result = self._callback(tick)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"{self._name} tick handler failed: {e}")

            self._expected_time += self._interval
            delay = max(0.0, self._interval - drift)
