import asyncio
import inspect
import itertools
import logging
from typing import Any, Callable, Dict, Set

logger = logging.getLogger(__name__)


class TimerRegistry:
    """Cancellable one-shot timers for self-rescheduling pattern steps.

    Every pending timer and every task a fired timer spawned is tracked, so
    ``clear_all`` leaves no continuation that could fire later.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._handles: Dict[int, asyncio.TimerHandle] = {}
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._handles)

    def set_timeout(self, callback: Callable[[], Any], delay_ms: float) -> int:
        """Run ``callback`` after ``delay_ms``; coroutine results become tasks"""
        loop = asyncio.get_running_loop()
        timer_id = next(self._ids)
        self._handles[timer_id] = loop.call_later(
            max(0.0, delay_ms) / 1000, self._fire, timer_id, callback
        )
        return timer_id

    def clear_timeout(self, timer_id: int) -> None:
        handle = self._handles.pop(timer_id, None)
        if handle is not None:
            handle.cancel()

    def clear_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def _fire(self, timer_id: int, callback: Callable[[], Any]) -> None:
        if self._handles.pop(timer_id, None) is None:
            return
        try:
            result = callback()
        except Exception as e:
            logger.error(f"Timer {timer_id} callback failed: {e}")
            return
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Timer task failed: {task.exception()}")
