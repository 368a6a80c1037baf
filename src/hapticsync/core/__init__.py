"""Core runtime: configuration, timing and the shared session context.

The dispatcher and controller are imported from their modules directly.
"""

from .config import (
    AssetConfig,
    DispatchConfig,
    NetworkConfig,
    SchedulerConfig,
    SyncConfig,
    SystemConfig,
    SystemDefaults,
)
from .scheduler import DriftCorrectedScheduler, Tick, monotonic_ms
from .session import PlaybackSettings, SessionContext
from .timer_worker import TimerWorker, WorkerScheduler
from .timers import TimerRegistry

__all__ = [
    # Configuration
    "AssetConfig",
    "DispatchConfig",
    "NetworkConfig",
    "SchedulerConfig",
    "SyncConfig",
    "SystemConfig",
    "SystemDefaults",
    # Timing
    "DriftCorrectedScheduler",
    "Tick",
    "monotonic_ms",
    "TimerWorker",
    "WorkerScheduler",
    "TimerRegistry",
    # Session
    "PlaybackSettings",
    "SessionContext",
]
