import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..common.exceptions import ValidationError
from ..devices.base import Device, DeviceClient, ServerLauncher
from ..devices.registry import DeviceRegistry
from ..patterns.registry import ModeRegistry
from .config import SyncConfig, SystemConfig, SystemDefaults
from .timers import TimerRegistry

logger = logging.getLogger(__name__)


@dataclass
class PlaybackSettings:
    """User-adjustable playback shaping"""

    global_intensity: int = SystemDefaults.DEFAULT_GLOBAL_INTENSITY
    sync_offset_ms: int = SystemDefaults.DEFAULT_SYNC_OFFSET_MS
    polling_interval_ms: int = SystemDefaults.DEFAULT_POLLING_INTERVAL_MS
    loop_on_end: bool = False

    def validate(self) -> None:
        if not 0 <= self.global_intensity <= SystemDefaults.MAX_GLOBAL_INTENSITY:
            raise ValidationError(
                f"Global intensity must be between 0 and {SystemDefaults.MAX_GLOBAL_INTENSITY}"
            )
        if not (
            SystemDefaults.MIN_POLLING_INTERVAL_MS
            <= self.polling_interval_ms
            <= SystemDefaults.MAX_POLLING_INTERVAL_MS
        ):
            raise ValidationError("Polling interval out of range")

    @classmethod
    def from_config(cls, sync: SyncConfig) -> "PlaybackSettings":
        return cls(
            global_intensity=sync.global_intensity,
            sync_offset_ms=sync.sync_offset_ms,
            polling_interval_ms=sync.polling_interval_ms,
            loop_on_end=sync.loop_on_end,
        )


class SessionContext:
    """Explicit state shared by the dispatcher, player and sync engine.

    Holds the device view, the mode registry, playback settings and the
    cancellable timers. Components receive it at construction instead of
    reaching for module globals.
    """

    def __init__(
        self,
        client: DeviceClient,
        config: Optional[SystemConfig] = None,
        modes: Optional[ModeRegistry] = None,
        launcher: Optional[ServerLauncher] = None,
    ):
        self.config = config or SystemConfig.create_default()
        self.client = client
        self.launcher = launcher
        self.modes = modes or ModeRegistry()
        self.devices = DeviceRegistry()
        self.devices.attach(client)
        self.settings = PlaybackSettings.from_config(self.config.sync)
        self.timers = TimerRegistry()
        self.media_active = False

    @property
    def connected(self) -> bool:
        return self.client.connected

    def device_at(self, position: int) -> Optional[Device]:
        return self.devices.at(position)

    def scale(self, value: float, multiplier: float = 1.0) -> int:
        """Apply global intensity (and a mode multiplier) to a 0-100 value"""
        scaled = value * self.settings.global_intensity / 100 * multiplier
        return int(max(0, min(100, math.floor(scaled + 0.5))))

    def invert(self, device: Device, value: int) -> int:
        return 100 - value if self.devices.is_inverted(device) else value

    def shape(self, device: Device, value: float, multiplier: float = 1.0) -> int:
        return self.invert(device, self.scale(value, multiplier))

    def update_settings(self, **changes: Any) -> PlaybackSettings:
        """Apply changes atomically; invalid values leave settings untouched"""
        current = {
            "global_intensity": self.settings.global_intensity,
            "sync_offset_ms": self.settings.sync_offset_ms,
            "polling_interval_ms": self.settings.polling_interval_ms,
            "loop_on_end": self.settings.loop_on_end,
        }
        unknown = set(changes) - set(current)
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")
        current.update({k: v for k, v in changes.items() if v is not None})
        candidate = PlaybackSettings(**current)
        candidate.validate()
        self.settings = candidate
        logger.info(f"Playback settings updated: {changes}")
        return candidate

    def describe(self) -> Dict[str, Any]:
        return {
            "connected": self.connected,
            "media_active": self.media_active,
            "settings": {
                "global_intensity": self.settings.global_intensity,
                "sync_offset_ms": self.settings.sync_offset_ms,
                "polling_interval_ms": self.settings.polling_interval_ms,
                "loop_on_end": self.settings.loop_on_end,
            },
            "devices": self.devices.describe(),
        }
