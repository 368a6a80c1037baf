from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Union
import logging

import yaml

from ..common.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SystemDefaults:
    """Timing and playback constants for the haptic sync system"""

    # Scheduler
    DEFAULT_TICK_INTERVAL_MS: ClassVar[int] = 1000
    HEARTBEAT_THRESHOLD_MS: ClassVar[int] = 5000
    HEARTBEAT_CHECK_MS: ClassVar[int] = 3000

    # Dispatcher
    SYSTEM_COMMAND_COOLDOWN_MS: ClassVar[int] = 5000
    AUTO_CONNECT_DELAY_MS: ClassVar[int] = 3000
    PATTERN_STEP_MS: ClassVar[int] = 100
    GRADIENT_STEP_MS: ClassVar[int] = 50
    DEFAULT_PATTERN_INTERVAL_MS: ClassVar[int] = 1000

    # Sync engine
    DEFAULT_POLLING_INTERVAL_MS: ClassVar[int] = 50
    MIN_POLLING_INTERVAL_MS: ClassVar[int] = 10
    MAX_POLLING_INTERVAL_MS: ClassVar[int] = 1000
    SEEK_THRESHOLD_MS: ClassVar[int] = 2000
    LINEAR_ACTION_DURATION_MS: ClassVar[int] = 100
    NEUTRAL_POSITION: ClassVar[int] = 50

    # Intensity
    DEFAULT_GLOBAL_INTENSITY: ClassVar[int] = 100
    MAX_GLOBAL_INTENSITY: ClassVar[int] = 400
    DEFAULT_SYNC_OFFSET_MS: ClassVar[int] = 0

    # Network
    DEFAULT_HOST: ClassVar[str] = "127.0.0.1"
    DEFAULT_PORT: ClassVar[int] = 8765
    DEFAULT_WS_HEARTBEAT_MS: ClassVar[int] = 1000

    @classmethod
    def get_all_defaults(cls) -> Dict[str, Any]:
        """Get all default values as a dictionary"""
        return {
            name: value
            for name, value in vars(cls).items()
            if not name.startswith("_")
            and isinstance(value, (int, float, str, bool))
            and name.isupper()
        }


@dataclass
class SchedulerConfig:
    """Drift-corrected scheduler and timer worker settings"""

    tick_interval_ms: int = SystemDefaults.DEFAULT_TICK_INTERVAL_MS
    heartbeat_threshold_ms: int = SystemDefaults.HEARTBEAT_THRESHOLD_MS
    heartbeat_check_ms: int = SystemDefaults.HEARTBEAT_CHECK_MS

    def validate(self) -> None:
        """Validate scheduler settings"""
        if self.tick_interval_ms <= 0:
            raise ValidationError("Tick interval must be positive")
        if self.heartbeat_check_ms <= 0:
            raise ValidationError("Heartbeat check interval must be positive")
        if self.heartbeat_threshold_ms < self.heartbeat_check_ms:
            raise ValidationError(
                "Heartbeat threshold must be at least the heartbeat check interval"
            )


@dataclass
class DispatchConfig:
    """Command dispatcher settings"""

    system_cooldown_ms: int = SystemDefaults.SYSTEM_COMMAND_COOLDOWN_MS
    auto_connect_delay_ms: int = SystemDefaults.AUTO_CONNECT_DELAY_MS
    pattern_step_ms: int = SystemDefaults.PATTERN_STEP_MS
    gradient_step_ms: int = SystemDefaults.GRADIENT_STEP_MS

    def validate(self) -> None:
        """Validate dispatcher settings"""
        if self.system_cooldown_ms < 0:
            raise ValidationError("System command cool-down must not be negative")
        if self.auto_connect_delay_ms < 0:
            raise ValidationError("Auto-connect delay must not be negative")
        if self.pattern_step_ms <= 0 or self.gradient_step_ms <= 0:
            raise ValidationError("Pattern step intervals must be positive")


@dataclass
class SyncConfig:
    """Funscript sync engine settings"""

    polling_interval_ms: int = SystemDefaults.DEFAULT_POLLING_INTERVAL_MS
    seek_threshold_ms: int = SystemDefaults.SEEK_THRESHOLD_MS
    sync_offset_ms: int = SystemDefaults.DEFAULT_SYNC_OFFSET_MS
    global_intensity: int = SystemDefaults.DEFAULT_GLOBAL_INTENSITY
    loop_on_end: bool = False

    def validate(self) -> None:
        """Validate sync settings"""
        if not (
            SystemDefaults.MIN_POLLING_INTERVAL_MS
            <= self.polling_interval_ms
            <= SystemDefaults.MAX_POLLING_INTERVAL_MS
        ):
            raise ValidationError(
                f"Polling interval must be between {SystemDefaults.MIN_POLLING_INTERVAL_MS} "
                f"and {SystemDefaults.MAX_POLLING_INTERVAL_MS}ms"
            )
        if self.seek_threshold_ms <= 0:
            raise ValidationError("Seek threshold must be positive")
        if not 0 <= self.global_intensity <= SystemDefaults.MAX_GLOBAL_INTENSITY:
            raise ValidationError(
                f"Global intensity must be between 0 and {SystemDefaults.MAX_GLOBAL_INTENSITY}"
            )
        if self.polling_interval_ms < 20:
            logger.warning(
                f"Polling interval {self.polling_interval_ms}ms may flood devices with commands"
            )


@dataclass
class AssetConfig:
    """Locations of media, funscripts and custom modes"""

    media_dir: Optional[str] = None
    funscript_dir: Optional[str] = None
    custom_modes_file: Optional[str] = None

    def validate(self) -> None:
        """Validate asset locations"""
        for name in ("media_dir", "funscript_dir"):
            value = getattr(self, name)
            if value is not None and not Path(value).is_dir():
                logger.warning(f"Configured {name} '{value}' does not exist")
        if self.custom_modes_file is not None:
            suffix = Path(self.custom_modes_file).suffix.lower()
            if suffix not in (".yaml", ".yml", ".json"):
                raise ValidationError(
                    "Custom modes file must be a .yaml, .yml or .json file"
                )


@dataclass
class NetworkConfig:
    """HTTP and WebSocket settings"""

    host: str = SystemDefaults.DEFAULT_HOST
    port: int = SystemDefaults.DEFAULT_PORT
    heartbeat_interval_ms: int = SystemDefaults.DEFAULT_WS_HEARTBEAT_MS
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])

    def validate(self) -> None:
        """Validate network settings"""
        if not 1024 <= self.port <= 65535:
            raise ValidationError("Port must be between 1024 and 65535")
        if self.heartbeat_interval_ms < 100:
            raise ValidationError("Heartbeat interval must be at least 100ms")


@dataclass
class SystemConfig:
    """Main system configuration"""

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)

    _SECTIONS: ClassVar[Dict[str, type]] = {
        "scheduler": SchedulerConfig,
        "dispatch": DispatchConfig,
        "sync": SyncConfig,
        "assets": AssetConfig,
        "network": NetworkConfig,
    }

    def __post_init__(self):
        """Validate entire configuration"""
        try:
            for name in self._SECTIONS:
                getattr(self, name).validate()
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

    @classmethod
    def create_default(cls) -> "SystemConfig":
        """Create default configuration"""
        return cls()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SystemConfig":
        """Build configuration from a nested dictionary"""
        data = data or {}
        unknown = set(data) - set(cls._SECTIONS)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration sections: {', '.join(sorted(unknown))}"
            )
        sections = {}
        for name, section_cls in cls._SECTIONS.items():
            values = data.get(name) or {}
            if not isinstance(values, dict):
                raise ConfigurationError(f"Section '{name}' must be a mapping")
            sections[name] = _build_section(section_cls, values)
        return cls(**sections)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SystemConfig":
        """Load configuration from a YAML file"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to read config {path}: {e}") from e
        config = cls.from_dict(data)
        logger.info(f"Configuration loaded from {path}")
        return config

    def update(self, updates: Dict[str, Any]) -> None:
        """Update configuration with new values"""
        for name, section_cls in self._SECTIONS.items():
            if name in updates:
                current = {
                    f.name: getattr(getattr(self, name), f.name)
                    for f in fields(section_cls)
                }
                current.update(updates[name])
                setattr(self, name, _build_section(section_cls, current))

        # Revalidate after updates
        self.__post_init__()

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration to a nested dictionary"""
        return {
            name: {
                f.name: getattr(getattr(self, name), f.name)
                for f in fields(section_cls)
            }
            for name, section_cls in self._SECTIONS.items()
        }


def _build_section(section_cls: type, values: Dict[str, Any]) -> Any:
    """Instantiate a config section, rejecting unknown keys"""
    known = {f.name for f in fields(section_cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown {section_cls.__name__} keys: {', '.join(sorted(unknown))}"
        )
    return section_cls(**values)
