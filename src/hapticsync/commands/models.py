"""Parsed command variants.

Commands are immutable and carry only the fields their semantics need.
``device_index`` is a position in the connected-device list, resolved when
the tag is parsed.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple


class CommandType(str, Enum):
    VIBRATE = "vibrate"
    OSCILLATE = "oscillate"
    LINEAR = "linear"
    VIBRATE_PATTERN = "vibrate_pattern"
    OSCILLATE_PATTERN = "oscillate_pattern"
    PRESET = "preset"
    WAVEFORM = "waveform"
    GRADIENT = "gradient"
    SEQUENCE = "sequence"
    STOP = "stop"
    SYSTEM = "system"
    MEDIA = "media"


class SystemAction(str, Enum):
    START = "start"
    CONNECT = "connect"
    DISCONNECT = "disconnect"


class MediaAction(str, Enum):
    LIST = "list"
    PLAY = "play"
    STOP = "stop"


@dataclass(frozen=True)
class Command:
    type: ClassVar[CommandType]

    @property
    def immediate(self) -> bool:
        """System and media commands bypass the device queue"""
        return False

    @property
    def dedupe_key(self) -> Tuple[str, Optional[int]]:
        return (self.type.value, getattr(self, "device_index", None))

    def to_dict(self) -> Dict[str, Any]:
        data = {"type": self.type.value}
        for key, value in asdict(self).items():
            data[key] = value.value if isinstance(value, Enum) else value
        return data


@dataclass(frozen=True)
class Vibrate(Command):
    type: ClassVar[CommandType] = CommandType.VIBRATE
    intensity: int
    device_index: int = 0
    motor_index: int = 0


@dataclass(frozen=True)
class Oscillate(Command):
    type: ClassVar[CommandType] = CommandType.OSCILLATE
    intensity: int
    device_index: int = 0


@dataclass(frozen=True)
class Linear(Command):
    type: ClassVar[CommandType] = CommandType.LINEAR
    start_pos: int
    end_pos: int
    duration: int
    device_index: int = 0


@dataclass(frozen=True)
class VibratePattern(Command):
    """Stepped intensities; ``loop=None`` repeats until stopped"""

    type: ClassVar[CommandType] = CommandType.VIBRATE_PATTERN
    pattern: Tuple[int, ...]
    intervals: Tuple[int, ...] = (1000,)
    loop: Optional[int] = None
    device_index: int = 0


@dataclass(frozen=True)
class OscillatePattern(VibratePattern):
    type: ClassVar[CommandType] = CommandType.OSCILLATE_PATTERN


@dataclass(frozen=True)
class Preset(Command):
    type: ClassVar[CommandType] = CommandType.PRESET
    name: str
    device_index: int = 0


@dataclass(frozen=True)
class Waveform(Command):
    type: ClassVar[CommandType] = CommandType.WAVEFORM
    pattern: str
    min: int = 20
    max: int = 80
    duration: int = 5000
    cycles: int = 3
    device_index: int = 0


@dataclass(frozen=True)
class Gradient(Command):
    type: ClassVar[CommandType] = CommandType.GRADIENT
    start: int
    end: int
    duration: int = 10000
    hold: int = 0
    release: int = 0
    device_index: int = 0


@dataclass(frozen=True)
class SequenceRun(Command):
    type: ClassVar[CommandType] = CommandType.SEQUENCE
    name: str
    device_index: int = 0


@dataclass(frozen=True)
class Stop(Command):
    """Stop all devices; ``device_index`` is informational"""

    type: ClassVar[CommandType] = CommandType.STOP
    device_index: Optional[int] = None


@dataclass(frozen=True)
class SystemCommand(Command):
    type: ClassVar[CommandType] = CommandType.SYSTEM
    action: SystemAction

    @property
    def immediate(self) -> bool:
        return True

    @property
    def dedupe_key(self) -> Tuple[str, Optional[int]]:
        return (f"system_{self.action.value}", None)


@dataclass(frozen=True)
class MediaCommand(Command):
    type: ClassVar[CommandType] = CommandType.MEDIA
    action: MediaAction
    filename: Optional[str] = field(default=None)

    @property
    def immediate(self) -> bool:
        return True

    @property
    def dedupe_key(self) -> Tuple[str, Optional[int]]:
        return (f"media_{self.action.value}", None)


PATTERN_COMMANDS = (
    CommandType.VIBRATE_PATTERN,
    CommandType.OSCILLATE_PATTERN,
    CommandType.PRESET,
    CommandType.WAVEFORM,
    CommandType.GRADIENT,
    CommandType.SEQUENCE,
)
