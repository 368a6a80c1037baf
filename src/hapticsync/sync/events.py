"""Media player events consumed by the sync engine."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Optional

from ..common.exceptions import ValidationError
from .funscript import Funscript


class MediaEventType(str, Enum):
    LOAD = "load"
    PLAY = "play"
    PAUSE = "pause"
    SEEK = "seek"
    ENDED = "ended"
    VISIBILITY = "visibility"
    CLOCK = "clock"
    TICK = "tick"
    STOP = "stop"


@dataclass(frozen=True)
class MediaEvent:
    type: ClassVar[MediaEventType]


@dataclass(frozen=True)
class LoadEvent(MediaEvent):
    """Make a media item current.

    Funscripts are read from the funscript directory unless supplied
    directly; ``virtual`` items have no player and end on their own.
    """

    type: ClassVar[MediaEventType] = MediaEventType.LOAD
    media_name: str
    funscripts: Optional[Dict[str, Funscript]] = field(default=None, compare=False)
    virtual: bool = False


@dataclass(frozen=True)
class PlayEvent(MediaEvent):
    type: ClassVar[MediaEventType] = MediaEventType.PLAY
    position_ms: Optional[float] = None


@dataclass(frozen=True)
class PauseEvent(MediaEvent):
    type: ClassVar[MediaEventType] = MediaEventType.PAUSE


@dataclass(frozen=True)
class SeekEvent(MediaEvent):
    type: ClassVar[MediaEventType] = MediaEventType.SEEK
    position_ms: float


@dataclass(frozen=True)
class EndedEvent(MediaEvent):
    type: ClassVar[MediaEventType] = MediaEventType.ENDED


@dataclass(frozen=True)
class VisibilityEvent(MediaEvent):
    type: ClassVar[MediaEventType] = MediaEventType.VISIBILITY
    hidden: bool


@dataclass(frozen=True)
class ClockEvent(MediaEvent):
    """Current media position reported by the player"""

    type: ClassVar[MediaEventType] = MediaEventType.CLOCK
    position_ms: float


@dataclass(frozen=True)
class TickEvent(MediaEvent):
    """Request one evaluation step"""

    type: ClassVar[MediaEventType] = MediaEventType.TICK


@dataclass(frozen=True)
class StopEvent(MediaEvent):
    type: ClassVar[MediaEventType] = MediaEventType.STOP


def event_from_dict(data: Dict[str, Any]) -> MediaEvent:
    """Build an event from a front-end message such as ``{"type": "seek", "position": 1200}``"""
    try:
        kind = MediaEventType(str(data.get("type", "")).lower())
    except ValueError:
        raise ValidationError(f"Unknown media event type: {data.get('type')!r}")

    position = data.get("position", data.get("position_ms"))
    if kind == MediaEventType.LOAD:
        name = data.get("media_name") or data.get("filename")
        if not name:
            raise ValidationError("Load event requires a media name")
        return LoadEvent(media_name=str(name))
    if kind == MediaEventType.PLAY:
        return PlayEvent(position_ms=_as_ms(position) if position is not None else None)
    if kind in (MediaEventType.SEEK, MediaEventType.CLOCK):
        if position is None:
            raise ValidationError(f"{kind.value} event requires a position")
        cls = SeekEvent if kind == MediaEventType.SEEK else ClockEvent
        return cls(position_ms=_as_ms(position))
    if kind == MediaEventType.VISIBILITY:
        return VisibilityEvent(hidden=bool(data.get("hidden", False)))
    return {
        MediaEventType.PAUSE: PauseEvent,
        MediaEventType.ENDED: EndedEvent,
        MediaEventType.TICK: TickEvent,
        MediaEventType.STOP: StopEvent,
    }[kind]()


def _as_ms(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid position: {value!r}")
