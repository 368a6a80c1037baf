"""Funscript parsing, statistics and per-channel loading."""

import json
import math
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError, validator

from ..common.channels import CHANNELS, DEFAULT_CHANNEL, normalize_channel
from ..common.exceptions import FunscriptError

logger = logging.getLogger(__name__)

FUNSCRIPT_SUFFIX = ".funscript"

Position = Union[float, List[float]]


class FunscriptAction(BaseModel):
    """A timestamped position; ``pos`` is a list for multi-motor timelines"""

    at: float
    pos: Position

    @validator("pos")
    def validate_pos(cls, v):
        if isinstance(v, list) and not v:
            raise ValueError("Position list must not be empty")
        return v

    @property
    def value(self) -> float:
        """Scalar view of the position; per-motor lists are averaged"""
        if isinstance(self.pos, list):
            return sum(self.pos) / len(self.pos)
        return float(self.pos)

    @property
    def positions(self) -> List[float]:
        return list(self.pos) if isinstance(self.pos, list) else [float(self.pos)]


class FunscriptDocument(BaseModel):
    """On-disk funscript layout; unknown keys such as metadata are ignored"""

    version: Optional[Union[str, float]] = None
    inverted: Optional[bool] = False
    range: Optional[float] = 100
    actions: List[FunscriptAction]


@dataclass
class FunscriptStats:
    action_count: int = 0
    avg_position: int = 0
    max_position: float = 0
    min_position: float = 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actionCount": self.action_count,
            "avgPosition": self.avg_position,
            "maxPosition": self.max_position,
            "minPosition": self.min_position,
        }


@dataclass
class Funscript:
    """A parsed timeline with actions sorted by ``at``"""

    actions: List[FunscriptAction] = field(default_factory=list)
    inverted: bool = False
    range: float = 100
    source: Optional[str] = None

    def __post_init__(self):
        self.actions = sorted(self.actions, key=lambda a: a.at)

    @property
    def duration(self) -> float:
        return self.actions[-1].at if self.actions else 0

    @property
    def stats(self) -> FunscriptStats:
        if not self.actions:
            return FunscriptStats()
        values = [a.value for a in self.actions]
        return FunscriptStats(
            action_count=len(values),
            avg_position=int(math.floor(sum(values) / len(values) + 0.5)),
            max_position=max(max(values), 0),
            min_position=min(min(values), 100),
        )

    def index_after(self, time_ms: float) -> int:
        """Number of actions with ``at <= time_ms``"""
        count = 0
        for action in self.actions:
            if action.at > time_ms:
                break
            count += 1
        return count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "duration": self.duration,
            "inverted": self.inverted,
            "range": self.range,
            "stats": self.stats.to_dict(),
        }


def parse_funscript(data: Any, source: Optional[str] = None) -> Funscript:
    """Validate a decoded funscript object.

    Raises:
        FunscriptError: if the document is not an object or ``actions`` is
            missing or not a list of ``{at, pos}`` entries.
    """
    if not isinstance(data, dict):
        raise FunscriptError(f"Funscript {source or '<memory>'} must be a JSON object")
    if not isinstance(data.get("actions"), list):
        raise FunscriptError(f"Funscript {source or '<memory>'} has no actions array")
    try:
        document = FunscriptDocument(**data)
    except PydanticValidationError as e:
        raise FunscriptError(f"Invalid funscript {source or '<memory>'}: {e}") from e

    return Funscript(
        actions=document.actions,
        inverted=bool(document.inverted),
        range=document.range or 100,
        source=source,
    )


class FunscriptLoader:
    """Reads funscripts for media items from a directory, caching by path.

    A media item ``clip.mp4`` maps to ``clip.funscript`` for the default
    channel and ``clip_B.funscript`` for channel B.
    """

    def __init__(self, funscript_dir: Optional[Union[str, Path]] = None):
        self.funscript_dir = Path(funscript_dir) if funscript_dir else None
        self._cache: Dict[str, Funscript] = {}

    def path_for(self, media_name: str, channel: str = DEFAULT_CHANNEL) -> Path:
        if self.funscript_dir is None:
            raise FunscriptError("No funscript directory configured")
        # bare file name only; directory parts of the media name are dropped
        stem = Path(Path(media_name).name).stem
        channel = normalize_channel(channel)
        suffix = "" if channel == DEFAULT_CHANNEL else f"_{channel}"
        return self.funscript_dir / f"{stem}{suffix}{FUNSCRIPT_SUFFIX}"

    def has_funscript(self, media_name: str) -> bool:
        if self.funscript_dir is None:
            return False
        return any(self.path_for(media_name, ch).is_file() for ch in CHANNELS)

    def load_file(self, path: Union[str, Path]) -> Funscript:
        key = str(path)
        if key in self._cache:
            return self._cache[key]
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FunscriptError(f"Failed to read funscript {path}: {e}") from e

        funscript = parse_funscript(data, source=key)
        self._cache[key] = funscript
        logger.info(
            f"Loaded funscript {path}: {len(funscript.actions)} actions, "
            f"{funscript.duration / 1000:.1f}s"
        )
        return funscript

    def load_channels(
        self, media_name: str, channels: Iterable[str] = CHANNELS
    ) -> Dict[str, Funscript]:
        """Load every available channel variant; missing files are skipped"""
        loaded: Dict[str, Funscript] = {}
        for channel in channels:
            path = self.path_for(media_name, channel)
            if not path.is_file():
                logger.debug(f"No funscript for channel {channel} at {path}")
                continue
            try:
                loaded[normalize_channel(channel)] = self.load_file(path)
            except FunscriptError as e:
                logger.warning(f"Skipping channel {channel}: {e}")
        return loaded

    def clear_cache(self) -> None:
        self._cache.clear()


def primary_channel(funscripts: Dict[str, Funscript]) -> Optional[str]:
    """The default channel when loaded, otherwise the first loaded channel"""
    if DEFAULT_CHANNEL in funscripts:
        return DEFAULT_CHANNEL
    for channel in CHANNELS:
        if channel in funscripts:
            return channel
    return None
