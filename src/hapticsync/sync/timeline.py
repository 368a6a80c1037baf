"""Conversion of pattern timeline blocks into per-channel funscripts."""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..common.channels import CHANNELS, normalize_channel
from ..common.exceptions import ValidationError
from ..patterns.registry import ModeRegistry
from .funscript import Funscript, FunscriptAction

logger = logging.getLogger(__name__)

TIMELINE_STEP_MS = 100


@dataclass(frozen=True)
class TimelineBlock:
    """A pattern placed on a channel for ``duration`` ms from ``start``"""

    pattern: str
    channel: str = "-"
    start: int = 0
    duration: int = 5000
    min: int = 20
    max: int = 80
    cycles: int = 1

    def validate(self) -> None:
        if self.start < 0:
            raise ValidationError("Timeline block start must not be negative")
        if self.duration <= 0:
            raise ValidationError("Timeline block duration must be positive")
        if not 0 <= self.min <= 100 or not 0 <= self.max <= 100:
            raise ValidationError("Timeline block bounds must be within 0-100")
        if self.cycles <= 0:
            raise ValidationError("Timeline block cycles must be positive")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineBlock":
        if not data.get("pattern"):
            raise ValidationError("Timeline block requires a pattern")

        def number(key, default):
            value = data.get(key)
            return default if value is None else value

        try:
            block = cls(
                pattern=str(data["pattern"]),
                channel=normalize_channel(data.get("channel")),
                start=int(data.get("start", data.get("startTime", 0))),
                duration=int(number("duration", 5000)),
                min=int(number("min", 20)),
                max=int(number("max", 80)),
                cycles=int(number("cycles", 1)),
            )
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid timeline block: {e}") from e
        block.validate()
        return block


def _position(fn: Callable[[float, float], float], phase: float, low: int, high: int) -> int:
    raw = fn(phase, 1.0)
    if raw is None or not math.isfinite(raw):
        raw = 0.0
    # patterns span -1..1 here
    pos = math.floor(low + (high - low) * (raw + 1) / 2 + 0.5)
    return int(max(0, min(100, pos)))


def convert_timeline(
    blocks: Iterable[TimelineBlock],
    modes: ModeRegistry,
    motor_counts: Optional[Dict[str, int]] = None,
) -> Dict[str, Funscript]:
    """Render blocks into one funscript per channel at 100 ms resolution.

    Channels whose devices have more than one motor get per-motor position
    lists, each motor offset by ``motor / motor_count`` of a period. Every
    channel is present in the result, empty when no block targets it.
    """
    motor_counts = motor_counts or {}
    actions: Dict[str, List[FunscriptAction]] = {ch: [] for ch in CHANNELS}

    for block in sorted(blocks, key=lambda b: b.start):
        fn = modes.resolve_or_fallback(block.pattern)
        motors = motor_counts.get(block.channel, 1)
        steps = block.duration // TIMELINE_STEP_MS

        for i in range(steps):
            phase = (i / steps * block.cycles) % 1
            at = block.start + i * TIMELINE_STEP_MS
            if motors > 1:
                pos: Any = [
                    _position(fn, (phase + motor / motors) % 1, block.min, block.max)
                    for motor in range(motors)
                ]
            else:
                pos = _position(fn, phase, block.min, block.max)
            actions[block.channel].append(FunscriptAction(at=at, pos=pos))

    result = {
        channel: Funscript(actions=channel_actions, source=f"timeline:{channel}")
        for channel, channel_actions in actions.items()
    }
    logger.info(
        "Timeline converted: "
        + ", ".join(f"{ch}={len(f.actions)}" for ch, f in result.items() if f.actions)
    )
    return result


def channel_motor_counts(session) -> Dict[str, int]:
    """Highest motor count among the devices assigned to each channel"""
    counts: Dict[str, int] = {}
    for device in session.devices:
        channel = session.devices.channel(device)
        counts[channel] = max(counts.get(channel, 1), device.motor_count)
    return counts
