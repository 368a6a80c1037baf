"""Extract device commands from free-form text.

Commands are written as tags ``<target:BODY>``. The target is matched as a
case-insensitive substring of connected device names, or is one of the
reserved targets ``any``/``device`` (first device), ``intiface``/``system``
(device server control) or ``media`` (media playback). The body is trimmed,
uppercased and classified by trying each sub-grammar in priority order; the
first that matches wins. Tags nothing recognises are dropped with a log line.
"""

import json
import logging
import re
from typing import Any, Callable, List, Optional, Sequence

from .models import (
    Command,
    Gradient,
    Linear,
    MediaAction,
    MediaCommand,
    Oscillate,
    OscillatePattern,
    Preset,
    Stop,
    SystemAction,
    SystemCommand,
    Vibrate,
    VibratePattern,
    Waveform,
)

logger = logging.getLogger(__name__)

TAG_RE = re.compile(r"<([a-z]+):([^>]+)>", re.IGNORECASE)

FIRST_DEVICE_TARGETS = ("any", "device")
SYSTEM_TARGETS = ("intiface", "interface", "system")
MEDIA_TARGET = "media"

_I = re.IGNORECASE
MEDIA_PLAY_RE = re.compile(r"PLAY[\s:]+(.+)", _I)
PRESET_RE = re.compile(r"PRESET[\s:]+(\w+)", _I)
WAVEFORM_RE = re.compile(
    r"WAVEFORM[\s:]+(\w+)"
    r"(?:[\s,]+min[=:]?(\d+))?"
    r"(?:[\s,]+max[=:]?(\d+))?"
    r"(?:[\s,]+duration[=:]?(\d+))?"
    r"(?:[\s,]+cycles[=:]?(\d+))?",
    _I,
)
GRADIENT_RE = re.compile(
    r"GRADIENT[\s:]+start[=:]?(\d+)"
    r"(?:[\s,]+end[=:]?(\d+))"
    r"(?:[\s,]+duration[=:]?(\d+))?"
    r"(?:[\s,]+hold[=:]?(\d+))?"
    r"(?:[\s,]+release[=:]?(\d+))?",
    _I,
)
VIBRATE_RE = re.compile(r"VIBRATE[:\s]+(\d+)", _I)
OSCILLATE_RE = re.compile(r"OSCILLATE[:\s]+(\d+)", _I)
LINEAR_RE = re.compile(
    r"LINEAR[:\s]+start[=:\s]*(\d+)[,\s]+end[=:\s]*(\d+)[,\s]+duration[=:\s]*(\d+)",
    _I,
)
PATTERN_RE = re.compile(
    r"PATTERN[:\s]+\[([^\]]+)\]"
    r"(?:[,\s]+interval[=:\s]+\[([^\]]+)\])?"
    r"(?:[,\s]+loop[=:\s]*(\d+))?",
    _I,
)

DEFAULT_INTERVALS = (1000,)


def clamp_percent(value: float) -> int:
    return int(max(0, min(100, value)))


def resolve_target(target: str, device_names: Sequence[str]) -> int:
    """Map a tag target to a device list position.

    Unmatched names fall back to the first device.
    """
    if target in FIRST_DEVICE_TARGETS or not device_names:
        return 0
    for position, name in enumerate(device_names):
        if target in (name or "").lower():
            return position
    return 0


def _int_list(text: str) -> List[int]:
    values = []
    for part in text.split(","):
        part = part.strip()
        match = re.match(r"[-+]?\d+", part)
        if match:
            values.append(int(match.group()))
    return values


def _opt_int(value: Optional[str], default: int) -> int:
    return int(value) if value else default


class CommandParser:
    """Stateless tag parser; device names are supplied per call"""

    def __init__(self, device_names: Optional[Callable[[], Sequence[str]]] = None):
        self._device_names = device_names or (lambda: [])

    def parse(self, text: str, device_names: Optional[Sequence[str]] = None) -> List[Command]:
        """Parse every tag in ``text`` in order; never raises"""
        if not text:
            return []
        names = list(device_names) if device_names is not None else list(self._device_names())

        commands: List[Command] = []
        for match in TAG_RE.finditer(text):
            target = match.group(1).lower()
            raw = match.group(2).strip()
            body = raw.upper()
            device_index = resolve_target(target, names)
            try:
                parsed = self._classify(target, body, raw, device_index)
            except (ValueError, TypeError) as e:
                logger.warning(f"Dropping malformed tag <{target}:{body}>: {e}")
                continue
            if not parsed:
                logger.info(f"Unrecognized command format: <{target}:{body}>")
                continue
            logger.debug(f"Parsed <{target}:{body}> into {[c.type.value for c in parsed]}")
            commands.extend(parsed)
        return commands

    def _classify(
        self, target: str, body: str, raw: str, device_index: int
    ) -> List[Command]:
        if body == "STOP":
            if target == MEDIA_TARGET:
                return [MediaCommand(action=MediaAction.STOP)]
            return [Stop(device_index=device_index)]

        if target in SYSTEM_TARGETS and body in SystemAction.__members__:
            return [SystemCommand(action=SystemAction[body])]

        if target == MEDIA_TARGET:
            if body == "LIST":
                return [MediaCommand(action=MediaAction.LIST)]
            match = MEDIA_PLAY_RE.search(raw)
            if match:
                return [MediaCommand(action=MediaAction.PLAY, filename=match.group(1).strip())]

        match = PRESET_RE.search(body)
        if match:
            return [Preset(name=match.group(1).lower(), device_index=device_index)]

        match = WAVEFORM_RE.search(body)
        if match:
            pattern, low, high, duration, cycles = match.groups()
            return [
                Waveform(
                    pattern=pattern.lower(),
                    min=_opt_int(low, 20),
                    max=_opt_int(high, 80),
                    duration=_opt_int(duration, 5000),
                    cycles=_opt_int(cycles, 3),
                    device_index=device_index,
                )
            ]

        match = GRADIENT_RE.search(body)
        if match:
            start, end, duration, hold, release = match.groups()
            return [
                Gradient(
                    start=int(start),
                    end=int(end),
                    duration=_opt_int(duration, 10000),
                    hold=_opt_int(hold, 0),
                    release=_opt_int(release, 0),
                    device_index=device_index,
                )
            ]

        match = VIBRATE_RE.search(body)
        if match:
            return [
                Vibrate(
                    intensity=clamp_percent(int(match.group(1))),
                    device_index=device_index,
                )
            ]

        match = OSCILLATE_RE.search(body)
        if match:
            return [
                Oscillate(
                    intensity=clamp_percent(int(match.group(1))),
                    device_index=device_index,
                )
            ]

        match = LINEAR_RE.search(body)
        if match:
            start, end, duration = (int(g) for g in match.groups())
            return [
                Linear(
                    start_pos=clamp_percent(start),
                    end_pos=clamp_percent(end),
                    duration=duration,
                    device_index=device_index,
                )
            ]

        match = PATTERN_RE.search(body)
        if match:
            intensities = _int_list(match.group(1))
            if not intensities:
                return []
            intervals = _int_list(match.group(2)) if match.group(2) else []
            loop = int(match.group(3)) if match.group(3) else None
            return [
                VibratePattern(
                    pattern=tuple(intensities),
                    intervals=tuple(intervals) or DEFAULT_INTERVALS,
                    loop=loop,
                    device_index=device_index,
                )
            ]

        return self._parse_json(body, device_index)

    def _parse_json(self, body: str, device_index: int) -> List[Command]:
        """Legacy ``{"VIBRATE": 50}`` style bodies"""
        text = body if body.startswith("{") else "{" + body + "}"
        try:
            data = json.loads(text)
        except ValueError:
            return []
        if not isinstance(data, dict):
            return []

        commands: List[Command] = []
        for key, scalar_cls, pattern_cls in (
            ("VIBRATE", Vibrate, VibratePattern),
            ("OSCILLATE", Oscillate, OscillatePattern),
        ):
            value = data.get(key)
            if _is_number(value):
                commands.append(
                    scalar_cls(intensity=clamp_percent(value), device_index=device_index)
                )
            elif isinstance(value, dict):
                pattern = _number_tuple(value.get("PATTERN")) or (50,)
                intervals = _number_tuple(value.get("INTERVAL")) or DEFAULT_INTERVALS
                loop = value.get("LOOP")
                commands.append(
                    pattern_cls(
                        pattern=pattern,
                        intervals=intervals,
                        loop=int(loop) if _is_number(loop) else None,
                        device_index=device_index,
                    )
                )

        linear = data.get("LINEAR")
        if isinstance(linear, dict):
            commands.append(
                Linear(
                    start_pos=clamp_percent(_number_or(linear.get("START_POSITION"), 0)),
                    end_pos=clamp_percent(_number_or(linear.get("END_POSITION"), 100)),
                    duration=int(_number_or(linear.get("DURATION"), 1000)),
                    device_index=device_index,
                )
            )

        if "STOP" in data:
            commands.append(Stop())
        return commands


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number_or(value: Any, default: int) -> Any:
    return value if _is_number(value) and value else default


def _number_tuple(value: Any) -> tuple:
    if not isinstance(value, list):
        return ()
    return tuple(int(v) for v in value if _is_number(v))


def parse(text: str, device_names: Sequence[str] = ()) -> List[Command]:
    """Parse ``text`` against a fixed list of device names"""
    return CommandParser().parse(text, device_names)
