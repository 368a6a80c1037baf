"""Device-type preset tables and name-based device classification."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class PresetKind(str, Enum):
    WAVEFORM = "waveform"
    GRADIENT = "gradient"
    LINEAR_WAVEFORM = "linear_waveform"
    LINEAR_GRADIENT = "linear_gradient"


class DeviceType(str, Enum):
    CAGE = "cage"
    PLUG = "plug"
    STROKER = "stroker"
    VIBRATOR = "vibrator"
    GENERAL = "general"


@dataclass(frozen=True)
class Preset:
    """Parameters for one preset; unused fields keep their defaults"""

    kind: PresetKind
    pattern: str = "sine"
    min: int = 20
    max: int = 60
    duration: int = 3000
    cycles: int = 1
    start: int = 0
    end: int = 0
    hold: int = 0
    release: int = 0
    positions: Tuple[int, int] = field(default=(0, 100))


def _waveform(pattern, low, high, duration, cycles):
    return Preset(PresetKind.WAVEFORM, pattern, low, high, duration, cycles)


def _gradient(start, end, duration, hold=0, release=0):
    return Preset(
        PresetKind.GRADIENT,
        start=start,
        end=end,
        duration=duration,
        hold=hold,
        release=release,
    )


def _linear_waveform(pattern, positions, duration, cycles):
    return Preset(
        PresetKind.LINEAR_WAVEFORM,
        pattern=pattern,
        positions=positions,
        duration=duration,
        cycles=cycles,
    )


def _linear_gradient(positions, duration, hold=0):
    return Preset(
        PresetKind.LINEAR_GRADIENT, positions=positions, duration=duration, hold=hold
    )


DEVICE_PRESETS: Dict[str, Dict[str, Preset]] = {
    DeviceType.CAGE.value: {
        "tease": _waveform("pulse", 10, 40, 5000, 3),
        "denial": _waveform("ramp_up", 5, 80, 10000, 1),
        "pulse": _waveform("square", 20, 60, 2000, 10),
        "edge": _gradient(0, 90, 15000, hold=5000, release=3000),
        "random": _waveform("random", 15, 50, 8000, 2),
    },
    DeviceType.PLUG.value: {
        "gentle": _waveform("sine", 10, 30, 3000, 5),
        "pulse": _waveform("pulse", 20, 70, 1500, 8),
        "wave": _waveform("sawtooth", 15, 55, 4000, 4),
        "intense": _waveform("square", 40, 90, 2500, 6),
    },
    DeviceType.STROKER.value: {
        "slow": _linear_waveform("sine", (10, 90), 3000, 5),
        "medium": _linear_waveform("sawtooth", (20, 80), 2000, 8),
        "fast": _linear_waveform("square", (15, 85), 1000, 15),
        "edge": _linear_gradient((10, 95), 8000, hold=3000),
        "tease": _linear_waveform("pulse", (30, 70), 1500, 12),
    },
    DeviceType.GENERAL.value: {
        "warmup": _gradient(0, 50, 10000),
        "build": _waveform("ramp_up", 30, 80, 12000, 1),
        "peak": _waveform("square", 70, 100, 3000, 3),
        "cooldown": _gradient(60, 10, 8000),
    },
}

DEFAULT_PRESET = _waveform("sine", 20, 60, 3000, 3)

_SHORTHANDS = ("cage", "plug", "solace", "lush", "hush", "nora", "max", "domi", "edge")


def device_type(name: str) -> DeviceType:
    """Classify a device by its display name"""
    lowered = (name or "").lower()
    if "cage" in lowered:
        return DeviceType.CAGE
    if "plug" in lowered:
        return DeviceType.PLUG
    if any(word in lowered for word in ("solace", "stroker", "launch")):
        return DeviceType.STROKER
    if any(word in lowered for word in ("lush", "hush", "nora", "max", "domi")):
        return DeviceType.VIBRATOR
    return DeviceType.GENERAL


def device_shorthand(name: str) -> str:
    """Short tag target used when listing a device"""
    lowered = (name or "").lower()
    for word in _SHORTHANDS:
        if word in lowered:
            return word
    parts = lowered.split(" ")
    return parts[0] if parts else ""


def preset_table(kind: DeviceType) -> Dict[str, Preset]:
    return DEVICE_PRESETS.get(kind.value, DEVICE_PRESETS[DeviceType.GENERAL.value])


def find_preset(kind: DeviceType, name: str) -> Optional[Preset]:
    """Exact preset lookup for a device type, without fallbacks"""
    return preset_table(kind).get(name.lower())


def fallback_preset(kind: DeviceType) -> Preset:
    """Preset used when a name matches neither the table nor a sequence"""
    table = preset_table(kind)
    if "warmup" in table:
        return table["warmup"]
    return DEFAULT_PRESET
