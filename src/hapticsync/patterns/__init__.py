"""Pattern modes, presets and custom pattern expressions"""

from .base import Mode, ModeSettings, PatternFn, Sequence, SequenceStep
from .expressions import compile_expression
from .loader import build_custom_mode, load_custom_modes
from .presets import DeviceType, Preset, PresetKind, device_shorthand, device_type
from .registry import ModeRegistry

__all__ = [
    "Mode",
    "ModeSettings",
    "PatternFn",
    "Sequence",
    "SequenceStep",
    "compile_expression",
    "build_custom_mode",
    "load_custom_modes",
    "DeviceType",
    "Preset",
    "PresetKind",
    "device_shorthand",
    "device_type",
    "ModeRegistry",
]
