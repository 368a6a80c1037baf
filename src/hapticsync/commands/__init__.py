"""Chat text command grammar"""

from .mentions import MEDIA_EXTENSIONS, find_media_mention
from .models import (
    Command,
    CommandType,
    Gradient,
    Linear,
    MediaAction,
    MediaCommand,
    Oscillate,
    OscillatePattern,
    Preset,
    SequenceRun,
    Stop,
    SystemAction,
    SystemCommand,
    Vibrate,
    VibratePattern,
    Waveform,
)
from .parser import CommandParser, parse

__all__ = [
    "MEDIA_EXTENSIONS",
    "find_media_mention",
    "Command",
    "CommandType",
    "Gradient",
    "Linear",
    "MediaAction",
    "MediaCommand",
    "Oscillate",
    "OscillatePattern",
    "Preset",
    "SequenceRun",
    "Stop",
    "SystemAction",
    "SystemCommand",
    "Vibrate",
    "VibratePattern",
    "Waveform",
    "CommandParser",
    "parse",
]
