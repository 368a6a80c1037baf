"""Funscript playback synchronized to a media clock."""

from .actuation import ActionRouter, devices_for_channel, rescale
from .engine import ChannelCursor, MediaClock, PlayState, SyncEngine, TrackingState
from .events import (
    ClockEvent,
    EndedEvent,
    LoadEvent,
    MediaEvent,
    MediaEventType,
    PauseEvent,
    PlayEvent,
    SeekEvent,
    StopEvent,
    TickEvent,
    VisibilityEvent,
    event_from_dict,
)
from .funscript import (
    Funscript,
    FunscriptAction,
    FunscriptLoader,
    parse_funscript,
    primary_channel,
)
from .timeline import TimelineBlock, channel_motor_counts, convert_timeline

__all__ = [
    "ActionRouter",
    "devices_for_channel",
    "rescale",
    "ChannelCursor",
    "MediaClock",
    "PlayState",
    "SyncEngine",
    "TrackingState",
    "ClockEvent",
    "EndedEvent",
    "LoadEvent",
    "MediaEvent",
    "MediaEventType",
    "PauseEvent",
    "PlayEvent",
    "SeekEvent",
    "StopEvent",
    "TickEvent",
    "VisibilityEvent",
    "event_from_dict",
    "Funscript",
    "FunscriptAction",
    "FunscriptLoader",
    "parse_funscript",
    "primary_channel",
    "TimelineBlock",
    "channel_motor_counts",
    "convert_timeline",
]
