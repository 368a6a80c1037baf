"""Common components shared across modules."""

from .exceptions import *
from .channels import DEFAULT_CHANNEL, CHANNELS, normalize_channel

__all__ = [
    "HapticSyncError",
    "PatternError",
    "ValidationError",
    "ConfigurationError",
    "DeviceError",
    "FunscriptError",
    "ExpressionError",
    "CommunicationError",
    "DEFAULT_CHANNEL",
    "CHANNELS",
    "normalize_channel",
]
