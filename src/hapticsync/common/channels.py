"""Channel symbols shared by devices, funscripts and timelines."""

from typing import Optional, Tuple

from .exceptions import ValidationError

# '-' means unassigned: the device follows the primary timeline
DEFAULT_CHANNEL = "-"
CHANNELS: Tuple[str, ...] = ("A", "B", "C", "D", DEFAULT_CHANNEL)


def normalize_channel(channel: Optional[str]) -> str:
    """Normalize a channel symbol, defaulting to the unassigned channel"""
    if channel is None or channel == "":
        return DEFAULT_CHANNEL
    value = channel.strip().upper()
    if value not in CHANNELS:
        raise ValidationError(
            f"Invalid channel '{channel}', expected one of {', '.join(CHANNELS)}"
        )
    return value
