from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

from ..common.channels import CHANNELS
from ..sync.events import MediaEventType


# Base Models
class BaseResponse(BaseModel):
    """Base response model"""

    status: str
    message: str


class ErrorResponse(BaseResponse):
    """Error response model"""

    detail: str


# Chat text
class MessageRequest(BaseModel):
    """A complete chat message"""

    text: str


class TokenRequest(BaseModel):
    """One streamed token of a message being generated"""

    token: str


class CommandListResponse(BaseResponse):
    commands: List[Dict[str, Any]] = Field(default_factory=list)


# Devices
class ChannelRequest(BaseModel):
    channel: Optional[str] = None

    @validator("channel")
    def validate_channel(cls, v):
        if v is None or v == "":
            return None
        value = v.strip().upper()
        if value not in CHANNELS:
            raise ValueError(f"Channel must be one of {', '.join(CHANNELS)}")
        return value


class InvertRequest(BaseModel):
    inverted: bool


class DeviceInfo(BaseModel):
    index: int
    name: str
    display_name: str
    position: int
    type: str
    shorthand: str
    channel: str
    inverted: bool
    motor_count: int
    capabilities: List[str]


# Modes
class ModeUpdateRequest(BaseModel):
    enabled: Optional[bool] = None
    intensity_multiplier: Optional[float] = Field(None, ge=0.0, le=4.0)


class ModeInfo(BaseModel):
    mode_id: str
    name: str
    description: str = ""
    builtin: bool
    toggleable: bool
    enabled: bool
    intensity_multiplier: float
    patterns: List[str]
    sequences: List[str]


class PatternPreview(BaseModel):
    pattern: str
    found: bool
    values: List[int]
    motor2: Optional[List[int]] = None


# Media
class MediaLoadRequest(BaseModel):
    filename: str

    @validator("filename")
    def validate_filename(cls, v):
        if not v.strip():
            raise ValueError("Filename must not be empty")
        return v.strip()


class MediaEventRequest(BaseModel):
    """A player event; ``position`` is in milliseconds"""

    type: MediaEventType
    position: Optional[float] = None
    hidden: Optional[bool] = None

    @validator("position", always=True)
    def validate_position(cls, v, values):
        event_type = values.get("type")
        if event_type in (MediaEventType.SEEK, MediaEventType.CLOCK) and v is None:
            raise ValueError(f"{event_type.value} events require a position")
        return v


class MediaFile(BaseModel):
    filename: str
    has_funscript: bool


class TimelineBlockModel(BaseModel):
    pattern: str
    channel: Optional[str] = "-"
    start: int = Field(0, ge=0)
    duration: int = Field(5000, gt=0)
    min: int = Field(20, ge=0, le=100)
    max: int = Field(80, ge=0, le=100)
    cycles: int = Field(1, gt=0)


class TimelineRequest(BaseModel):
    blocks: List[TimelineBlockModel]


# Settings
class SettingsRequest(BaseModel):
    global_intensity: Optional[int] = Field(None, ge=0, le=400)
    sync_offset_ms: Optional[int] = None
    polling_interval_ms: Optional[int] = Field(None, ge=10, le=1000)
    loop_on_end: Optional[bool] = None


class SettingsResponse(BaseModel):
    global_intensity: int
    sync_offset_ms: int
    polling_interval_ms: int
    loop_on_end: bool
