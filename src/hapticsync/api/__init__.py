"""REST API and WebSocket interfaces for the haptic session"""

from .app import init_app, load_config, main
from .control import router as control_router
from .models import (
    BaseResponse,
    ErrorResponse,
    MediaEventRequest,
    MessageRequest,
    SettingsRequest,
)
from .websocket import router as websocket_router

__all__ = [
    # Application
    "init_app",
    "load_config",
    "main",
    # Routers
    "control_router",
    "websocket_router",
    # Models
    "BaseResponse",
    "ErrorResponse",
    "MediaEventRequest",
    "MessageRequest",
    "SettingsRequest",
]
