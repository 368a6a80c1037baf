import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ..common.exceptions import (
    DeviceError,
    FunscriptError,
    HapticSyncError,
    PatternError,
    ValidationError,
)
from ..core.control import SessionController
from ..sync.events import event_from_dict
from ..sync.timeline import TimelineBlock
from .dependencies import get_controller
from .models import (
    BaseResponse,
    ChannelRequest,
    CommandListResponse,
    DeviceInfo,
    InvertRequest,
    MediaEventRequest,
    MediaFile,
    MediaLoadRequest,
    MessageRequest,
    ModeInfo,
    ModeUpdateRequest,
    PatternPreview,
    SettingsRequest,
    SettingsResponse,
    TimelineRequest,
    TokenRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["control"])


def _http_error(e: Exception, action: str) -> HTTPException:
    """Map a failure to an HTTP error; unexpected errors are logged"""
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, (ValidationError, FunscriptError)):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, (DeviceError, PatternError)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, HapticSyncError):
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"Failed to {action}: {e}")
    return HTTPException(status_code=500, detail=f"Failed to {action}: {str(e)}")


# Chat text
@router.post("/messages", response_model=CommandListResponse)
async def handle_message(
    request: MessageRequest, controller: SessionController = Depends(get_controller)
):
    """Execute the commands of a complete message"""
    try:
        commands = await controller.handle_message(request.text)
        return CommandListResponse(
            status="success",
            message=f"{len(commands)} commands found",
            commands=commands,
        )
    except Exception as e:
        raise _http_error(e, "handle message")


@router.post("/stream/start", response_model=BaseResponse)
async def stream_start(controller: SessionController = Depends(get_controller)):
    controller.start_generation()
    return BaseResponse(status="success", message="Generation started")


@router.post("/stream/token", response_model=CommandListResponse)
async def stream_token(
    request: TokenRequest, controller: SessionController = Depends(get_controller)
):
    """Feed one streamed token"""
    try:
        commands = await controller.feed_token(request.token)
        return CommandListResponse(
            status="success",
            message=f"{len(commands)} new commands",
            commands=commands,
        )
    except Exception as e:
        raise _http_error(e, "process token")


@router.post("/stream/end", response_model=BaseResponse)
async def stream_end(controller: SessionController = Depends(get_controller)):
    try:
        await controller.end_generation()
        return BaseResponse(status="success", message="Generation ended")
    except Exception as e:
        raise _http_error(e, "end generation")


@router.post("/parse", response_model=CommandListResponse)
async def parse_text(
    request: MessageRequest, controller: SessionController = Depends(get_controller)
):
    """Parse text without executing anything"""
    commands = controller.parse(request.text)
    return CommandListResponse(
        status="success", message=f"{len(commands)} commands found", commands=commands
    )


# Devices
@router.get("/devices", response_model=List[DeviceInfo])
async def get_devices(controller: SessionController = Depends(get_controller)):
    return controller.list_devices()


@router.put("/devices/{device_index}/channel", response_model=BaseResponse)
async def set_device_channel(
    device_index: int,
    request: ChannelRequest,
    controller: SessionController = Depends(get_controller),
):
    try:
        channel = controller.set_device_channel(device_index, request.channel)
        return BaseResponse(
            status="success",
            message=f"Device {device_index} assigned to channel {channel}",
        )
    except Exception as e:
        raise _http_error(e, "set device channel")


@router.put("/devices/{device_index}/inverted", response_model=BaseResponse)
async def set_device_inverted(
    device_index: int,
    request: InvertRequest,
    controller: SessionController = Depends(get_controller),
):
    try:
        controller.set_device_inverted(device_index, request.inverted)
        state = "inverted" if request.inverted else "normal"
        return BaseResponse(status="success", message=f"Device {device_index} {state}")
    except Exception as e:
        raise _http_error(e, "set device inversion")


@router.post("/devices/stop", response_model=BaseResponse)
async def stop_devices(controller: SessionController = Depends(get_controller)):
    try:
        stopped = await controller.stop_devices()
        return BaseResponse(status="success", message=f"Stopped {stopped} devices")
    except Exception as e:
        raise _http_error(e, "stop devices")


# Modes and patterns
@router.get("/modes", response_model=List[ModeInfo])
async def get_modes(controller: SessionController = Depends(get_controller)):
    return controller.list_modes()


@router.put("/modes/{mode_id}", response_model=BaseResponse)
async def update_mode(
    mode_id: str,
    request: ModeUpdateRequest,
    controller: SessionController = Depends(get_controller),
):
    try:
        result = controller.update_mode(
            mode_id,
            enabled=request.enabled,
            intensity_multiplier=request.intensity_multiplier,
        )
        return BaseResponse(
            status="success",
            message=(
                f"Mode '{mode_id}' {'enabled' if result['enabled'] else 'disabled'}, "
                f"multiplier {result['intensity_multiplier']}"
            ),
        )
    except Exception as e:
        raise _http_error(e, "update mode")


@router.get("/patterns/{name}/preview", response_model=PatternPreview)
async def preview_pattern(
    name: str,
    steps: int = Query(20, gt=0, le=1000),
    min: int = Query(0, ge=0, le=100),
    max: int = Query(100, ge=0, le=100),
    dual: bool = False,
    controller: SessionController = Depends(get_controller),
):
    """Sample a pattern the way pattern commands do"""
    try:
        return controller.preview_pattern(name, steps, min, max, dual=dual)
    except Exception as e:
        raise _http_error(e, "preview pattern")


# Media
@router.get("/media", response_model=List[MediaFile])
async def list_media(controller: SessionController = Depends(get_controller)):
    return controller.list_media()


@router.post("/media/load")
async def load_media(
    request: MediaLoadRequest, controller: SessionController = Depends(get_controller)
):
    try:
        return await controller.load_media(request.filename)
    except Exception as e:
        raise _http_error(e, "load media")


@router.post("/media/event")
async def media_event(
    request: MediaEventRequest, controller: SessionController = Depends(get_controller)
):
    """Forward a player event to the sync engine"""
    try:
        event = event_from_dict(
            {
                "type": request.type.value,
                "position": request.position,
                "hidden": request.hidden,
            }
        )
        return await controller.media_event(event)
    except Exception as e:
        raise _http_error(e, "handle media event")


@router.get("/media/status")
async def media_status(controller: SessionController = Depends(get_controller)):
    return controller.engine.describe()


@router.post("/timeline/play")
async def play_timeline(
    request: TimelineRequest, controller: SessionController = Depends(get_controller)
):
    """Render timeline blocks to funscripts and play them"""
    try:
        blocks = [TimelineBlock.from_dict(block.dict()) for block in request.blocks]
        return await controller.play_timeline(blocks)
    except Exception as e:
        raise _http_error(e, "play timeline")


# Settings
@router.put("/settings", response_model=SettingsResponse)
async def update_settings(
    request: SettingsRequest, controller: SessionController = Depends(get_controller)
):
    try:
        changes = {k: v for k, v in request.dict().items() if v is not None}
        return controller.update_settings(**changes)
    except Exception as e:
        raise _http_error(e, "update settings")


@router.get("/status")
async def get_status(controller: SessionController = Depends(get_controller)):
    return controller.get_status()
