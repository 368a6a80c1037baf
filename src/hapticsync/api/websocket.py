import json
import logging

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from ..common.exceptions import HapticSyncError
from ..sync.events import MediaEventType, event_from_dict
from .dependencies import controller_from_state

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

_MEDIA_EVENT_TYPES = {t.value for t in MediaEventType}


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Media front-end link: player events and clock in, status and heartbeat out"""
    try:
        controller = controller_from_state(websocket.app.state)
    except HTTPException as e:
        logger.warning(f"Rejecting websocket connection: {e.detail}")
        await websocket.close(code=1013)
        return

    manager = controller.ws_manager
    client_id = id(websocket)
    await manager.connect(websocket)
    try:
        await websocket.send_json(manager.status_message())

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Received invalid JSON from client {client_id}")
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue
            if not isinstance(message, dict):
                await websocket.send_json(
                    {"type": "error", "message": "Messages must be JSON objects"}
                )
                continue

            logger.debug(f"Received message from client {client_id}: {message}")
            msg_type = str(message.get("type", "")).lower()

            if msg_type == "ping":
                await websocket.send_json({"type": "pong", "client_id": client_id})
            elif msg_type in ("get_state", "status"):
                await websocket.send_json(manager.status_message())
            elif msg_type in _MEDIA_EVENT_TYPES:
                try:
                    event = event_from_dict(message)
                    if event.type == MediaEventType.CLOCK:
                        # clock updates arrive continuously and get no reply
                        await controller.engine.dispatch(event)
                    else:
                        state = await controller.media_event(event)
                        await websocket.send_json({"type": "media_state", "data": state})
                except HapticSyncError as e:
                    await websocket.send_json({"type": "error", "message": str(e)})
            else:
                await websocket.send_json(
                    {"type": "error", "message": f"Unknown message type: {msg_type}"}
                )

    except WebSocketDisconnect:
        logger.info(f"Client {client_id} disconnected normally")
    except Exception as e:
        logger.error(f"WebSocket error for client {client_id}: {e}")
    finally:
        await manager.disconnect(websocket)
