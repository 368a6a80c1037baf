import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Set

from fastapi import WebSocket

from .config import SystemDefaults

logger = logging.getLogger(__name__)

StatusProvider = Callable[[], Dict[str, Any]]


class WebSocketManager:
    """Media front-end connections: status pushes and a liveness heartbeat.

    Messages fan out to every connected player concurrently; a socket whose
    send fails is dropped instead of holding up the others.
    """

    def __init__(
        self,
        heartbeat_interval_ms: int = SystemDefaults.DEFAULT_WS_HEARTBEAT_MS,
        status_provider: Optional[StatusProvider] = None,
    ):
        self.active_connections: Set[WebSocket] = set()
        self.heartbeat_interval = heartbeat_interval_ms / 1000
        self.status_provider = status_provider
        self._heartbeat_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"Player connected ({len(self.active_connections)} active)")

    async def disconnect(self, websocket: WebSocket) -> None:
        if websocket not in self.active_connections:
            return
        self.active_connections.discard(websocket)
        logger.info(f"Player disconnected ({len(self.active_connections)} active)")

    def status_message(self) -> Optional[Dict[str, Any]]:
        if self.status_provider is None:
            return None
        return {"type": "status", "data": self.status_provider()}

    async def broadcast_message(self, message: Dict[str, Any]) -> int:
        """Send ``message`` to every player; returns how many received it"""
        targets: List[WebSocket] = list(self.active_connections)
        if not targets:
            return 0

        results = await asyncio.gather(
            *(ws.send_json(message) for ws in targets), return_exceptions=True
        )
        delivered = 0
        for websocket, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(f"Dropping player after failed {message.get('type')} send: {result}")
                await self.disconnect(websocket)
            else:
                delivered += 1
        return delivered

    async def broadcast_status(self) -> int:
        message = self.status_message()
        if message is None:
            return 0
        return await self.broadcast_message(message)

    async def start(self) -> None:
        if self.running:
            return
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info(f"Player heartbeat every {self.heartbeat_interval:.1f}s")

    async def stop(self) -> None:
        """Cancel the heartbeat and close every player connection"""
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None

        for websocket in list(self.active_connections):
            try:
                await websocket.close()
            except Exception as e:
                logger.error(f"Error closing player connection: {e}")
        self.active_connections.clear()

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.broadcast_message(
                    {
                        "type": "heartbeat",
                        "timestamp": time.time() * 1000,
                        "connections": len(self.active_connections),
                    }
                )
            except Exception as e:
                logger.error(f"Heartbeat error: {e}")
