import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..commands.mentions import MEDIA_EXTENSIONS
from ..commands.models import MediaAction, MediaCommand
from ..commands.parser import CommandParser
from ..commands.stream import StreamSession
from ..common.exceptions import ValidationError
from ..devices.base import DeviceClient, ServerLauncher
from ..patterns.loader import load_custom_modes
from ..patterns.registry import ModeRegistry
from ..sync.engine import SyncEngine
from ..sync.events import LoadEvent, MediaEvent, PlayEvent, StopEvent
from ..sync.timeline import TimelineBlock, channel_motor_counts, convert_timeline
from .config import SystemConfig
from .dispatcher import CommandDispatcher
from .playback import PatternPlayer
from .session import SessionContext
from .websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)

TIMELINE_MEDIA_NAME = "timeline"


class SessionController:
    """Owns one haptic session: command pipeline, sync engine and front-end link"""

    def __init__(
        self,
        config: SystemConfig,
        client: DeviceClient,
        launcher: Optional[ServerLauncher] = None,
        modes: Optional[ModeRegistry] = None,
        install_signal_handlers: bool = False,
    ):
        self.config = config
        self.session = SessionContext(client, config, modes, launcher)
        self.player = PatternPlayer(self.session)
        self.dispatcher = CommandDispatcher(
            self.session, self.player, media_handler=self.handle_media_command
        )
        self.parser = CommandParser(lambda: self.session.devices.names)
        self.stream = StreamSession(
            self.dispatcher, self.parser, media_loader=self.load_media
        )
        self.engine = SyncEngine(self.session)
        self.ws_manager = WebSocketManager(
            config.network.heartbeat_interval_ms, status_provider=self.get_status
        )

        self.shutdown_event = asyncio.Event()
        self._running = False
        self._install_signal_handlers = install_signal_handlers

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown"""
        for sig in (signal.SIGTERM, signal.SIGINT):
            signal.signal(sig, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        logger.info(f"Received signal {signum}, stopping all devices")
        if not self.shutdown_event.is_set():
            asyncio.get_event_loop().create_task(self.stop())

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the session"""
        try:
            logger.info("Starting session controller")
            custom_file = self.config.assets.custom_modes_file
            if custom_file:
                loaded = load_custom_modes(self.session.modes, custom_file)
                logger.info(f"Custom modes loaded: {', '.join(loaded) or 'none'}")
            await self.ws_manager.start()
            if self._install_signal_handlers:
                self._setup_signal_handlers()
            self._running = True
            logger.info("Session controller started")
        except Exception as e:
            logger.error(f"Failed to start session: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop playback, patterns and pending timers"""
        if self.shutdown_event.is_set():
            return

        logger.info("Stopping session controller")
        self.shutdown_event.set()
        self._running = False
        try:
            self.dispatcher.clear_queue()
            self.session.timers.clear_all()
            await self.engine.close()
            await self.player.stop_all()
            await self.ws_manager.stop()
            logger.info("Session controller stopped")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")
            raise

    # Chat text

    async def handle_message(self, text: str) -> List[Dict[str, Any]]:
        commands = await self.stream.on_message(text)
        return [c.to_dict() for c in commands]

    def start_generation(self) -> None:
        self.stream.generation_started()

    async def feed_token(self, token: str) -> List[Dict[str, Any]]:
        commands = await self.stream.feed_token(token)
        return [c.to_dict() for c in commands]

    async def end_generation(self) -> None:
        await self.stream.generation_ended()

    def parse(self, text: str) -> List[Dict[str, Any]]:
        return [c.to_dict() for c in self.parser.parse(text)]

    # Devices

    def list_devices(self) -> List[Dict[str, Any]]:
        return self.session.devices.describe()

    def set_device_channel(self, device_index: int, channel: Optional[str]) -> str:
        return self.session.devices.set_channel(device_index, channel)

    def set_device_inverted(self, device_index: int, inverted: bool) -> None:
        self.session.devices.set_inverted(device_index, inverted)

    async def stop_devices(self) -> int:
        self.dispatcher.clear_queue()
        return await self.dispatcher.stop_all()

    # Modes

    def list_modes(self) -> List[Dict[str, Any]]:
        return self.session.modes.describe()

    def update_mode(
        self,
        mode_id: str,
        enabled: Optional[bool] = None,
        intensity_multiplier: Optional[float] = None,
    ) -> Dict[str, Any]:
        settings = self.session.modes.update_settings(
            mode_id, enabled=enabled, intensity_multiplier=intensity_multiplier
        )
        return {
            "mode_id": mode_id,
            "enabled": settings.enabled,
            "intensity_multiplier": settings.intensity_multiplier,
        }

    def preview_pattern(
        self, name: str, steps: int, min_value: int, max_value: int, dual: bool = False
    ) -> Dict[str, Any]:
        if steps <= 0:
            raise ValidationError("Steps must be positive")
        modes = self.session.modes
        if dual:
            values, motor2 = modes.generate_dual(name, steps, min_value, max_value)
        else:
            values, motor2 = modes.generate(name, steps, min_value, max_value), None
        preview = {"pattern": name, "found": modes.has_pattern(name), "values": values}
        if motor2 is not None:
            preview["motor2"] = motor2
        return preview

    # Media

    def list_media(self) -> List[Dict[str, Any]]:
        media_dir = self.config.assets.media_dir
        if not media_dir or not Path(media_dir).is_dir():
            logger.warning("Media directory is not configured or missing")
            return []
        return [
            {
                "filename": path.name,
                "has_funscript": self.engine.loader.has_funscript(path.name),
            }
            for path in sorted(Path(media_dir).iterdir())
            if path.is_file() and path.suffix.lower().lstrip(".") in MEDIA_EXTENSIONS
        ]

    async def load_media(self, filename: str) -> Dict[str, Any]:
        """Make ``filename`` the current media item; reloading it is a no-op"""
        if self.engine.media_name == filename and self.engine.loaded:
            return self.engine.describe()

        self.player.cancel_all()
        self.dispatcher.clear_queue()
        await self.engine.dispatch(LoadEvent(media_name=filename))
        await self.ws_manager.broadcast_message(
            {"type": "media", "action": "load", "filename": filename}
        )
        return self.engine.describe()

    async def media_event(self, event: MediaEvent) -> Dict[str, Any]:
        await self.engine.dispatch(event)
        await self.ws_manager.broadcast_status()
        return self.engine.describe()

    async def play_timeline(self, blocks: Iterable[TimelineBlock]) -> Dict[str, Any]:
        """Render timeline blocks and play them against a virtual clock"""
        blocks = list(blocks)
        if not blocks:
            raise ValidationError("Timeline is empty")
        funscripts = convert_timeline(
            blocks, self.session.modes, channel_motor_counts(self.session)
        )
        self.player.cancel_all()
        self.dispatcher.clear_queue()
        await self.engine.dispatch(
            LoadEvent(media_name=TIMELINE_MEDIA_NAME, funscripts=funscripts, virtual=True)
        )
        await self.engine.dispatch(PlayEvent(position_ms=0))
        return self.engine.describe()

    async def handle_media_command(self, command: MediaCommand) -> None:
        if command.action == MediaAction.LIST:
            files = self.list_media()
            logger.info(f"Media files: {', '.join(f['filename'] for f in files) or 'none'}")
            await self.ws_manager.broadcast_message(
                {"type": "media", "action": "list", "files": files}
            )
        elif command.action == MediaAction.PLAY:
            if not command.filename:
                logger.warning("Media play command without a filename")
                return
            await self.load_media(command.filename)
            await self.ws_manager.broadcast_message(
                {"type": "media", "action": "play", "filename": command.filename}
            )
        elif command.action == MediaAction.STOP:
            await self.engine.dispatch(StopEvent())
            await self.dispatcher.stop_all()
            await self.ws_manager.broadcast_message({"type": "media", "action": "stop"})

    # Settings and status

    def update_settings(self, **changes: Any) -> Dict[str, Any]:
        settings = self.session.update_settings(**changes)
        self.engine.apply_settings()
        return {
            "global_intensity": settings.global_intensity,
            "sync_offset_ms": settings.sync_offset_ms,
            "polling_interval_ms": settings.polling_interval_ms,
            "loop_on_end": settings.loop_on_end,
        }

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            **self.session.describe(),
            "queue_length": len(self.dispatcher.queue),
            "media": self.engine.describe(),
        }
