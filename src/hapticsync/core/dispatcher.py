import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Iterable, Optional

from ..commands.models import (
    Command,
    CommandType,
    MediaCommand,
    SystemAction,
    SystemCommand,
)
from ..devices.base import Capability
from .playback import OSCILLATE, VIBRATE, PatternPlayer, StepPlan
from .session import SessionContext

logger = logging.getLogger(__name__)

MediaHandler = Callable[[MediaCommand], Awaitable[Any]]


class CommandDispatcher:
    """Executes parsed commands against the connected devices.

    System and media commands run immediately, even while disconnected.
    Device commands go through a FIFO drained by a single consumer; the
    drain drops commands while the client is disconnected or media sync
    owns the devices.
    """

    def __init__(
        self,
        session: SessionContext,
        player: Optional[PatternPlayer] = None,
        media_handler: Optional[MediaHandler] = None,
    ):
        self.session = session
        self.player = player or PatternPlayer(session)
        self.media_handler = media_handler
        self.queue: Deque[Command] = deque()
        self.is_executing = False
        self.is_starting_server = False

    def enqueue(self, commands: Iterable[Command]) -> None:
        for command in commands:
            self.queue.append(command)

    def clear_queue(self) -> None:
        self.queue.clear()

    async def drain(self) -> None:
        """Execute queued commands one at a time; re-entrant calls return early"""
        if self.is_executing or not self.queue:
            return
        self.is_executing = True
        try:
            while self.queue:
                command = self.queue.popleft()
                if command.immediate:
                    logger.info(f"Skipping {command.type.value} command in queue")
                    continue
                if self.session.media_active:
                    logger.info(f"Skipping {command.type.value}: media sync is active")
                    continue
                if not self.session.connected:
                    logger.info(f"Skipping {command.type.value}: not connected")
                    continue
                await self.execute(command)
        finally:
            self.is_executing = False

    async def execute(self, command: Command) -> None:
        """Execute one command; failures are logged, never raised"""
        logger.debug(f"Executing command {command.to_dict()}")

        if command.type == CommandType.SYSTEM:
            await self.execute_system(command)
            return
        if command.type == CommandType.MEDIA:
            await self._execute_media(command)
            return

        if not self.session.connected or len(self.session.devices) == 0:
            logger.info(f"Cannot execute {command.type.value}: not connected or no devices")
            return

        position = getattr(command, "device_index", None) or 0
        device = self.session.device_at(position)
        if device is None:
            logger.info(f"No device found at position {position}")
            return

        try:
            if command.type == CommandType.VIBRATE:
                if command.motor_index >= device.motor_count:
                    logger.info(f"{device.display_name} has no motor {command.motor_index}")
                    return
                try:
                    await device.vibrate(command.intensity / 100)
                except Exception as e:
                    logger.debug(f"{device.display_name}: vibrate failed ({e}), using scalar")
                    motor = device.vibrate_attributes[command.motor_index]
                    await device.scalar(motor.index, command.intensity / 100)
                logger.info(f"{device.display_name} vibrating at {command.intensity}%")

            elif command.type == CommandType.OSCILLATE:
                if not device.can(Capability.OSCILLATE):
                    logger.info(f"{device.display_name} cannot oscillate, skipping")
                    return
                await device.oscillate(command.intensity / 100)
                logger.info(f"{device.display_name} oscillating at {command.intensity}%")

            elif command.type == CommandType.LINEAR:
                if not device.can(Capability.LINEAR):
                    logger.info(f"{device.display_name} has no linear capability, skipping")
                    return
                await device.linear(command.end_pos / 100, command.duration)
                logger.info(
                    f"{device.display_name} linear stroke {command.start_pos}% to {command.end_pos}%"
                )

            elif command.type == CommandType.STOP:
                await self.stop_all()

            elif command.type in (CommandType.VIBRATE_PATTERN, CommandType.OSCILLATE_PATTERN):
                action = VIBRATE if command.type == CommandType.VIBRATE_PATTERN else OSCILLATE
                plan = StepPlan(
                    values=list(command.pattern),
                    intervals=list(command.intervals),
                    loop=command.loop,
                    action=action,
                )
                await self.player.play(position, plan, name=command.type.value)

            elif command.type == CommandType.PRESET:
                await self.player.play_preset(position, command.name)

            elif command.type == CommandType.WAVEFORM:
                await self.player.play_waveform(
                    position,
                    command.pattern,
                    command.min,
                    command.max,
                    command.duration,
                    command.cycles,
                )

            elif command.type == CommandType.GRADIENT:
                await self.player.play_gradient(
                    position,
                    command.start,
                    command.end,
                    command.duration,
                    command.hold,
                    command.release,
                )

            elif command.type == CommandType.SEQUENCE:
                sequence = self.session.modes.get_sequence(command.name)
                if sequence is None:
                    logger.warning(f"Sequence '{command.name}' not found in enabled modes")
                    return
                await self.player.play_sequence(position, sequence)

        except Exception as e:
            logger.error(f"Command {command.type.value} failed on {device.display_name}: {e}")

    async def stop_all(self) -> int:
        """Cancel patterns and zero every device"""
        return await self.player.stop_all()

    async def _execute_media(self, command: MediaCommand) -> None:
        if self.media_handler is None:
            logger.warning(f"No media handler for media {command.action.value}")
            return
        try:
            await self.media_handler(command)
        except Exception as e:
            logger.error(f"Media command {command.action.value} failed: {e}")

    # Device server control

    async def execute_system(self, command: SystemCommand) -> None:
        try:
            if command.action == SystemAction.START:
                await self._start_server()
            elif command.action == SystemAction.CONNECT:
                await self._connect()
            elif command.action == SystemAction.DISCONNECT:
                await self._disconnect()
        except Exception as e:
            logger.error(f"System command {command.action.value} failed: {e}")

    async def _start_server(self) -> None:
        if self.is_starting_server:
            logger.info("Device server is already being started, skipping duplicate request")
            return
        launcher = self.session.launcher
        if launcher is None:
            logger.warning("Cannot start device server: no launcher configured")
            return

        dispatch = self.session.config.dispatch
        self.is_starting_server = True
        try:
            result = await launcher.start()
            if result.success:
                logger.info(f"Device server started (PID: {result.pid})")
                self.session.timers.set_timeout(
                    self._auto_connect, dispatch.auto_connect_delay_ms
                )
            else:
                logger.warning(f"Failed to start device server: {result.error or 'unknown error'}")
        except Exception as e:
            logger.error(f"Error starting device server: {e}")
        finally:
            self.session.timers.set_timeout(
                self._reset_start_guard, dispatch.system_cooldown_ms
            )

    def _reset_start_guard(self) -> None:
        self.is_starting_server = False
        logger.debug("Device server start guard reset")

    async def _auto_connect(self) -> None:
        if not self.session.connected:
            await self._connect()

    async def _connect(self) -> None:
        if self.session.connected:
            logger.info("Already connected")
            return
        try:
            await self.session.client.connect()
            logger.info("Connected to device server")
        except Exception as e:
            logger.error(f"Connection failed: {e}")

    async def _disconnect(self) -> None:
        if not self.session.connected:
            logger.info("Not connected")
            return
        self.player.cancel_all()
        self.clear_queue()
        try:
            await self.session.client.disconnect()
            logger.info("Disconnected from device server")
        except Exception as e:
            logger.error(f"Disconnect failed: {e}")
