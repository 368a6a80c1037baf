import logging
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple

from ..core.dispatcher import CommandDispatcher
from .mentions import find_media_mention
from .models import Command
from .parser import CommandParser

logger = logging.getLogger(__name__)

MediaLoader = Callable[[str], Awaitable[Any]]


class StreamSession:
    """Turns streamed and completed chat messages into dispatched commands.

    While tokens arrive the accumulated text is re-parsed after every token;
    commands already seen during this generation, keyed by type and device,
    are not dispatched again.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        parser: Optional[CommandParser] = None,
        media_loader: Optional[MediaLoader] = None,
    ):
        self.dispatcher = dispatcher
        self.session = dispatcher.session
        self.parser = parser or CommandParser(lambda: self.session.devices.names)
        self.media_loader = media_loader
        self.text = ""
        self.executed: Set[Tuple[str, Optional[int]]] = set()
        self._mentioned: Set[str] = set()

    def generation_started(self) -> None:
        self.executed.clear()
        self._mentioned.clear()
        self.text = ""

    async def generation_ended(self) -> None:
        self.text = ""
        await self.dispatcher.drain()

    async def feed_token(self, token: str) -> List[Command]:
        """Add a streamed token; returns the commands newly detected"""
        if not token:
            return []
        self.text += token
        await self._check_mention(self.text)

        fresh = []
        for command in self.parser.parse(self.text):
            key = command.dedupe_key
            if key in self.executed:
                continue
            self.executed.add(key)
            fresh.append(command)
            logger.info(f"New command detected: {command.type.value}")
            if command.immediate:
                await self.dispatcher.execute(command)
            else:
                self.dispatcher.enqueue([command])
        return fresh

    async def on_message(self, text: str) -> List[Command]:
        """Handle a completed message, replacing whatever was queued"""
        mentioned = await self._check_mention(text or "")
        commands = self.parser.parse(text or "")
        if not commands and not mentioned:
            return []

        immediate = [c for c in commands if c.immediate]
        device_commands = [c for c in commands if not c.immediate]

        for command in immediate:
            await self.dispatcher.execute(command)

        if not self.session.connected and not mentioned:
            return commands

        if not self.session.media_active:
            self.dispatcher.clear_queue()
            self.text = ""
            await self.dispatcher.stop_all()

        self.dispatcher.clear_queue()
        self.dispatcher.enqueue(device_commands)
        self.executed = {c.dedupe_key for c in device_commands}
        await self.dispatcher.drain()
        return commands

    async def _check_mention(self, text: str) -> Optional[str]:
        filename = find_media_mention(text)
        if filename is None or self.media_loader is None:
            return None
        if filename in self._mentioned:
            return filename
        self._mentioned.add(filename)
        logger.info(f"Detected media mention: {filename}")
        try:
            await self.media_loader(filename)
        except Exception as e:
            logger.error(f"Failed to load mentioned media {filename}: {e}")
        return filename
