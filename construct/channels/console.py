"""Line-based console transport for running Construct locally."""

import asyncio
import itertools
import logging
import sys

from construct.channels.base import ChatTransport, EventCallback
from construct.model.message import ChatEvent

logger = logging.getLogger(__name__)


class ConsoleTransport(ChatTransport):
    """Reads commands from stdin and prints replies to stdout.

    Every line typed becomes a ChatEvent in a single room. Feed message edits
    are printed in full, prefixed with the message handle.
    """

    name = "console"

    def __init__(self, room_id: str = "console", sender: str = "local"):
        self.room_id = room_id
        self.sender = sender
        self._callback: EventCallback | None = None
        self._reader: asyncio.Task | None = None
        self._handles = itertools.count(1)
        self._running = False

    def on_message(self, callback: EventCallback) -> None:
        self._callback = callback

    async def start(self) -> None:
        self._running = True
        self._reader = asyncio.create_task(self._read_loop())
        logger.info(f"Console transport started (room={self.room_id}, sender={self.sender})")

    async def stop(self) -> None:
        self._running = False
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass

    async def wait_closed(self) -> None:
        """Wait until stdin is exhausted or the transport is stopped."""
        if self._reader is not None:
            await asyncio.wait({self._reader})

    async def send_message(self, room_id: str, content: str) -> str:
        handle = str(next(self._handles))
        print(f"\n[#{handle}]\n{content}\n", flush=True)
        return handle

    async def edit_message(self, room_id: str, handle: str, content: str) -> None:
        print(f"\n[#{handle} edited]\n{content}\n", flush=True)

    async def send_notice(self, room_id: str, content: str) -> None:
        print(f"\n{content}\n", flush=True)

    async def _read_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while self._running:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                logger.info("Console input closed")
                return
            if self._callback is None:
                continue
            await self._callback(ChatEvent(room_id=self.room_id, sender=self.sender, content=line.rstrip("\n")))
