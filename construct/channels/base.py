"""Base chat transport interface."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from construct.model.message import ChatEvent

EventCallback = Callable[[ChatEvent], Awaitable[None]]


class ChatTransport(ABC):
    """Abstract base class for chat transports.

    Transports handle:
    - Protocol adaptation (platform-specific API to the common ChatEvent format)
    - Sending notices and the editable feed message
    """

    name: str = "base"

    @abstractmethod
    async def start(self) -> None:
        """Start the transport (connect, authenticate, etc.)."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop the transport gracefully."""
        ...

    @abstractmethod
    async def send_message(self, room_id: str, content: str) -> str:
        """Send a message that may be edited later.

        Returns:
            Opaque handle identifying the sent message.
        """
        ...

    @abstractmethod
    async def edit_message(self, room_id: str, handle: str, content: str) -> None:
        """Replace the content of a previously sent message.

        Raises:
            Exception: Transport-specific failure; callers fall back to a new message.
        """
        ...

    async def send_notice(self, room_id: str, content: str) -> None:
        """Send a one-off reply. Defaults to an ordinary message."""
        await self.send_message(room_id, content)

    @abstractmethod
    def on_message(self, callback: EventCallback) -> None:
        """Register a callback for incoming chat events."""
        ...
