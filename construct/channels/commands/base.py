"""Base abstractions for the command system."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from construct.model.message import ChatEvent
    from construct.runtime.router import SessionRouter
    from construct.runtime.session.session import Session


@dataclass
class CommandDefinition:
    """Metadata for a registered command."""

    name: str  # e.g., "task", "approve"
    description: str  # Short description for .help
    aliases: list[str] = field(default_factory=list)
    requires_project: bool = True  # Rejected for rooms without a bound project
    bypass_queue: bool = False  # If True, handle immediately instead of in the session lane
    preempts: bool = False  # If True, cancel the session's in-flight work first
    hidden: bool = False  # If True, omit from .help
    args_description: str | None = None  # e.g., "<goal>" for .task


@dataclass
class CommandContext:
    """Runtime context passed to command handlers."""

    event: "ChatEvent"
    router: "SessionRouter"
    session: "Session | None" = None

    @property
    def room_id(self) -> str:
        return self.event.room_id

    def require_session(self) -> "Session":
        assert self.session is not None, "command requires a bound project"
        return self.session


@dataclass
class CommandResult:
    """Result from a command handler."""

    response: str | None = None  # Text to send back to the room


class CommandHandler(ABC):
    """Base class for command implementations."""

    @property
    @abstractmethod
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        ...

    @abstractmethod
    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        """Execute the command."""
        ...
