"""Chat command system."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult
from construct.channels.commands.router import CommandRouter

__all__ = [
    "CommandContext",
    "CommandDefinition",
    "CommandHandler",
    "CommandResult",
    "CommandRouter",
]
