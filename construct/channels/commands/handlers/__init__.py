"""Command handlers for Construct."""

from construct.channels.commands.base import CommandHandler
from construct.channels.commands.handlers.approval import ApproveCommand, RejectCommand, SkipCommand
from construct.channels.commands.handlers.ask import AskCommand
from construct.channels.commands.handlers.done import DoneCommand
from construct.channels.commands.handlers.help import HelpCommand
from construct.channels.commands.handlers.project import ProjectCommand
from construct.channels.commands.handlers.provider import ProviderCommand
from construct.channels.commands.handlers.read import ReadCommand
from construct.channels.commands.handlers.status import StatusCommand
from construct.channels.commands.handlers.stop import ResetCommand, StopCommand
from construct.channels.commands.handlers.task import ModifyCommand, TaskCommand


def get_framework_commands() -> list[CommandHandler]:
    """Return all command handlers for registration.

    Returns:
        List of command handler instances.
    """
    return [
        TaskCommand(),
        ModifyCommand(),
        AskCommand(),
        ApproveCommand(),
        RejectCommand(),
        SkipCommand(),
        StopCommand(),
        StatusCommand(),
        ProviderCommand(),
        ProjectCommand(),
        ReadCommand(),
        DoneCommand(),
        ResetCommand(),
        HelpCommand(),
    ]


__all__ = [
    "ApproveCommand",
    "AskCommand",
    "DoneCommand",
    "get_framework_commands",
    "HelpCommand",
    "ModifyCommand",
    "ProjectCommand",
    "ProviderCommand",
    "ReadCommand",
    "RejectCommand",
    "ResetCommand",
    "SkipCommand",
    "StatusCommand",
    "StopCommand",
    "TaskCommand",
]
