"""Tests for command routing system."""

import pytest

from construct.channels.commands.base import (
    CommandContext,
    CommandDefinition,
    CommandHandler,
    CommandResult,
)
from construct.channels.commands.handlers import get_framework_commands
from construct.channels.commands.router import CommandRouter


class MockCommandHandler(CommandHandler):
    """Mock command handler for testing."""

    def __init__(
        self,
        name: str,
        description: str = "Test command",
        hidden: bool = False,
        aliases: list[str] | None = None,
        response: str = "Command executed",
    ) -> None:
        self._name = name
        self._description = description
        self._hidden = hidden
        self._aliases = aliases or []
        self._response = response

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name=self._name,
            description=self._description,
            aliases=self._aliases,
            hidden=self._hidden,
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        return CommandResult(response=self._response)


@pytest.fixture
def router() -> CommandRouter:
    """Create a fresh command router."""
    return CommandRouter()


def test_register_handler(router: CommandRouter) -> None:
    """Test registering a command handler."""
    handler = MockCommandHandler("test")
    router.register(handler)

    assert router.get_handler("test") is handler


def test_get_handler_not_found(router: CommandRouter) -> None:
    """Test getting a non-existent handler returns None."""
    assert router.get_handler("nonexistent") is None


def test_aliases_resolve_to_handler(router: CommandRouter) -> None:
    """Aliases route to the same handler as the command name."""
    handler = MockCommandHandler("approve", aliases=["ok", "yes"])
    router.register(handler)

    assert router.get_handler("ok") is handler
    assert router.get_handler("yes") is handler


def test_register_overwrites_existing(router: CommandRouter) -> None:
    """Registering a command with the same name replaces the old handler."""
    router.register(MockCommandHandler("test", response="First"))
    second = MockCommandHandler("test", response="Second")
    router.register(second)

    assert router.get_handler("test") is second


def test_list_commands_excludes_hidden(router: CommandRouter) -> None:
    """Test list_commands excludes hidden commands by default."""
    router.register(MockCommandHandler("visible"))
    router.register(MockCommandHandler("hidden", hidden=True))

    assert [c.name for c in router.list_commands()] == ["visible"]
    assert {c.name for c in router.list_commands(include_hidden=True)} == {"visible", "hidden"}


def test_framework_commands() -> None:
    """Every chat command is registered with the expected routing flags."""
    router = CommandRouter()
    for handler in get_framework_commands():
        router.register(handler)

    names = {c.name for c in router.list_commands()}
    assert names == {
        "task", "modify", "ask", "approve", "reject", "skip", "stop", "status",
        "provider", "project", "read", "done", "reset", "help",
    }
    assert router.get_handler("stop").definition.preempts
    assert router.get_handler("status").definition.bypass_queue
    assert not router.get_handler("project").definition.requires_project
    assert router.get_handler("task").definition.requires_project
    assert not router.get_handler("ask").definition.bypass_queue
    assert router.get_handler("ok").definition.name == "approve"
