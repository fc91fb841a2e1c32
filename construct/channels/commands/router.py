"""Command registry keyed by name and alias."""

from construct.channels.commands.base import CommandDefinition, CommandHandler


class CommandRouter:
    """Maps command names and aliases to registered handlers."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._aliases: dict[str, str] = {}

    def register(self, handler: CommandHandler) -> None:
        """Register a command handler under its name and aliases.

        Args:
            handler: Command handler to register.
        """
        definition = handler.definition
        self._handlers[definition.name] = handler
        for alias in definition.aliases:
            self._aliases[alias] = definition.name

    def get_handler(self, command_name: str) -> CommandHandler | None:
        """Get handler for a command name or alias.

        Args:
            command_name: Name of the command, without the prefix.

        Returns:
            Command handler if found, None otherwise.
        """
        name = self._aliases.get(command_name, command_name)
        return self._handlers.get(name)

    def list_commands(self, include_hidden: bool = False) -> list[CommandDefinition]:
        """List all registered commands.

        Args:
            include_hidden: Whether to include hidden commands.

        Returns:
            List of command definitions.
        """
        return [
            h.definition
            for h in self._handlers.values()
            if include_hidden or not h.definition.hidden
        ]
