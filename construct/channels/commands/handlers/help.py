"""Help command handler."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult
from construct.model.message import COMMAND_PREFIX, RAW_PREFIX


class HelpCommand(CommandHandler):
    """Display available commands."""

    @property
    def definition(self) -> CommandDefinition:
        """Command metadata."""
        return CommandDefinition(
            name="help",
            description="Show available commands",
            requires_project=False,
            bypass_queue=True,
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        """Execute the help command.

        Args:
            args: Command arguments (unused).
            context: Command execution context.

        Returns:
            CommandResult with formatted help text.
        """
        commands = context.router.commands.list_commands()
        if not commands:
            return CommandResult(response="No commands available.")

        lines = ["Available commands:\n"]
        for cmd in commands:
            args_hint = f" {cmd.args_description}" if cmd.args_description else ""
            aliases = f" (also {', '.join(COMMAND_PREFIX + a for a in cmd.aliases)})" if cmd.aliases else ""
            lines.append(f"{COMMAND_PREFIX}{cmd.name}{args_hint} - {cmd.description}{aliases}")
        lines.append(f"{RAW_PREFIX}<command> - Run a shell command directly (admins only)")

        return CommandResult(response="\n".join(lines))
