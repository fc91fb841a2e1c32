"""File read passthrough command handler."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult


class ReadCommand(CommandHandler):
    """Show a file from the bound project."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="read",
            description="Show a project file",
            bypass_queue=True,
            args_description="<path>",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        path = args.strip()
        if not path:
            return CommandResult(response="Usage: .read <path>")
        try:
            content = context.require_session().files.read_file(path)
        except (ValueError, FileNotFoundError) as e:
            return CommandResult(response=f"Cannot read {path}: {e}")
        return CommandResult(response=f"📄 {path}\n```\n{content}\n```")
