"""Project completion command handler."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult


class DoneCommand(CommandHandler):
    """Mark the roadmap complete and finalize the feed."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="done",
            description="Mark the project complete",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        response = await context.router.engine.finish_project(context.require_session())
        return CommandResult(response=response)
