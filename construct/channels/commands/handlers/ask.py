"""One-off question command handler."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult


class AskCommand(CommandHandler):
    """Ask the provider a question about the project without starting a task."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="ask",
            description="Ask a question about the project",
            args_description="<question>",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        answer = await context.router.engine.ask(context.require_session(), args)
        return CommandResult(response=answer)
