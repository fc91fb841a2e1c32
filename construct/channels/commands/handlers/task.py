"""Task request and plan modification command handlers."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult


class TaskCommand(CommandHandler):
    """Start a new task by asking the provider for a plan."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="task",
            description="Plan a new task",
            args_description="<goal>",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        if not args.strip():
            return CommandResult(response="Usage: .task <goal>")
        response = await context.router.engine.start_task(context.require_session(), args)
        return CommandResult(response=response)


class ModifyCommand(CommandHandler):
    """Re-plan the proposed task with feedback."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="modify",
            description="Revise the proposed plan",
            args_description="[feedback]",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        response = await context.router.engine.modify(context.require_session(), args)
        return CommandResult(response=response)
