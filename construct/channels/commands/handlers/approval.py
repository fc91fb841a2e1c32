"""Approve, reject and skip command handlers."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult


class ApproveCommand(CommandHandler):
    """Run the proposed plan, resume a halted one, or confirm an `ask` step."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="approve",
            description="Run the plan, retry a failed step, or confirm a pending command",
            aliases=["ok", "yes"],
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        response = await context.router.engine.approve(context.require_session())
        return CommandResult(response=response)


class RejectCommand(CommandHandler):
    """Drop the proposed plan."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="reject",
            description="Discard the proposed plan",
            aliases=["no"],
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        response = await context.router.engine.reject(context.require_session())
        return CommandResult(response=response)


class SkipCommand(CommandHandler):
    """Skip a halted or confirmation-pending step and continue."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="skip",
            description="Skip the failed or pending step and continue",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        response = await context.router.engine.skip(context.require_session())
        return CommandResult(response=response)
