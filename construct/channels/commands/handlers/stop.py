"""Stop and reset command handlers."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult
from construct.core.prompts.notices import NOTHING_TO_STOP, TASK_STOPPED
from construct.core.utils import first_line


class StopCommand(CommandHandler):
    """Abort in-flight work and return the session to idle.

    The router cancels the running operation and drops queued commands
    before this handler runs.
    """

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="stop",
            description="Stop the current task",
            preempts=True,
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        task = await context.router.engine.abort(context.require_session())
        if task is None:
            return CommandResult(response=NOTHING_TO_STOP)
        return CommandResult(response=f"{TASK_STOPPED}\nTask: {first_line(task.goal)}")


class ResetCommand(CommandHandler):
    """Clear task state once queued work has finished."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="reset",
            description="Clear the current task state",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        task = await context.router.engine.abort(context.require_session())
        if task is None:
            return CommandResult(response="Nothing to reset.")
        return CommandResult(response=f"♻️ Task state cleared: {first_line(task.goal)}")
