"""Status command handler."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult


class StatusCommand(CommandHandler):
    """Display session, task and queue status."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="status",
            description="Show the session and task status",
            requires_project=False,
            bypass_queue=True,
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        """Execute the status command.

        Args:
            args: Command arguments (unused).
            context: Command execution context.

        Returns:
            CommandResult with formatted status information.
        """
        router = context.router
        session = context.session
        if session is None:
            projects = router.sessions.list_projects()
            lines = ["No project bound to this room. Use .project <name>."]
            if projects:
                lines.append(f"Projects: {', '.join(projects)}")
            return CommandResult(response="\n".join(lines))

        lines = [router.engine.describe(session)]

        pending = router.lanes.pending_count(session.key)
        if router.lanes.is_busy(session.key) or pending:
            lines.append(f"Queue: {'busy' if router.lanes.is_busy(session.key) else 'idle'}, {pending} waiting")

        open_tasks = session.files.open_tasks()
        if open_tasks:
            lines.append(f"Open items in tasks.md: {len(open_tasks)}")

        return CommandResult(response="\n".join(lines))
