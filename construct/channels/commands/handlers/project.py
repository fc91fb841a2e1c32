"""Project binding command handler."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult


class ProjectCommand(CommandHandler):
    """Bind the room to a project, or show the current binding."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="project",
            description="Switch the room to a project",
            requires_project=False,
            bypass_queue=True,
            args_description="[name]",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        router = context.router
        name = args.strip()
        if not name:
            binding = router.sessions.get_binding(context.room_id)
            lines = [f"Current project: {binding.project_path.name if binding else 'none'}"]
            projects = router.sessions.list_projects()
            if projects:
                lines.append(f"Projects: {', '.join(projects)}")
            return CommandResult(response="\n".join(lines))

        session = router.sessions.bind_room(context.room_id, name)
        router.attach_feed(session)

        response = f"📁 Now working on {session.project_name}"
        if session.task is not None:
            response += f"\nResumed task ({session.task.state.value}). Use .status for details."
        return CommandResult(response=response)
