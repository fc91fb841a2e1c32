"""Provider switching command handler."""

from construct.channels.commands.base import CommandContext, CommandDefinition, CommandHandler, CommandResult
from construct.core.errors import UnknownProviderError


class ProviderCommand(CommandHandler):
    """Show or switch the session's provider."""

    @property
    def definition(self) -> CommandDefinition:
        return CommandDefinition(
            name="provider",
            description="Show or switch the provider",
            args_description="[name]",
        )

    async def handle(self, args: str, context: CommandContext) -> CommandResult:
        name = args.strip()
        if not name:
            return self._show_current(context)

        router = context.router
        if not router.providers.has_provider(name):
            raise UnknownProviderError(
                f"Unknown provider. Configured: {', '.join(router.providers.list_providers()) or 'none'}",
                name,
            )
        router.sessions.set_provider(context.room_id, name)
        model = router.providers.get_config(name).model
        return CommandResult(response=f"Switched to: {name}" + (f" ({model})" if model else ""))

    def _show_current(self, context: CommandContext) -> CommandResult:
        current = context.require_session().provider_name
        lines = [f"Active provider: {current or 'none'}"]
        for name in context.router.providers.list_providers():
            marker = "•" if name == current else "-"
            model = context.router.providers.get_config(name).model
            lines.append(f"{marker} {name}" + (f" ({model})" if model else ""))
        return CommandResult(response="\n".join(lines))
