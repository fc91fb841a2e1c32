"""Session router: dispatches inbound chat events to per-session lanes."""

import asyncio
import logging
from dataclasses import dataclass

from construct.channels.base import ChatTransport
from construct.channels.commands.base import CommandContext, CommandHandler
from construct.channels.commands.router import CommandRouter
from construct.core.config.models import FeedConfig, LoggingConfig
from construct.core.errors import ConstructError, UnknownProjectError, WorkflowStageError
from construct.core.logging import setup_project_logger
from construct.core.prompts.notices import STAGE_FAILED_TEMPLATE
from construct.executor.runner import CommandExecutor
from construct.feed.renderer import FeedRenderer
from construct.model.message import ChatEvent
from construct.providers.client import ProviderClient
from construct.runtime.queue.lane import LaneItem, SessionLanes
from construct.runtime.session.manager import SessionManager
from construct.runtime.session.session import Session
from construct.stores.feed import FeedStore
from construct.workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)


@dataclass
class RouteResult:
    """Outcome of routing one inbound event.

    Accepted events have been handled or queued; rejected events caused no
    state change.
    """

    accepted: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> "RouteResult":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: str) -> "RouteResult":
        return cls(accepted=False, reason=reason)


class SessionRouter:
    """Resolves the session for each chat event and runs its command.

    Routing rules:
    - Commands of one session run one at a time in arrival order, in the
      session's lane; different sessions run in parallel
    - Read-only commands (`bypass_queue`) answer immediately
    - `.stop` cancels the session's running operation, drops its queued
      commands, and runs the abort next
    - `,<command>` runs a raw shell command for admin principals

    The router also owns one FeedRenderer task per session, which consumes
    the session's event channel.
    """

    def __init__(
        self,
        transport: ChatTransport,
        sessions: SessionManager,
        engine: WorkflowEngine,
        commands: CommandRouter,
        lanes: SessionLanes | None = None,
        feed_config: FeedConfig | None = None,
        logging_config: LoggingConfig | None = None,
    ):
        """Initialize the router.

        Args:
            transport: Chat transport used for notices and feed messages.
            sessions: Session registry and room bindings.
            engine: Workflow engine running task transitions.
            commands: Registered command handlers.
            lanes: Per-session lanes; a default-sized one is created if omitted.
            feed_config: Feed rendering settings.
            logging_config: Enables per-project log files when `per_project` is set.
        """
        self.transport = transport
        self.sessions = sessions
        self.engine = engine
        self.commands = commands
        self.lanes = lanes or SessionLanes()
        self.feed_config = feed_config or FeedConfig()
        self.logging_config = logging_config
        self._feeds: dict[str, asyncio.Task] = {}

    @property
    def providers(self) -> ProviderClient:
        return self.engine.providers

    @property
    def executor(self) -> CommandExecutor:
        return self.engine.executor

    async def route(self, event: ChatEvent) -> RouteResult:
        """Route one inbound event.

        Returns:
            RouteResult; rejected events leave every session untouched.
        """
        if event.is_blank:
            return RouteResult.rejected("empty message")

        if event.is_raw_command:
            return self._route_raw(event)

        if not event.is_command:
            return RouteResult.rejected("not a command (commands start with '.'; try .help)")

        name, args = event.parse_command()
        handler = self.commands.get_handler(name)
        if handler is None:
            return RouteResult.rejected(f"unknown command: .{name}")
        definition = handler.definition

        session: Session | None = None
        try:
            session = self.sessions.get_session(event.room_id)
        except UnknownProjectError as e:
            if definition.requires_project:
                return RouteResult.rejected(str(e))
        if session is not None:
            self.attach_feed(session)

        context = CommandContext(event=event, router=self, session=session)

        if definition.preempts and session is not None:
            session.token.cancel()
            self.lanes.preempt(session.key, lambda: self._dispatch(handler, args, context), label=definition.name)
            logger.info(f"Preempted {session.key} for .{definition.name}")
            return RouteResult.ok()

        if definition.bypass_queue or session is None:
            await self._dispatch(handler, args, context)
            return RouteResult.ok()

        self.lanes.enqueue(
            LaneItem(
                session_key=session.key,
                job=lambda: self._dispatch(handler, args, context),
                label=definition.name,
            )
        )
        return RouteResult.ok()

    def _route_raw(self, event: ChatEvent) -> RouteResult:
        if not self.executor.is_admin(event.sender):
            logger.warning(f"Raw command rejected for non-admin {event.sender} in {event.room_id}")
            return RouteResult.rejected("raw commands are restricted to admins")
        command = event.raw_command()
        try:
            session = self.sessions.get_session(event.room_id)
        except UnknownProjectError as e:
            return RouteResult.rejected(str(e))
        self.attach_feed(session)

        self.lanes.enqueue(
            LaneItem(
                session_key=session.key,
                job=lambda: self._run_raw(session, event.sender, command),
                label="raw",
            )
        )
        return RouteResult.ok()

    async def _run_raw(self, session: Session, principal: str, command: str) -> None:
        try:
            outcome = await self.executor.execute_raw(
                command, session.project_path, principal, listener=session.emit
            )
        except ConstructError as e:
            session.history.log_command(command, str(e), success=False, note=f"raw by {principal}")
            await self._notify(session.room_id, f"⚠️ {e}")
            return
        output = outcome.format()
        session.history.log_command(command, output, success=outcome.success, note=f"raw by {principal}")
        await self._notify(session.room_id, f"```\n{output}\n```")

    async def _dispatch(self, handler: CommandHandler, args: str, context: CommandContext) -> None:
        """Run a handler and turn its result or failure into a room notice."""
        name = handler.definition.name
        try:
            result = await handler.handle(args, context)
        except WorkflowStageError as e:
            await self._notify(context.room_id, STAGE_FAILED_TEMPLATE.format(stage=e.stage, cause=e.cause))
            return
        except ConstructError as e:
            logger.info(f".{name} in {context.room_id} refused: {e}")
            await self._notify(context.room_id, f"⚠️ {e}")
            return
        except Exception as e:
            logger.error(f".{name} in {context.room_id} failed: {e}", exc_info=True)
            await self._notify(context.room_id, f"❌ Internal error while running .{name}: {e}")
            return

        if result.response:
            await self._notify(context.room_id, result.response)

    async def _notify(self, room_id: str, text: str) -> None:
        try:
            await self.transport.send_notice(room_id, text)
        except Exception as e:
            logger.error(f"Failed to send notice to {room_id}: {e}")

    def attach_feed(self, session: Session) -> None:
        """Start the session's feed renderer if it is not running yet."""
        running = self._feeds.get(session.key)
        if running is not None and not running.done():
            return

        if self.logging_config is not None and self.logging_config.per_project:
            setup_project_logger(
                session.project_name,
                self.logging_config.directory,
                self.logging_config.max_size_mb,
                self.logging_config.backup_count,
            ).info(f"Session {session.session_id} attached in {session.room_id}")

        renderer = FeedRenderer(
            session.room_id,
            self.transport,
            FeedStore(session.project_path),
            self.feed_config,
            project_root=session.project_path,
        )
        self._feeds[session.key] = asyncio.create_task(
            self._run_feed(renderer, session), name=f"feed:{session.key}"
        )

    async def _run_feed(self, renderer: FeedRenderer, session: Session) -> None:
        if renderer.state.message_handle:
            try:
                await renderer.refresh()
            except Exception as e:
                logger.warning(f"Could not refresh reattached feed for {session.key}: {e}")
        await renderer.run(session.events)

    async def wait_idle(self, session: Session) -> None:
        """Wait until the session's lane is empty and its feed has caught up."""
        await self.lanes.join(session.key)
        await session.events.join()

    async def shutdown(self) -> None:
        """Cancel lane work and stop every feed renderer."""
        await self.lanes.close()
        for task in self._feeds.values():
            task.cancel()
        await asyncio.gather(*self._feeds.values(), return_exceptions=True)
        self._feeds.clear()
