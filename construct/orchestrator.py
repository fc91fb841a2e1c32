"""Orchestrator wiring configuration, transport and the session router."""

import logging

from construct.channels.base import ChatTransport
from construct.channels.commands.handlers import get_framework_commands
from construct.channels.commands.router import CommandRouter
from construct.core.config import Config
from construct.core.errors import ConstructError
from construct.executor.runner import CommandExecutor
from construct.model.message import ChatEvent
from construct.providers.client import ProviderClient
from construct.runtime.queue.lane import SessionLanes
from construct.runtime.router import RouteResult, SessionRouter
from construct.runtime.session.manager import SessionManager
from construct.workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)


class ConstructOrchestrator:
    """Builds the components from configuration and connects them to a transport."""

    def __init__(self, config: Config, transport: ChatTransport):
        """Initialize the orchestrator.

        Args:
            config: Loaded application configuration.
            transport: Chat transport delivering events and receiving replies.
        """
        self.config = config
        self.transport = transport

        projects_root = config.system.projects_dir
        projects_root.mkdir(parents=True, exist_ok=True)

        self.providers = ProviderClient(config.providers)
        self.executor = CommandExecutor(
            config.commands,
            projects_root,
            admins=config.system.admin,
            config=config.executor,
        )
        self.engine = WorkflowEngine(self.providers, self.executor, config.workflow)
        self.sessions = SessionManager(config.system.data_dir, projects_root, config.default_provider)

        self.commands = CommandRouter()
        for handler in get_framework_commands():
            self.commands.register(handler)

        self.router = SessionRouter(
            transport,
            self.sessions,
            self.engine,
            self.commands,
            lanes=SessionLanes(config.lanes.max_concurrency),
            feed_config=config.feed,
            logging_config=config.logging,
        )

        logger.info(
            f"Orchestrator initialized: {len(self.providers.list_providers())} provider(s), "
            f"projects under {projects_root}"
        )

    async def start(self) -> None:
        """Reattach feeds of bound rooms and start the transport."""
        for room_id in self.sessions.list_bindings():
            try:
                session = self.sessions.get_session(room_id)
            except ConstructError as e:
                logger.warning(f"Skipping binding for {room_id}: {e}")
                continue
            self.router.attach_feed(session)
            logger.info(f"Restored {room_id} -> {session.project_name}")

        self.transport.on_message(self.on_event)
        await self.transport.start()
        logger.info(f"Transport {self.transport.name} started")

    async def stop(self) -> None:
        """Stop the transport, then cancel in-flight work.

        Logs errors but does not raise - shutdown should complete.
        """
        try:
            await self.transport.stop()
        except Exception as e:
            logger.error(f"Error stopping transport: {e}")
        await self.router.shutdown()
        logger.info("Orchestrator stopped")

    async def on_event(self, event: ChatEvent) -> RouteResult:
        """Route an inbound event and tell the room when a command was rejected."""
        result = await self.router.route(event)
        if not result.accepted:
            logger.debug(f"Rejected event in {event.room_id}: {result.reason}")
            # Plain chatter is ignored silently; commands get an answer
            if event.is_command or event.is_raw_command:
                await self.transport.send_notice(event.room_id, f"⚠️ {result.reason}")
        return result
