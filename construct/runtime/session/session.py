"""Live session state for one (room, project) pair."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from construct.model.events import FeedEvent
from construct.model.session import make_session_key
from construct.model.task import Task
from construct.stores.history import CommandHistory
from construct.stores.project import ProjectFiles
from construct.stores.task import TaskStore
from construct.workflow.cancellation import CancellationToken

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """A room's working context for one project.

    Only the session's lane worker mutates `task` and `provider_name`; the
    stop path sets `token` from outside the lane.

    Attributes:
        room_id: Conversation the session reports to.
        project_path: Absolute project root.
        provider_name: Provider used for planning and summaries.
        task_store: Persistence for the in-flight task.
        history: Command history artifact.
        files: Project file access.
        session_id: Unique identifier.
        task: The in-flight task, or None when idle.
        events: Channel of feed events consumed by the session's renderer.
        token: Cancellation token for the current operation.
        created_at: When the session was opened.
    """

    room_id: str
    project_path: Path
    provider_name: str | None
    task_store: TaskStore
    history: CommandHistory
    files: ProjectFiles
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    task: Task | None = None
    events: "asyncio.Queue[FeedEvent]" = field(default_factory=asyncio.Queue, repr=False)
    token: CancellationToken = field(default_factory=CancellationToken, repr=False)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def key(self) -> str:
        return make_session_key(self.room_id, self.project_path)

    @property
    def project_name(self) -> str:
        return self.project_path.name

    def emit(self, event: FeedEvent) -> None:
        """Hand an event to the feed renderer."""
        self.events.put_nowait(event)

    @classmethod
    def open(cls, room_id: str, project_path: Path, provider_name: str | None) -> "Session":
        """Create a session, restoring any task persisted in the project.

        A restored task is normalized so work that was in flight at shutdown
        becomes a resumable halt point.
        """
        project_path = Path(project_path).resolve()
        task_store = TaskStore(project_path)
        session = cls(
            room_id=room_id,
            project_path=project_path,
            provider_name=provider_name,
            task_store=task_store,
            history=CommandHistory(project_path),
            files=ProjectFiles(project_path),
        )

        task = task_store.load()
        if task is not None:
            if task.recover():
                task_store.save(task)
                session.task = task
                logger.info(f"Restored task {task.id} ({task.state.value}) for {session.key}")
            else:
                task_store.clear()
                logger.info(f"Dropped unrecoverable task {task.id} ({task.state.value}) for {session.key}")
        return session
