"""Persistence of a project's in-flight task."""

import logging
from pathlib import Path

from construct.core.paths import TASK_YAML
from construct.model.task import Task
from construct.stores.base import YamlDocumentStore

logger = logging.getLogger(__name__)


class TaskStore(YamlDocumentStore):
    """Stores the single non-terminal task of a project in `.construct/task.yaml`.

    Example:
        >>> store = TaskStore(Path("projects/api"))
        >>> store.save(Task(goal="add input validation"))
        >>> store.load().goal
        'add input validation'
        >>> store.clear()
    """

    def __init__(self, project_path: Path):
        """Initialize the task store.

        Args:
            project_path: Path to the project root.
        """
        super().__init__(Path(project_path) / TASK_YAML)

    def load(self) -> Task | None:
        """Return the stored task, or None when there is none or it is unreadable."""
        with self._lock:
            data = self._load_unlocked()
        if not data or not data.get("task"):
            return None
        try:
            return Task.from_dict(data["task"])
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Failed to parse task in {self.storage_file}: {e}")
            return None

    def save(self, task: Task) -> None:
        """Persist the task, replacing any stored one.

        Raises:
            StatePersistenceError: If the file could not be written.
        """
        with self._lock:
            self._save_unlocked({"task": task.to_dict()})
        logger.debug(f"Saved task {task.id} ({task.state.value})")

    def clear(self) -> None:
        """Remove the stored task.

        Raises:
            StatePersistenceError: If the file could not be removed.
        """
        with self._lock:
            self._delete_unlocked()
