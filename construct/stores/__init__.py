"""Per-project persistence: task and feed state, command history, project files."""

from construct.stores.feed import FeedStore
from construct.stores.history import CommandHistory
from construct.stores.project import ProjectFiles
from construct.stores.task import TaskStore

__all__ = [
    "CommandHistory",
    "FeedStore",
    "ProjectFiles",
    "TaskStore",
]
