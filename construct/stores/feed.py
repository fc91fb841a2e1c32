"""Persistence of a project's progress feed."""

import logging
from pathlib import Path

from construct.core.paths import FEED_YAML
from construct.model.feed import FeedState
from construct.stores.base import YamlDocumentStore

logger = logging.getLogger(__name__)


class FeedStore(YamlDocumentStore):
    """Stores a session's FeedState in `.construct/feed.yaml`."""

    def __init__(self, project_path: Path):
        super().__init__(Path(project_path) / FEED_YAML)

    def load(self) -> FeedState | None:
        with self._lock:
            data = self._load_unlocked()
        if not data or not data.get("feed"):
            return None
        try:
            return FeedState.from_dict(data["feed"])
        except (KeyError, ValueError, TypeError) as e:
            logger.error(f"Failed to parse feed in {self.storage_file}: {e}")
            return None

    def save(self, state: FeedState) -> None:
        """Persist the feed state.

        Raises:
            StatePersistenceError: If the file could not be written.
        """
        with self._lock:
            self._save_unlocked({"feed": state.to_dict()})
