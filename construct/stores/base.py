"""Atomic YAML document storage shared by the per-project state stores."""

import logging
from datetime import UTC, datetime
from pathlib import Path
from threading import Lock
from typing import Any

import yaml

from construct.core.errors import StatePersistenceError

logger = logging.getLogger(__name__)


class YamlDocumentStore:
    """A single YAML document persisted with write-to-temp-then-rename.

    A reader never observes a half-written file: the document is written to
    a sibling temp file and atomically renamed over the target. Write
    failures raise StatePersistenceError; unreadable files are logged and
    treated as absent.
    """

    VERSION = 1

    def __init__(self, path: Path):
        self.storage_file = Path(path)
        self._lock = Lock()

    def _load_unlocked(self) -> dict[str, Any] | None:
        """Load the raw document. Caller must hold self._lock."""
        if not self.storage_file.exists():
            logger.debug(f"Storage file does not exist: {self.storage_file}")
            return None

        try:
            with self.storage_file.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Corrupted storage file {self.storage_file}: {e}")
            return None
        except OSError as e:
            logger.error(f"Unreadable storage file {self.storage_file}: {e}")
            return None

        if not isinstance(data, dict):
            logger.error(f"Invalid storage format (expected dict): {self.storage_file}")
            return None
        return data

    def _save_unlocked(self, data: dict[str, Any]) -> None:
        """Persist the document atomically. Caller must hold self._lock.

        Raises:
            StatePersistenceError: If the file could not be written.
        """
        document = {
            "version": self.VERSION,
            "last_updated": datetime.now(UTC).isoformat(),
            **data,
        }
        temp_file = self.storage_file.with_suffix(".tmp")
        try:
            self.storage_file.parent.mkdir(parents=True, exist_ok=True)
            with temp_file.open("w", encoding="utf-8") as f:
                yaml.safe_dump(
                    document,
                    f,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    indent=2,
                )
            # Atomic rename (POSIX guarantees atomicity)
            temp_file.replace(self.storage_file)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to save {self.storage_file}: {e}", exc_info=True)
            raise StatePersistenceError(f"Could not write {self.storage_file}: {e}", self.storage_file) from e

    def _delete_unlocked(self) -> None:
        try:
            self.storage_file.unlink(missing_ok=True)
        except OSError as e:
            raise StatePersistenceError(f"Could not remove {self.storage_file}: {e}", self.storage_file) from e
