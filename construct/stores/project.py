"""Access to human-authored project files and durable workflow artifacts."""

import logging
import re
from datetime import datetime
from pathlib import Path

from construct.core.errors import StatePersistenceError
from construct.core.paths import ROADMAP_MD, SUMMARY_MD, TASKS_MD
from construct.executor.sandbox import resolve_sandboxed_path

logger = logging.getLogger(__name__)

MAX_READ_CHARS = 20_000
_OPEN_CHECKBOX = re.compile(r"^\s*[-*]\s*\[ \]\s+(.*)$")


class ProjectFiles:
    """Reads roadmap and task files, serves `.read`, and appends the summary log.

    Example:
        >>> files = ProjectFiles(Path("projects/api"))
        >>> files.open_tasks()
        ['input validation']
    """

    def __init__(self, project_path: Path):
        self.project_path = Path(project_path).resolve()

    @property
    def name(self) -> str:
        return self.project_path.name

    def _read_optional(self, relative: str) -> str:
        path = self.project_path / relative
        if not path.is_file():
            return ""
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as e:
            logger.warning(f"Could not read {path}: {e}")
            return ""

    def read_context(self) -> dict[str, str]:
        """Return the roadmap and tasks files (empty strings when missing)."""
        return {
            "roadmap": self._read_optional(str(ROADMAP_MD)),
            "tasks": self._read_optional(str(TASKS_MD)),
        }

    def open_tasks(self) -> list[str]:
        """Return unchecked `- [ ]` items from the tasks file."""
        items = []
        for line in self.read_context()["tasks"].splitlines():
            match = _OPEN_CHECKBOX.match(line)
            if match:
                items.append(match.group(1).strip())
        return items

    def read_file(self, relative_path: str, max_chars: int = MAX_READ_CHARS) -> str:
        """Read a project file for display.

        Raises:
            ValueError: If the path escapes the project.
            FileNotFoundError: If the file does not exist.
        """
        path = resolve_sandboxed_path(self.project_path, relative_path)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {relative_path}")
        text = path.read_text(encoding="utf-8", errors="replace")
        if len(text) > max_chars:
            text = f"{text[:max_chars]}\n[Truncated: showing first {max_chars} of {len(text)} characters]"
        return text

    def append_summary(self, goal: str, summary: str) -> None:
        """Append a completed task's summary to SUMMARY.md.

        Raises:
            StatePersistenceError: If the file could not be appended.
        """
        path = self.project_path / SUMMARY_MD
        entry = f"## [{datetime.now().strftime('%Y-%m-%d %H:%M')}] {goal.strip()}\n\n{summary.strip()}\n\n"
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(entry)
        except OSError as e:
            logger.error(f"Failed to append summary to {path}: {e}")
            raise StatePersistenceError(f"Could not write {path}: {e}", path) from e
