"""Append-only markdown log of commands run in a project."""

import logging
from datetime import datetime
from pathlib import Path
from threading import Lock

from construct.core.errors import StatePersistenceError
from construct.core.paths import HISTORY_MD
from construct.core.utils import truncate

logger = logging.getLogger(__name__)

OUTPUT_LIMIT = 1000


class CommandHistory:
    """Records every executed command with its outcome in `.construct/history.md`.

    Entries look like::

        ## [2026-03-01 14:02:11]
        ✅ **Command**: `cargo test`
        ```
        test result: ok. 12 passed
        ```
    """

    def __init__(self, project_path: Path):
        self.path = Path(project_path) / HISTORY_MD
        self._lock = Lock()

    def log_command(self, command: str, output: str, success: bool, note: str | None = None) -> None:
        """Append one command entry.

        Args:
            command: The command line.
            output: Combined output, truncated in the log.
            success: Whether the command succeeded.
            note: Optional context such as the step number or admin principal.

        Raises:
            StatePersistenceError: If the log could not be appended.
        """
        icon = "✅" if success else "❌"
        lines = [f"## [{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}]"]
        if note:
            lines.append(f"_{note}_")
        lines.append(f"{icon} **Command**: `{command}`")
        body = truncate(output.strip(), OUTPUT_LIMIT)
        if body:
            lines.extend(["```", body, "```"])
        self._append("\n".join(lines) + "\n\n")

    def log_note(self, text: str) -> None:
        """Append a free-form timestamped entry."""
        self._append(f"## [{datetime.now().strftime('%Y-%m-%d %H:%M:%S')}]\n{text.strip()}\n\n")

    def tail(self, max_chars: int) -> str:
        """Return the last `max_chars` characters of the log, starting at an entry boundary."""
        if max_chars <= 0 or not self.path.exists():
            return ""
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not read command history {self.path}: {e}")
            return ""
        if len(text) <= max_chars:
            return text.strip()
        window = text[-max_chars:]
        boundary = window.find("## [")
        return (window[boundary:] if boundary >= 0 else window).strip()

    def _append(self, text: str) -> None:
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(text)
            except OSError as e:
                logger.error(f"Failed to append to {self.path}: {e}")
                raise StatePersistenceError(f"Could not append to {self.path}: {e}", self.path) from e
