"""Central project path constants.

Single source of truth for project-relative artifact paths.
All paths are relative to the project root unless noted.
"""

from pathlib import PurePosixPath

# ---------------------------------------------------------------------------
# Orchestrator state (framework-managed, hidden from `.read`)
# ---------------------------------------------------------------------------

STATE_DIR = PurePosixPath(".construct")
FEED_YAML = STATE_DIR / "feed.yaml"
TASK_YAML = STATE_DIR / "task.yaml"
HISTORY_MD = STATE_DIR / "history.md"

# ---------------------------------------------------------------------------
# Human-authored project files
# ---------------------------------------------------------------------------

ROADMAP_MD = PurePosixPath("roadmap.md")
TASKS_MD = PurePosixPath("tasks.md")
CONTEXT_FILES = [ROADMAP_MD, TASKS_MD]

# ---------------------------------------------------------------------------
# Durable artifacts written by the workflow
# ---------------------------------------------------------------------------

SUMMARY_MD = PurePosixPath("SUMMARY.md")

# ---------------------------------------------------------------------------
# Orchestrator data directory (relative to system.data_dir)
# ---------------------------------------------------------------------------

SESSIONS_JSON = PurePosixPath("sessions.json")
