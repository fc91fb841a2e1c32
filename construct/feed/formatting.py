"""Text rendering of feed state for the outbound status message."""

from pathlib import Path

from construct.core.utils import first_line, flatten, truncate
from construct.model.feed import FeedEntry, FeedMode, FeedState

ACTIVE_HEADER = "🚀 Thinking & doing..."
SQUASHED_HEADER = "🚀 Task Complete"
FINAL_HEADER = "✅ Execution Complete"
IN_PROGRESS_ICON = "🔄"
DONE_ICON = "•"


def quote_output(text: str) -> str:
    """Render output as markdown quote lines.

    Examples:
        >>> quote_output("line one\\nline two")
        '> line one\\n> line two'
    """
    return "\n".join(f"> {line}" if line.strip() else ">" for line in text.strip().splitlines())


def shorten_paths(text: str, root: Path | None) -> str:
    """Strip an absolute project root prefix from paths for display."""
    if root is None:
        return text
    prefix = str(root).rstrip("/")
    return text.replace(prefix + "/", "").replace(prefix, ".")


def snippet(text: str | None, limit: int, root: Path | None = None) -> str | None:
    """Prepare an output snippet: shortened paths, truncated to `limit` characters."""
    if not text or limit <= 0:
        return None
    return truncate(shorten_paths(text.strip(), root), limit)


def summary_line(text: str, limit: int) -> str:
    """Flatten a summary onto one line and truncate it."""
    return truncate(flatten(text), limit)


def _render_entry(entry: FeedEntry, is_last: bool) -> str:
    icon = entry.icon or (IN_PROGRESS_ICON if is_last else DONE_ICON)
    line = f"[{entry.timestamp}] {icon} {entry.text}"
    if entry.output:
        line += "\n" + quote_output(entry.output)
    return line


def render_active(state: FeedState, capacity: int = 15) -> str:
    """Render the Active view: header, task, the last `capacity` entries, then history."""
    lines = [ACTIVE_HEADER]
    if state.task_goal:
        lines.append(f"**Task:** {first_line(state.task_goal)}")
    entries = state.entries[-capacity:]
    if entries:
        lines.append("")
        for i, entry in enumerate(entries):
            lines.append(_render_entry(entry, is_last=i == len(entries) - 1))
    if state.squashed:
        lines.append("")
        lines.append("---")
        lines.extend(f"[{line.timestamp}] {line.text}" for line in state.squashed)
    return "\n".join(lines)


def render_squashed(state: FeedState) -> str:
    """Render the Squashed view: one timestamped line per completed task, newest first."""
    lines = [SQUASHED_HEADER]
    lines.extend(f"[{line.timestamp}] {line.text}" for line in state.squashed)
    return "\n".join(lines)


def render_final(state: FeedState) -> str:
    """Render the Final view: a flat bullet list of completed work, oldest first."""
    lines = [FINAL_HEADER, "", "Summary:"]
    if state.squashed:
        lines.extend(f"• {line.text}" for line in reversed(state.squashed))
    else:
        lines.append("• No tasks were completed.")
    return "\n".join(lines)


def render_feed(state: FeedState, capacity: int = 15) -> str:
    """Render a feed state in its current mode."""
    if state.mode == FeedMode.FINAL:
        return render_final(state)
    if state.mode == FeedMode.SQUASHED:
        return render_squashed(state)
    return render_active(state, capacity)
