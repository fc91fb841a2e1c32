"""Shared text utilities."""

from datetime import UTC, datetime


def truncate(text: str, limit: int, marker: str = "...") -> str:
    """Truncate text to at most `limit` characters, appending a marker when cut.

    Examples:
        >>> truncate("hello world", 8)
        'hello...'
        >>> truncate("short", 10)
        'short'
    """
    if len(text) <= limit:
        return text
    if limit <= len(marker):
        return text[:limit]
    return text[: limit - len(marker)] + marker


def first_line(text: str) -> str:
    """Return the first non-empty line of text, stripped."""
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def flatten(text: str) -> str:
    """Collapse all whitespace runs (including newlines) into single spaces."""
    return " ".join(text.split())


def utc_now() -> datetime:
    return datetime.now(UTC)
