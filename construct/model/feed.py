"""Persisted state of a session's progress feed."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class FeedMode(StrEnum):
    """Feed rendering modes.

    Within one task's lifecycle the mode only moves forward:
    active -> squashed -> final.
    """

    ACTIVE = "active"
    SQUASHED = "squashed"
    FINAL = "final"

    @property
    def rank(self) -> int:
        return list(FeedMode).index(self)


@dataclass
class FeedEntry:
    """A timestamped line in the Active view.

    Attributes:
        timestamp: Wall-clock time formatted as HH:MM:SS.
        icon: Status icon, or empty for in-progress entries.
        text: One-line description.
        output: Optional truncated output quoted below the line.
    """

    timestamp: str
    icon: str
    text: str
    output: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "icon": self.icon, "text": self.text, "output": self.output}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedEntry":
        return cls(
            timestamp=data["timestamp"],
            icon=data.get("icon", ""),
            text=data["text"],
            output=data.get("output"),
        )


@dataclass
class SquashedLine:
    """One-line summary of a completed task.

    A line is `pending` from the moment its task starts summarizing until the
    summary (or the abort) replaces its text.
    """

    timestamp: str
    text: str
    pending: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "text": self.text, "pending": self.pending}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SquashedLine":
        return cls(timestamp=data["timestamp"], text=data["text"], pending=data.get("pending", False))


@dataclass
class FeedState:
    """Everything needed to re-render and re-attach a session's feed.

    Attributes:
        mode: Current rendering mode.
        task_goal: Goal of the task the Active block belongs to.
        entries: Active entries, bounded to the configured capacity.
        squashed: Squashed summary lines, newest first.
        message_handle: Opaque transport handle of the outbound message.
    """

    mode: FeedMode = FeedMode.ACTIVE
    task_goal: str = ""
    entries: list[FeedEntry] = field(default_factory=list)
    squashed: list[SquashedLine] = field(default_factory=list)
    message_handle: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.task_goal and not self.entries and not self.squashed

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "task_goal": self.task_goal,
            "entries": [entry.to_dict() for entry in self.entries],
            "squashed": [line.to_dict() for line in self.squashed],
            "message_handle": self.message_handle,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedState":
        return cls(
            mode=FeedMode(data.get("mode", FeedMode.ACTIVE.value)),
            task_goal=data.get("task_goal", ""),
            entries=[FeedEntry.from_dict(e) for e in data.get("entries", [])],
            squashed=[SquashedLine.from_dict(s) for s in data.get("squashed", [])],
            message_handle=data.get("message_handle"),
        )
