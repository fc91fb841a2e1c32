"""Events emitted by the workflow engine and executor for the progress feed."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class FeedEventKind(StrEnum):
    """What happened.

    Task lifecycle kinds drive feed mode transitions; the rest become entries.
    """

    TASK_STARTED = "task_started"
    PLAN_PROPOSED = "plan_proposed"
    PLAN_APPROVED = "plan_approved"
    STEP_STARTED = "step_started"
    STEP_FINISHED = "step_finished"
    COMMAND_EXECUTED = "command_executed"
    ACTIVITY = "activity"
    FAILURE = "failure"
    TASK_SUMMARIZING = "task_summarizing"
    TASK_SUMMARIZED = "task_summarized"
    TASK_REJECTED = "task_rejected"
    TASK_ABORTED = "task_aborted"
    PROJECT_DONE = "project_done"


@dataclass
class FeedEvent:
    """A single progress event.

    Attributes:
        kind: Event kind.
        text: One-line description.
        success: True/False for finished work, None while in progress.
        output: Optional command output snippet.
        icon: Explicit status icon; derived from `success` when omitted.
        timestamp: Local wall-clock time the event was created.
    """

    kind: FeedEventKind
    text: str
    success: bool | None = None
    output: str | None = None
    icon: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
