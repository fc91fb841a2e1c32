"""Domain models for the task workflow."""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class WorkflowState(StrEnum):
    """Workflow states of a task.

    Lifecycle flow:
        idle -> planning -> awaiting_approval -> executing -> summarizing -> idle
        awaiting_approval -> planning (modify)
        awaiting_approval -> idle (reject)
        any -> idle (abort)
    """

    IDLE = "idle"
    PLANNING = "planning"
    AWAITING_APPROVAL = "awaiting_approval"
    EXECUTING = "executing"
    SUMMARIZING = "summarizing"


class StepStatus(StrEnum):
    """Status values for a plan step."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.SUCCEEDED, StepStatus.FAILED, StepStatus.SKIPPED)


@dataclass
class Step:
    """One ordered step of a plan.

    Attributes:
        index: Zero-based position in the plan.
        description: Human-readable step description.
        command: Shell command to run, or None for a checkpoint step.
        status: Current step status.
        output: Captured command output (stdout and stderr combined).
        exit_code: Process exit code once the command finished.
        error: Failure reason when the step failed without an exit code.
    """

    index: int
    description: str
    command: str | None = None
    status: StepStatus = StepStatus.PENDING
    output: str = ""
    exit_code: int | None = None
    error: str | None = None

    @property
    def number(self) -> int:
        """One-based step number for display."""
        return self.index + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "description": self.description,
            "command": self.command,
            "status": self.status.value,
            "output": self.output,
            "exit_code": self.exit_code,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Step":
        return cls(
            index=data["index"],
            description=data["description"],
            command=data.get("command"),
            status=StepStatus(data.get("status", StepStatus.PENDING.value)),
            output=data.get("output", ""),
            exit_code=data.get("exit_code"),
            error=data.get("error"),
        )


@dataclass
class Plan:
    """Ordered list of steps proposed by the planning provider.

    Once `approved` is set the step list is frozen; only step statuses change.
    """

    steps: list[Step] = field(default_factory=list)
    raw_text: str = ""
    approved: bool = False

    def next_pending(self) -> Step | None:
        """Return the first step that has not started yet."""
        for step in self.steps:
            if step.status == StepStatus.PENDING:
                return step
        return None

    @property
    def is_complete(self) -> bool:
        return bool(self.steps) and all(step.status.is_terminal for step in self.steps)

    def counts(self) -> dict[StepStatus, int]:
        """Number of steps per status."""
        result = {status: 0 for status in StepStatus}
        for step in self.steps:
            result[step.status] += 1
        return result

    def render(self) -> str:
        """Render the plan as a numbered checklist with status icons."""
        icons = {
            StepStatus.PENDING: "⬜",
            StepStatus.RUNNING: "🔄",
            StepStatus.SUCCEEDED: "✅",
            StepStatus.FAILED: "❌",
            StepStatus.SKIPPED: "⏭",
        }
        lines = []
        for step in self.steps:
            line = f"{icons[step.status]} {step.number}. {step.description}"
            if step.command:
                line += f"\n    `{step.command}`"
            lines.append(line)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "approved": self.approved,
            "raw_text": self.raw_text,
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Plan":
        return cls(
            steps=[Step.from_dict(s) for s in data.get("steps", [])],
            raw_text=data.get("raw_text", ""),
            approved=data.get("approved", False),
        )


@dataclass
class Task:
    """The single in-flight unit of work of a session.

    Tasks are persisted to `.construct/task.yaml` in the project after every
    transition and survive restarts.

    Attributes:
        goal: The natural-language request that started the task.
        state: Current workflow state.
        plan: The proposed (and possibly approved) plan.
        id: Unique identifier.
        created_at: When the task was requested.
        completed_at: When the task finished summarizing.
        error: Last stage failure description, if any.
        halted_at: Index of the step execution halted on.
        awaiting_confirmation: Index of a step waiting for an `ask` confirmation.
        feedback: Modification requests applied during planning.
    """

    goal: str
    state: WorkflowState = WorkflowState.PLANNING
    plan: Plan | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    error: str | None = None
    halted_at: int | None = None
    awaiting_confirmation: int | None = None
    feedback: list[str] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state == WorkflowState.IDLE

    @property
    def is_paused(self) -> bool:
        """True when execution is waiting on a human after a failure or an `ask` step."""
        return self.state == WorkflowState.EXECUTING and (
            self.halted_at is not None or self.awaiting_confirmation is not None
        )

    def recover(self) -> bool:
        """Normalize a task loaded after a restart into a resumable state.

        Work that was in flight when the process died cannot be resumed
        mid-call. Interrupted planning returns to awaiting approval (re-plan
        with `.modify`), a running step becomes a failed halt point, and an
        interrupted summary becomes a paused execution whose steps are all
        terminal, so `.approve` proceeds straight to summarizing.

        Returns:
            False if the task has nothing to resume and should be dropped.
        """
        if self.state == WorkflowState.IDLE:
            return False
        if self.state == WorkflowState.PLANNING:
            self.state = WorkflowState.AWAITING_APPROVAL
            self.error = "planning interrupted by restart"
            return True
        if self.plan is None:
            return self.state == WorkflowState.AWAITING_APPROVAL
        if self.state in (WorkflowState.EXECUTING, WorkflowState.SUMMARIZING):
            for step in self.plan.steps:
                if step.status == StepStatus.RUNNING:
                    step.status = StepStatus.FAILED
                    step.error = "interrupted by restart"
                    self.halted_at = step.index
            self.state = WorkflowState.EXECUTING
        return True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with ISO 8601 datetime strings.

        Returns:
            Dictionary representation suitable for YAML serialization.
        """
        return {
            "id": self.id,
            "goal": self.goal,
            "state": self.state.value,
            "plan": self.plan.to_dict() if self.plan else None,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error": self.error,
            "halted_at": self.halted_at,
            "awaiting_confirmation": self.awaiting_confirmation,
            "feedback": list(self.feedback),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Create instance from dictionary with ISO 8601 datetime strings."""
        return cls(
            id=data["id"],
            goal=data["goal"],
            state=WorkflowState(data["state"]),
            plan=Plan.from_dict(data["plan"]) if data.get("plan") else None,
            created_at=datetime.fromisoformat(data["created_at"]),
            completed_at=datetime.fromisoformat(data["completed_at"]) if data.get("completed_at") else None,
            error=data.get("error"),
            halted_at=data.get("halted_at"),
            awaiting_confirmation=data.get("awaiting_confirmation"),
            feedback=list(data.get("feedback", [])),
        )
