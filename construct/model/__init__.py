"""Construct domain models - pure business entities.

This package contains stable dataclasses and enums representing core business
concepts. These models have no dependencies on infrastructure or application
logic.
"""

from construct.model.events import FeedEvent, FeedEventKind
from construct.model.feed import FeedEntry, FeedMode, FeedState, SquashedLine
from construct.model.message import ChatEvent
from construct.model.session import RoomBinding, make_session_key
from construct.model.task import Plan, Step, StepStatus, Task, WorkflowState

__all__ = [
    # Events
    "FeedEvent",
    "FeedEventKind",
    # Feed
    "FeedEntry",
    "FeedMode",
    "FeedState",
    "SquashedLine",
    # Message
    "ChatEvent",
    # Session
    "RoomBinding",
    "make_session_key",
    # Task
    "Plan",
    "Step",
    "StepStatus",
    "Task",
    "WorkflowState",
]
