"""Runtime services for Construct.

This package provides session management, per-session lanes and routing.
"""

# Note: SessionRouter not imported here to avoid circular dependency
# Import it directly: from construct.runtime.router import SessionRouter

from construct.runtime.queue.lane import LaneItem, SessionLane, SessionLanes
from construct.runtime.session.manager import SessionManager
from construct.runtime.session.session import Session

__all__ = [
    "LaneItem",
    "Session",
    "SessionLane",
    "SessionLanes",
    "SessionManager",
]
