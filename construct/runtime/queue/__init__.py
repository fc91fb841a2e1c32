"""Per-session lane scheduling."""

from construct.runtime.queue.lane import LaneItem, SessionLane, SessionLanes

__all__ = ["LaneItem", "SessionLane", "SessionLanes"]
