"""Session subsystem: live sessions and room bindings."""

from construct.runtime.session.manager import SessionManager
from construct.runtime.session.session import Session

__all__ = ["Session", "SessionManager"]
