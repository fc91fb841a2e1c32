"""Domain models for room-to-project bindings."""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any


def make_session_key(room_id: str, project_path: Path) -> str:
    """Build the unique session key for a (room, project) pair.

    Examples:
        >>> make_session_key("!room:example.org", Path("/srv/projects/api"))
        '!room:example.org::/srv/projects/api'
    """
    return f"{room_id}::{project_path}"


@dataclass
class RoomBinding:
    """Which project (and provider) a room currently talks to.

    Attributes:
        project_path: Absolute path of the bound project.
        provider_name: Provider selected for the room's session.
        bound_at: When the room was bound to this project.
    """

    project_path: Path
    provider_name: str | None
    bound_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with ISO 8601 datetime strings."""
        return {
            "project_path": str(self.project_path),
            "provider_name": self.provider_name,
            "bound_at": self.bound_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RoomBinding":
        return cls(
            project_path=Path(data["project_path"]),
            provider_name=data.get("provider_name"),
            bound_at=datetime.fromisoformat(data["bound_at"]),
        )
