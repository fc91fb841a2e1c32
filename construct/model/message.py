"""Unified inbound chat event format."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

COMMAND_PREFIX = "."
RAW_PREFIX = ","


@dataclass
class ChatEvent:
    """An inbound chat message from a transport.

    Attributes:
        room_id: Conversation the message arrived in.
        sender: Principal that sent it (compared against the admin list).
        content: Raw message text.
        id: Transport message id, or a generated one.
        timestamp: When the message was received.
        metadata: Transport-specific extras.
    """

    room_id: str
    sender: str
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()

    @property
    def is_command(self) -> bool:
        """Check if message is a command (starts with `.`)."""
        text = self.content.strip()
        return text.startswith(COMMAND_PREFIX) and len(text) > 1

    @property
    def is_raw_command(self) -> bool:
        """Check if message is an admin raw command (starts with `,`)."""
        text = self.content.strip()
        return text.startswith(RAW_PREFIX) and len(text) > 1

    def parse_command(self) -> tuple[str, str]:
        """Parse command and arguments from message.

        Returns:
            Tuple of (command_name, arguments_string). The name is lowercased.
        """
        if not self.is_command:
            return ("", self.content)

        parts = self.content.strip().split(maxsplit=1)
        command = parts[0][1:].lower()
        args = parts[1].strip() if len(parts) > 1 else ""
        return (command, args)

    def raw_command(self) -> str:
        """Return the shell command of a `,` message."""
        return self.content.strip()[1:].strip()
