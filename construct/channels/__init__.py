"""Chat transports and the command surface."""

from construct.channels.base import ChatTransport
from construct.channels.console import ConsoleTransport

__all__ = [
    "ChatTransport",
    "ConsoleTransport",
]
