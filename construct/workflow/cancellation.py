"""Cooperative cancellation for a session's in-flight work."""

import asyncio


class CancellationToken:
    """Signals that a session's current operation must stop.

    The workflow checks the token before every provider call, before every
    process start, and between steps. The router additionally cancels the
    asyncio task that is awaiting a provider call or a running process, so
    in-flight work is interrupted rather than waited out.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def reset(self) -> None:
        self._event.clear()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancellation was requested."""
        if self._event.is_set():
            raise asyncio.CancelledError("session stop requested")

    async def wait(self) -> None:
        await self._event.wait()
