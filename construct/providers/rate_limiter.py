"""Sliding-window request limiter for provider calls."""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Literal

from construct.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class RateLimiter:
    """Allows at most `requests_per_minute` acquisitions in any 60 second window.

    In ``wait`` mode an over-budget caller sleeps until the oldest request
    leaves the window. Waiters are served in arrival order and at most
    ``max_queued`` may wait at once; further callers fail immediately.
    In ``fail`` mode an over-budget caller fails immediately.

    The clock and sleep function are injectable so tests can run without
    real delays.
    """

    def __init__(
        self,
        provider_name: str,
        requests_per_minute: int,
        mode: Literal["wait", "fail"] = "wait",
        max_queued: int = 16,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        window: float = WINDOW_SECONDS,
    ):
        if requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        self.provider_name = provider_name
        self.requests_per_minute = requests_per_minute
        self.mode = mode
        self.max_queued = max_queued
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()
        self._lock = asyncio.Lock()
        self._waiting = 0

    @property
    def waiting(self) -> int:
        """Number of callers currently queued for budget."""
        return self._waiting

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window:
            self._timestamps.popleft()

    def _has_budget(self) -> bool:
        self._prune(self._clock())
        return len(self._timestamps) < self.requests_per_minute

    async def acquire(self) -> float:
        """Take one request slot, waiting or failing according to the mode.

        Returns:
            Seconds spent waiting for budget.

        Raises:
            RateLimitExceededError: In fail mode when over budget, or in wait
                mode when the waiting queue is full.
        """
        if self._lock.locked() or not self._has_budget():
            if self.mode == "fail":
                raise RateLimitExceededError(
                    f"Rate limit of {self.requests_per_minute} requests/minute exceeded",
                    self.provider_name,
                )
            if self._waiting >= self.max_queued:
                raise RateLimitExceededError(
                    f"Rate limit queue is full ({self.max_queued} waiting)",
                    self.provider_name,
                )

        started = self._clock()
        self._waiting += 1
        try:
            async with self._lock:
                while True:
                    now = self._clock()
                    self._prune(now)
                    if len(self._timestamps) < self.requests_per_minute:
                        self._timestamps.append(now)
                        break
                    delay = self._timestamps[0] + self.window - now
                    logger.info(
                        f"Rate limit reached for {self.provider_name}, waiting {delay:.1f}s"
                    )
                    await self._sleep(delay)
        finally:
            self._waiting -= 1

        return self._clock() - started
