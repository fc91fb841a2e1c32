"""Per-session lanes: strict FIFO within a session, parallel across sessions."""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

Job = Callable[[], Coroutine[Any, Any, Any]]


@dataclass
class LaneItem:
    """A unit of work waiting in a session lane.

    Attributes:
        session_key: Lane the item belongs to.
        job: Coroutine factory run by the lane worker.
        label: Short description for logs.
        urgent: Run without waiting for a global concurrency slot.
        future: Resolved with the job's result once it ran, cancelled if dropped.
    """

    session_key: str
    job: Job
    label: str = ""
    urgent: bool = False
    future: asyncio.Future = field(default_factory=lambda: asyncio.get_running_loop().create_future())


@dataclass
class SessionLane:
    """FIFO queue and worker state of one session."""

    key: str
    queue: deque[LaneItem] = field(default_factory=deque)
    worker: asyncio.Task | None = None
    active: asyncio.Task | None = None
    active_item: LaneItem | None = None
    processed: int = 0

    @property
    def busy(self) -> bool:
        return self.active is not None and not self.active.done()


class SessionLanes:
    """Lane-aware FIFO scheduler keyed by session.

    Architecture:
    - Each session has its own lane with a single worker, so items of one
      session run one at a time in arrival order
    - A global semaphore caps how many sessions run work at the same time
    - Each item runs in its own asyncio task so `preempt` can cancel it
      without killing the worker

    Enqueueing never awaits, so two calls made in order land in the lane in
    that order.
    """

    def __init__(self, max_concurrency: int = 4):
        """Initialize the lanes.

        Args:
            max_concurrency: Max sessions running an item at the same time.
        """
        self.max_concurrency = max_concurrency
        self._lanes: dict[str, SessionLane] = {}
        self._slots = asyncio.Semaphore(max_concurrency)

    def get_lane(self, session_key: str) -> SessionLane:
        """Get or create the lane for a session."""
        if session_key not in self._lanes:
            self._lanes[session_key] = SessionLane(session_key)
        return self._lanes[session_key]

    def enqueue(self, item: LaneItem, front: bool = False) -> asyncio.Future:
        """Add an item to its session's lane.

        Args:
            item: The item to run.
            front: Put the item ahead of everything already queued.

        Returns:
            Future resolved with the job's result (or its exception).
        """
        lane = self.get_lane(item.session_key)
        if front:
            lane.queue.appendleft(item)
        else:
            lane.queue.append(item)
        if lane.worker is None or lane.worker.done():
            lane.worker = asyncio.create_task(self._drain(lane), name=f"lane:{lane.key}")
        return item.future

    def submit(self, session_key: str, job: Job, label: str = "") -> asyncio.Future:
        """Convenience wrapper building a LaneItem for `job`."""
        return self.enqueue(LaneItem(session_key=session_key, job=job, label=label))

    def preempt(self, session_key: str, job: Job | None = None, label: str = "preempt") -> asyncio.Future | None:
        """Drop pending items, cancel the running one, and optionally run `job` next.

        Dropped items have their futures cancelled. The replacement job runs
        as soon as the cancelled item has unwound, without waiting for a
        global concurrency slot.

        Returns:
            Future of the replacement job, or None when no job was given.
        """
        lane = self.get_lane(session_key)
        dropped = list(lane.queue)
        lane.queue.clear()
        for item in dropped:
            item.future.cancel()
        if dropped:
            logger.info(f"Dropped {len(dropped)} queued item(s) for {session_key}")

        future = None
        if job is not None:
            future = self.enqueue(LaneItem(session_key=session_key, job=job, label=label, urgent=True))

        if lane.busy:
            assert lane.active is not None
            logger.info(f"Cancelling active item for {session_key}: {lane.active_item.label if lane.active_item else ''}")
            lane.active.cancel()
        return future

    async def _drain(self, lane: SessionLane) -> None:
        """Run a lane's items one at a time until its queue is empty."""
        while lane.queue:
            item = lane.queue[0]
            if item.future.cancelled() or item.urgent:
                lane.queue.popleft()
                if not item.future.cancelled():
                    await self._run_item(lane, item)
                continue
            # The item stays queued while it waits for a slot so preempt can drop it
            async with self._slots:
                if not lane.queue or lane.queue[0] is not item:
                    continue
                lane.queue.popleft()
                await self._run_item(lane, item)

    async def _run_item(self, lane: SessionLane, item: LaneItem) -> None:
        lane.active_item = item
        lane.active = asyncio.create_task(item.job(), name=f"{lane.key}:{item.label}")
        try:
            # wait() does not propagate the item's cancellation into the worker
            await asyncio.wait({lane.active})
            task = lane.active
            if task.cancelled():
                item.future.cancel()
                logger.debug(f"Lane item cancelled for {lane.key}: {item.label}")
            elif task.exception() is not None:
                if not item.future.done():
                    item.future.set_exception(task.exception())
                logger.error(f"Lane item failed for {lane.key}: {item.label}: {task.exception()}")
            elif not item.future.done():
                item.future.set_result(task.result())
        finally:
            lane.active = None
            lane.active_item = None
            lane.processed += 1

    def pending_count(self, session_key: str) -> int:
        """Number of items waiting (not running) in a session's lane."""
        lane = self._lanes.get(session_key)
        return len(lane.queue) if lane else 0

    def is_busy(self, session_key: str) -> bool:
        lane = self._lanes.get(session_key)
        return lane.busy if lane else False

    async def join(self, session_key: str) -> None:
        """Wait until a session's lane has no queued or running items."""
        lane = self._lanes.get(session_key)
        while lane is not None and lane.worker is not None and not lane.worker.done():
            await asyncio.wait({lane.worker})

    async def close(self) -> None:
        """Cancel all lane work and wait for the workers to stop."""
        workers = []
        for lane in self._lanes.values():
            for item in lane.queue:
                item.future.cancel()
            lane.queue.clear()
            if lane.active is not None:
                lane.active.cancel()
            if lane.worker is not None:
                workers.append(lane.worker)
        await asyncio.gather(*workers, return_exceptions=True)

    def get_stats(self) -> dict[str, dict[str, int]]:
        """Get current lane statistics."""
        return {
            key: {
                "queued": len(lane.queue),
                "active": int(lane.busy),
                "processed": lane.processed,
            }
            for key, lane in self._lanes.items()
        }
