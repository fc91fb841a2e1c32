"""Progressive feed renderer: the sole writer of a session's status message."""

import asyncio
import copy
import logging
from pathlib import Path

from construct.channels.base import ChatTransport
from construct.core.config.models import FeedConfig
from construct.core.errors import StatePersistenceError
from construct.feed.formatting import IN_PROGRESS_ICON, render_feed, snippet, summary_line
from construct.model.events import FeedEvent, FeedEventKind
from construct.model.feed import FeedEntry, FeedMode, FeedState, SquashedLine
from construct.stores.feed import FeedStore

logger = logging.getLogger(__name__)

_TIME_FORMAT = "%H:%M:%S"
_SQUASHING_KINDS = (FeedEventKind.TASK_SUMMARIZED, FeedEventKind.TASK_REJECTED, FeedEventKind.TASK_ABORTED)


class FeedRenderer:
    """Maintains one evolving status message per session.

    Events arrive through an asyncio.Queue (see `run`). Each event is reduced
    into a new FeedState, persisted, and then rendered by editing the stored
    message, or by sending a new one when there is no usable handle. If the
    persist fails the in-memory state is left unchanged.

    Mode transitions within one task's lifecycle only move forward:
    Active -> Squashed -> Final. A TASK_STARTED event opens a new lifecycle.
    The Active block squashes as soon as the task starts summarizing; the
    summary then replaces that pending squashed line.

    After a restart, constructing a renderer over the same store restores the
    state and message handle, so the next render edits the existing message.
    """

    def __init__(
        self,
        room_id: str,
        transport: ChatTransport,
        store: FeedStore,
        config: FeedConfig | None = None,
        project_root: Path | None = None,
    ):
        """Initialize the renderer.

        Args:
            room_id: Room the status message lives in.
            transport: Chat transport used to send and edit the message.
            store: Persistence for the feed state.
            config: Capacity and truncation limits.
            project_root: Path prefix shortened in displayed output.
        """
        self.room_id = room_id
        self.transport = transport
        self.store = store
        self.config = config or FeedConfig()
        self.project_root = project_root
        self.state = store.load() or FeedState()
        if self.state.message_handle:
            logger.info(f"Reattached feed for {room_id} to message {self.state.message_handle}")

    @property
    def mode(self) -> FeedMode:
        return self.state.mode

    async def apply(self, event: FeedEvent) -> bool:
        """Reduce one event into the feed, persist it, and re-render.

        Returns:
            True if the event changed the feed, False if it was ignored.

        Raises:
            StatePersistenceError: If the new state could not be persisted.
        """
        new_state = self.reduce(self.state, event)
        if new_state is None:
            logger.debug(f"Feed for {self.room_id} ignored {event.kind.value} in {self.state.mode.value} mode")
            return False
        self.store.save(new_state)
        self.state = new_state
        await self._publish()
        return True

    def reduce(self, state: FeedState, event: FeedEvent) -> FeedState | None:
        """Return the state after `event`, or None when the event does not apply.

        The input state is never modified.
        """
        timestamp = event.timestamp.strftime(_TIME_FORMAT)

        if event.kind == FeedEventKind.TASK_STARTED:
            new = copy.deepcopy(state)
            if new.mode == FeedMode.FINAL:
                # A finished project starts over in a fresh message
                new.squashed = []
                new.message_handle = None
            new.mode = FeedMode.ACTIVE
            new.task_goal = event.text
            new.entries = []
            return new

        if event.kind == FeedEventKind.TASK_SUMMARIZING:
            if state.mode != FeedMode.ACTIVE or not state.task_goal:
                return None
            new = copy.deepcopy(state)
            new.mode = FeedMode.SQUASHED
            new.entries = []
            new.squashed.insert(
                0,
                SquashedLine(
                    timestamp,
                    summary_line(f"{IN_PROGRESS_ICON} {state.task_goal}: summarizing", self.config.summary_chars),
                    pending=True,
                ),
            )
            new.task_goal = ""
            return new

        if event.kind in _SQUASHING_KINDS:
            text = summary_line(event.text, self.config.summary_chars)
            if state.mode == FeedMode.SQUASHED and state.squashed and state.squashed[0].pending:
                # The summary lands on the line squashed when summarizing began
                new = copy.deepcopy(state)
                new.squashed[0] = SquashedLine(timestamp, text)
                return new
            if state.mode != FeedMode.ACTIVE or not state.task_goal:
                return None
            new = copy.deepcopy(state)
            new.mode = FeedMode.SQUASHED
            new.entries = []
            new.task_goal = ""
            new.squashed.insert(0, SquashedLine(timestamp, text))
            return new

        if event.kind == FeedEventKind.PROJECT_DONE:
            if state.mode == FeedMode.FINAL:
                return None
            if state.mode == FeedMode.ACTIVE and state.task_goal:
                return None
            new = copy.deepcopy(state)
            new.mode = FeedMode.FINAL
            new.entries = []
            new.task_goal = ""
            return new

        # Everything else is an entry in the Active block of a running task
        if state.mode != FeedMode.ACTIVE or not state.task_goal:
            return None

        icon = event.icon or _icon_for(event.success)
        output = snippet(event.output, self.config.output_chars, self.project_root)
        new = copy.deepcopy(state)

        if event.kind == FeedEventKind.STEP_FINISHED:
            # Finishing a step updates its in-progress entry in place
            for entry in reversed(new.entries):
                if entry.text == event.text and not entry.icon:
                    entry.icon = icon
                    entry.output = output or entry.output
                    return new

        last = new.entries[-1] if new.entries else None
        if last is not None and last.text == event.text and last.icon == icon and last.output == output:
            return None

        new.entries.append(FeedEntry(timestamp=timestamp, icon=icon, text=event.text, output=output))
        if len(new.entries) > self.config.capacity:
            new.entries = new.entries[-self.config.capacity:]
        return new

    async def refresh(self) -> None:
        """Re-render the current state, e.g. after reattaching on startup."""
        if not self.state.is_empty:
            await self._publish()

    async def _publish(self) -> None:
        text = render_feed(self.state, self.config.capacity)
        handle = self.state.message_handle
        if handle is not None:
            try:
                await self.transport.edit_message(self.room_id, handle, text)
                return
            except Exception as e:
                logger.warning(f"Editing feed message {handle} in {self.room_id} failed, sending a new one: {e}")

        new_handle = await self.transport.send_message(self.room_id, text)
        self.state.message_handle = new_handle
        self.store.save(self.state)

    async def run(self, events: "asyncio.Queue[FeedEvent]") -> None:
        """Consume events until cancelled. Calls `task_done` for every event."""
        while True:
            event = await events.get()
            try:
                await self.apply(event)
            except StatePersistenceError as e:
                logger.error(f"Feed for {self.room_id} could not persist {event.kind.value}: {e}")
            except Exception as e:
                logger.error(f"Feed for {self.room_id} failed on {event.kind.value}: {e}", exc_info=True)
            finally:
                events.task_done()


def _icon_for(success: bool | None) -> str:
    if success is True:
        return "✅"
    if success is False:
        return "❌"
    return ""
