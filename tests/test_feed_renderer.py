"""Tests for the progressive feed renderer."""

import asyncio
from datetime import datetime

import pytest

from construct.core.config.models import FeedConfig
from construct.core.errors import StatePersistenceError
from construct.feed.formatting import ACTIVE_HEADER, FINAL_HEADER, SQUASHED_HEADER, render_final
from construct.feed.renderer import FeedRenderer
from construct.model.events import FeedEvent, FeedEventKind
from construct.model.feed import FeedMode, FeedState, SquashedLine
from construct.stores.feed import FeedStore


def event(kind: FeedEventKind, text: str, **kwargs) -> FeedEvent:
    return FeedEvent(kind, text, timestamp=datetime(2026, 3, 1, 14, 2, 11), **kwargs)


@pytest.fixture
def store(project_dir) -> FeedStore:
    return FeedStore(project_dir)


@pytest.fixture
def renderer(transport, store, project_dir) -> FeedRenderer:
    return FeedRenderer("!room", transport, store, project_root=project_dir)


@pytest.mark.asyncio
async def test_active_feed_is_one_edited_message(renderer, transport):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "add input validation"))
    await renderer.apply(event(FeedEventKind.ACTIVITY, "Planning with fake"))
    await renderer.apply(event(FeedEventKind.STEP_STARTED, "Step 1: Run tests"))

    assert len(transport.sent) == 1
    handle = transport.sent[0][1]
    assert all(h == handle for _, h, _ in transport.edits)

    text = transport.latest_feed()
    assert text.startswith(ACTIVE_HEADER)
    assert "**Task:** add input validation" in text
    assert "[14:02:11] • Planning with fake" in text
    assert "[14:02:11] 🔄 Step 1: Run tests" in text


@pytest.mark.asyncio
async def test_step_finished_updates_in_progress_entry(renderer, transport, project_dir):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "goal"))
    await renderer.apply(event(FeedEventKind.STEP_STARTED, "Step 1: build"))
    await renderer.apply(
        event(FeedEventKind.STEP_FINISHED, "Step 1: build", success=True, output=f"wrote {project_dir}/dist/app")
    )

    assert len(renderer.state.entries) == 1
    entry = renderer.state.entries[0]
    assert entry.icon == "✅"
    assert entry.output == "wrote dist/app"
    assert "> wrote dist/app" in transport.latest_feed()


@pytest.mark.asyncio
async def test_capacity_keeps_latest_entries(renderer, transport):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "goal"))
    for i in range(20):
        await renderer.apply(event(FeedEventKind.ACTIVITY, f"activity {i}"))

    assert len(renderer.state.entries) == 15
    text = transport.latest_feed()
    assert "activity 19" in text
    assert "activity 5" in text
    assert "activity 4\n" not in text + "\n"


@pytest.mark.asyncio
async def test_duplicate_entries_are_ignored(renderer):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "goal"))
    assert await renderer.apply(event(FeedEventKind.ACTIVITY, "same"))
    assert not await renderer.apply(event(FeedEventKind.ACTIVITY, "same"))


@pytest.mark.asyncio
async def test_modes_only_move_forward(renderer, transport):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "first task"))
    await renderer.apply(event(FeedEventKind.TASK_SUMMARIZED, "✅ first task: all good"))
    assert renderer.mode == FeedMode.SQUASHED
    assert transport.latest_feed().startswith(SQUASHED_HEADER)

    # Late entries for a squashed task are dropped
    assert not await renderer.apply(event(FeedEventKind.ACTIVITY, "late activity"))
    assert renderer.mode == FeedMode.SQUASHED

    await renderer.apply(event(FeedEventKind.PROJECT_DONE, "demo"))
    assert renderer.mode == FeedMode.FINAL
    assert not await renderer.apply(event(FeedEventKind.TASK_SUMMARIZED, "✅ ghost"))
    assert not await renderer.apply(event(FeedEventKind.PROJECT_DONE, "demo"))

    final = transport.latest_feed()
    assert final.startswith(FINAL_HEADER)
    assert "• ✅ first task: all good" in final


@pytest.mark.asyncio
async def test_project_done_waits_for_running_task(renderer):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "busy"))
    assert not await renderer.apply(event(FeedEventKind.PROJECT_DONE, "demo"))
    assert renderer.mode == FeedMode.ACTIVE


@pytest.mark.asyncio
async def test_squashed_history_shows_under_next_task(renderer, transport):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "first"))
    await renderer.apply(event(FeedEventKind.TASK_REJECTED, "🗑 first (rejected)"))
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "second"))

    assert renderer.mode == FeedMode.ACTIVE
    text = transport.latest_feed()
    assert "**Task:** second" in text
    assert "🗑 first (rejected)" in text
    # Still the same message
    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_new_task_after_final_starts_new_message(renderer, transport):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "first"))
    await renderer.apply(event(FeedEventKind.TASK_SUMMARIZED, "✅ first"))
    await renderer.apply(event(FeedEventKind.PROJECT_DONE, "demo"))
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "again"))

    assert len(transport.sent) == 2
    assert renderer.state.squashed == []


@pytest.mark.asyncio
async def test_reattach_after_restart_edits_same_message(transport, store, project_dir):
    first = FeedRenderer("!room", transport, store)
    await first.apply(event(FeedEventKind.TASK_STARTED, "goal"))
    handle = first.state.message_handle

    second = FeedRenderer("!room", transport, store)
    assert second.state.message_handle == handle
    assert second.state.task_goal == "goal"

    await second.apply(event(FeedEventKind.ACTIVITY, "after restart"))
    assert len(transport.sent) == 1
    assert transport.edits[-1][1] == handle


@pytest.mark.asyncio
async def test_edit_failure_sends_new_message(renderer, transport, store):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "goal"))
    transport.fail_edits = True

    await renderer.apply(event(FeedEventKind.ACTIVITY, "next"))

    assert len(transport.sent) == 2
    assert renderer.state.message_handle == transport.sent[1][1]
    assert store.load().message_handle == transport.sent[1][1]


@pytest.mark.asyncio
async def test_persist_failure_leaves_state_unchanged(renderer, transport, monkeypatch):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "goal"))
    before = renderer.state.to_dict()
    renders = len(transport.renders)

    def fail(state):
        raise StatePersistenceError("disk full")

    monkeypatch.setattr(renderer.store, "save", fail)

    with pytest.raises(StatePersistenceError):
        await renderer.apply(event(FeedEventKind.ACTIVITY, "lost"))

    assert renderer.state.to_dict() == before
    assert len(transport.renders) == renders


@pytest.mark.asyncio
async def test_run_consumes_queue(renderer, transport):
    events: asyncio.Queue[FeedEvent] = asyncio.Queue()
    worker = asyncio.create_task(renderer.run(events))
    events.put_nowait(event(FeedEventKind.TASK_STARTED, "queued goal"))
    events.put_nowait(event(FeedEventKind.ACTIVITY, "queued activity"))

    await events.join()
    worker.cancel()

    assert "queued activity" in transport.latest_feed()


def test_render_final_lists_oldest_first():
    state = FeedState(
        mode=FeedMode.FINAL,
        squashed=[SquashedLine("10:02:00", "second"), SquashedLine("10:01:00", "first")],
    )
    text = render_final(state)
    assert text.index("• first") < text.index("• second")
    assert "Summary:" in text


def test_render_final_without_tasks():
    assert "No tasks were completed." in render_final(FeedState(mode=FeedMode.FINAL))


def test_long_summary_is_truncated(transport, store):
    renderer = FeedRenderer("!room", transport, store, config=FeedConfig(summary_chars=20))
    state = renderer.reduce(
        FeedState(task_goal="goal"),
        event(FeedEventKind.TASK_SUMMARIZED, "✅ goal: " + "word " * 40),
    )
    assert len(state.squashed[0].text) == 20
    assert state.squashed[0].text.endswith("...")


@pytest.mark.asyncio
async def test_summarizing_squashes_before_summary_arrives(renderer, transport):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "add validation"))
    await renderer.apply(event(FeedEventKind.STEP_STARTED, "Step 1: build"))
    await renderer.apply(event(FeedEventKind.TASK_SUMMARIZING, "add validation"))

    assert renderer.mode == FeedMode.SQUASHED
    assert renderer.state.entries == []
    assert len(renderer.state.squashed) == 1
    assert renderer.state.squashed[0].pending
    text = transport.latest_feed()
    assert "🔄 add validation: summarizing" in text
    assert "Step 1: build" not in text


@pytest.mark.asyncio
async def test_summary_fills_pending_line(renderer, transport):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "add validation"))
    await renderer.apply(event(FeedEventKind.TASK_SUMMARIZING, "add validation"))
    await renderer.apply(event(FeedEventKind.TASK_SUMMARIZED, "✅ add validation: inputs checked"))

    assert len(renderer.state.squashed) == 1
    line = renderer.state.squashed[0]
    assert not line.pending
    assert "inputs checked" in line.text
    assert "summarizing" not in transport.latest_feed()
    assert len(transport.sent) == 1


@pytest.mark.asyncio
async def test_abort_fills_pending_line(renderer):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "slow task"))
    await renderer.apply(event(FeedEventKind.TASK_SUMMARIZING, "slow task"))
    assert await renderer.apply(event(FeedEventKind.TASK_ABORTED, "⏹ slow task (aborted)"))

    assert [line.text for line in renderer.state.squashed] == ["⏹ slow task (aborted)"]
    assert not renderer.state.squashed[0].pending


@pytest.mark.asyncio
async def test_summarizing_ignored_without_running_task(renderer):
    await renderer.apply(event(FeedEventKind.TASK_STARTED, "goal"))
    await renderer.apply(event(FeedEventKind.TASK_SUMMARIZED, "✅ goal"))

    assert not await renderer.apply(event(FeedEventKind.TASK_SUMMARIZING, "goal"))


@pytest.mark.asyncio
async def test_pending_line_survives_restart(transport, store):
    first = FeedRenderer("!room", transport, store)
    await first.apply(event(FeedEventKind.TASK_STARTED, "goal"))
    await first.apply(event(FeedEventKind.TASK_SUMMARIZING, "goal"))

    second = FeedRenderer("!room", transport, store)
    assert second.state.squashed[0].pending
    await second.apply(event(FeedEventKind.TASK_SUMMARIZED, "✅ goal: done"))
    assert [line.text for line in second.state.squashed] == ["✅ goal: done"]
