"""Tests for per-project persistence."""

from pathlib import Path

import pytest

from construct.core.errors import StatePersistenceError
from construct.model.feed import FeedEntry, FeedMode, FeedState, SquashedLine
from construct.model.task import Plan, Step, Task, WorkflowState
from construct.stores import CommandHistory, FeedStore, ProjectFiles, TaskStore


class TestTaskStore:
    def test_save_load_clear(self, project_dir: Path):
        store = TaskStore(project_dir)
        task = Task(
            goal="add input validation",
            state=WorkflowState.AWAITING_APPROVAL,
            plan=Plan(steps=[Step(index=0, description="check", command="true")]),
        )

        store.save(task)
        assert (project_dir / ".construct" / "task.yaml").exists()
        assert not (project_dir / ".construct" / "task.tmp").exists()
        assert store.load() == task

        store.clear()
        assert store.load() is None

    def test_missing_file(self, project_dir: Path):
        assert TaskStore(project_dir).load() is None

    def test_corrupted_file_is_treated_as_absent(self, project_dir: Path):
        path = project_dir / ".construct" / "task.yaml"
        path.parent.mkdir()
        path.write_text("task: [unclosed\n")
        assert TaskStore(project_dir).load() is None

    def test_unparseable_task_is_treated_as_absent(self, project_dir: Path):
        path = project_dir / ".construct" / "task.yaml"
        path.parent.mkdir()
        path.write_text("version: 1\ntask:\n  goal: missing fields\n")
        assert TaskStore(project_dir).load() is None

    def test_write_failure_raises(self, project_dir: Path):
        # A file where the state directory should be makes every write fail
        (project_dir / ".construct").write_text("not a directory")
        with pytest.raises(StatePersistenceError):
            TaskStore(project_dir).save(Task(goal="g"))


def test_feed_store_round_trip(project_dir: Path):
    store = FeedStore(project_dir)
    state = FeedState(
        mode=FeedMode.SQUASHED,
        task_goal="add input validation",
        entries=[FeedEntry(timestamp="10:00:00", icon="✅", text="Step 1", output="ok")],
        squashed=[SquashedLine(timestamp="10:01:00", text="✅ add input validation")],
        message_handle="msg-7",
    )

    store.save(state)

    assert store.load() == state


class TestCommandHistory:
    def test_log_command(self, project_dir: Path):
        history = CommandHistory(project_dir)
        history.log_command("cargo test", "test result: ok\n", True, note="step 1")
        history.log_command("false", "", False)

        text = (project_dir / ".construct" / "history.md").read_text()
        assert "✅ **Command**: `cargo test`" in text
        assert "_step 1_" in text
        assert "test result: ok" in text
        assert "❌ **Command**: `false`" in text

    def test_output_is_truncated(self, project_dir: Path):
        history = CommandHistory(project_dir)
        history.log_command("yes", "y" * 5000, True)
        text = history.path.read_text()
        assert "y" * 1000 not in text
        assert "..." in text

    def test_tail_starts_at_entry_boundary(self, project_dir: Path):
        history = CommandHistory(project_dir)
        for i in range(20):
            history.log_command(f"echo {i}", str(i), True)

        tail = history.tail(200)

        assert tail.startswith("## [")
        assert "echo 19" in tail
        assert "echo 0`" not in tail
        assert history.tail(0) == ""

    def test_tail_without_history(self, project_dir: Path):
        assert CommandHistory(project_dir).tail(500) == ""


class TestProjectFiles:
    def test_read_context_and_open_tasks(self, project_dir: Path):
        files = ProjectFiles(project_dir)
        context = files.read_context()
        assert context["roadmap"].startswith("# Roadmap")
        assert files.open_tasks() == ["input validation"]
        assert files.name == "demo"

    def test_missing_context_files(self, projects_root: Path):
        files = ProjectFiles(projects_root / "other")
        assert files.read_context() == {"roadmap": "", "tasks": ""}
        assert files.open_tasks() == []

    def test_read_file(self, project_dir: Path):
        assert "Validate inputs" in ProjectFiles(project_dir).read_file("roadmap.md")

    def test_read_file_truncates(self, project_dir: Path):
        (project_dir / "big.txt").write_text("x" * 50)
        text = ProjectFiles(project_dir).read_file("big.txt", max_chars=10)
        assert text.startswith("x" * 10)
        assert "Truncated" in text

    @pytest.mark.parametrize("path", ["../other/secret", "/etc/passwd", "~/.ssh/id_rsa", ".construct/task.yaml"])
    def test_read_file_rejects_escapes(self, project_dir: Path, path: str):
        with pytest.raises(ValueError):
            ProjectFiles(project_dir).read_file(path)

    def test_read_missing_file(self, project_dir: Path):
        with pytest.raises(FileNotFoundError):
            ProjectFiles(project_dir).read_file("nope.md")

    def test_append_summary(self, project_dir: Path):
        files = ProjectFiles(project_dir)
        files.append_summary("add input validation", "Added validators.")
        files.append_summary("second", "More.")
        text = (project_dir / "SUMMARY.md").read_text()
        assert "add input validation\n\nAdded validators." in text
        assert text.index("add input validation") < text.index("second")
