"""Tests for SessionManager room bindings and session registry."""

import json
import shutil
from pathlib import Path

import pytest

from construct.core.errors import StatePersistenceError, UnknownProjectError, UnknownSessionError
from construct.model.task import Task, WorkflowState
from construct.runtime.session.manager import SessionManager
from construct.stores.task import TaskStore


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def manager(data_dir: Path, projects_root: Path) -> SessionManager:
    return SessionManager(data_dir, projects_root, default_provider="fake")


def test_bind_room_creates_session(manager, project_dir):
    session = manager.bind_room("!room", "demo")

    assert session.project_path == project_dir
    assert session.provider_name == "fake"
    assert manager.get_session("!room") is session
    assert manager.lookup(session.key) is session


def test_bind_room_persists_binding(manager, data_dir, project_dir):
    manager.bind_room("!room", "demo")

    data = json.loads((data_dir / "sessions.json").read_text())
    assert data["!room"]["project_path"] == str(project_dir)
    assert data["!room"]["provider_name"] == "fake"
    assert not (data_dir / "sessions.tmp").exists()


def test_bindings_survive_restart(manager, data_dir, projects_root, project_dir):
    manager.bind_room("!room", "demo")
    manager.set_provider("!room", "other-provider")

    restarted = SessionManager(data_dir, projects_root, default_provider="fake")

    session = restarted.get_session("!room")
    assert session.project_path == project_dir
    assert session.provider_name == "other-provider"
    assert list(restarted.list_bindings()) == ["!room"]


def test_restart_restores_task(manager, data_dir, projects_root, project_dir):
    TaskStore(project_dir).save(Task(goal="add input validation", state=WorkflowState.PLANNING))
    manager.bind_room("!room", "demo")

    restarted = SessionManager(data_dir, projects_root)
    task = restarted.get_session("!room").task

    assert task.goal == "add input validation"
    assert task.state == WorkflowState.AWAITING_APPROVAL


def test_switching_projects_keeps_sessions(manager):
    demo = manager.bind_room("!room", "demo")
    other = manager.bind_room("!room", "other")

    assert other is not demo
    assert manager.get_session("!room") is other
    assert manager.bind_room("!room", "demo") is demo
    assert len(manager.list_sessions()) == 2


def test_provider_follows_room_across_projects(manager):
    manager.bind_room("!room", "demo")
    manager.set_provider("!room", "claude")

    assert manager.bind_room("!room", "other").provider_name == "claude"


def test_rooms_share_nothing(manager):
    a = manager.bind_room("!a", "demo")
    b = manager.bind_room("!b", "demo")
    assert a is not b
    assert a.key != b.key


def test_get_session_without_binding(manager):
    with pytest.raises(UnknownProjectError, match=r"\.project"):
        manager.get_session("!nobody")


@pytest.mark.parametrize("project", ["missing", "../outside", "/etc"])
def test_unknown_project_is_rejected(manager, data_dir, project):
    with pytest.raises(UnknownProjectError):
        manager.bind_room("!room", project)
    assert manager.get_binding("!room") is None
    assert not (data_dir / "sessions.json").exists()


def test_absolute_path_under_root_is_accepted(manager, project_dir):
    assert manager.bind_room("!room", str(project_dir)).project_path == project_dir


def test_vanished_project(manager, project_dir):
    manager.bind_room("!room", "demo")
    shutil.rmtree(project_dir)

    with pytest.raises(UnknownProjectError, match="no longer exists"):
        manager.get_session("!room")


def test_failed_save_rolls_back(manager, data_dir):
    manager.bind_room("!room", "demo")
    (data_dir / "sessions.json").unlink()
    (data_dir / "sessions.json").mkdir()

    with pytest.raises(StatePersistenceError):
        manager.bind_room("!room", "other")

    assert manager.get_binding("!room").project_path.name == "demo"


def test_corrupted_bindings_file(data_dir, projects_root):
    data_dir.mkdir()
    (data_dir / "sessions.json").write_text("{not json")
    manager = SessionManager(data_dir, projects_root)
    assert manager.list_bindings() == {}


def test_lookup_unknown_session(manager):
    with pytest.raises(UnknownSessionError):
        manager.lookup("!room::/nowhere")


def test_list_projects(manager):
    assert manager.list_projects() == ["demo", "other"]
