"""Session registry and room-to-project bindings.

Rooms are bound to one project at a time. A session exists per
(room, project) pair; switching a room to another project binds it to a
different session and leaves the old one untouched, so returning to a
project picks up its task where it was left.
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from threading import Lock

from construct.core.errors import StatePersistenceError, UnknownProjectError, UnknownSessionError
from construct.core.paths import SESSIONS_JSON
from construct.executor.sandbox import ensure_within_root
from construct.model.session import RoomBinding, make_session_key
from construct.runtime.session.session import Session

logger = logging.getLogger(__name__)


class SessionManager:
    """Explicit registry of live sessions and persisted room bindings.

    Bindings persist to `<data_dir>/sessions.json` so a restart reconnects
    each room to its project. Sessions themselves are rebuilt lazily from
    the project's own state files.

    Example:
        >>> manager = SessionManager(Path("data"), Path("projects"), "claude")
        >>> session = manager.bind_room("!room:example.org", "api")
        >>> manager.get_session("!room:example.org") is session
        True
    """

    def __init__(self, data_dir: Path, projects_root: Path, default_provider: str | None = None):
        """Initialize the session manager.

        Args:
            data_dir: Directory holding the bindings file.
            projects_root: Directory every project must live under.
            default_provider: Provider assigned to rooms that never chose one.
        """
        self.data_dir = Path(data_dir)
        self.projects_root = Path(projects_root).resolve()
        self.default_provider = default_provider
        self._state_file = self.data_dir / SESSIONS_JSON
        self._lock = Lock()
        self._bindings: dict[str, RoomBinding] = {}
        self._sessions: dict[str, Session] = {}

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._load()

        logger.info(f"SessionManager initialized: {self._state_file} ({len(self._bindings)} binding(s))")

    def _load(self) -> None:
        """Load room bindings from the JSON file. Thread-safe."""
        with self._lock:
            if not self._state_file.exists():
                logger.debug(f"Bindings file does not exist: {self._state_file}")
                self._bindings = {}
                return

            try:
                with self._state_file.open("r", encoding="utf-8") as f:
                    data = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                logger.error(f"Corrupted bindings file {self._state_file}: {e}")
                self._bindings = {}
                return

            if not isinstance(data, dict):
                logger.error(f"Invalid bindings format (expected dict): {self._state_file}")
                self._bindings = {}
                return

            self._bindings = {}
            for room_id, binding_data in data.items():
                try:
                    self._bindings[room_id] = RoomBinding.from_dict(binding_data)
                except (KeyError, TypeError, ValueError) as e:
                    logger.error(f"Failed to parse binding for {room_id}: {e}")

    def _save(self) -> None:
        """Persist bindings atomically. Caller must hold self._lock."""
        data = {room_id: binding.to_dict() for room_id, binding in self._bindings.items()}
        tmp_path = self._state_file.with_suffix(".tmp")
        try:
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(self._state_file)
        except OSError as e:
            logger.error(f"Failed to save bindings to {self._state_file}: {e}")
            raise StatePersistenceError(f"Could not save room bindings: {e}", self._state_file) from e

    def resolve_project(self, project: str | Path) -> Path:
        """Resolve a project name or path under the projects root.

        Raises:
            UnknownProjectError: If the path escapes the root or is not a directory.
        """
        candidate = Path(project).expanduser()
        if not candidate.is_absolute():
            candidate = self.projects_root / candidate
        try:
            resolved = ensure_within_root(self.projects_root, candidate)
        except ValueError:
            raise UnknownProjectError(f"Project must live under {self.projects_root}: {project}") from None
        if resolved == self.projects_root or not resolved.is_dir():
            raise UnknownProjectError(f"Unknown project: {project}")
        return resolved

    def list_projects(self) -> list[str]:
        """Names of the project directories under the projects root."""
        if not self.projects_root.is_dir():
            return []
        return sorted(p.name for p in self.projects_root.iterdir() if p.is_dir() and not p.name.startswith("."))

    def bind_room(self, room_id: str, project: str | Path) -> Session:
        """Bind a room to a project, creating or reattaching its session.

        The room keeps its selected provider across project switches.

        Raises:
            UnknownProjectError: If the project cannot be resolved.
            StatePersistenceError: If the binding could not be saved.
        """
        project_path = self.resolve_project(project)
        with self._lock:
            previous = self._bindings.get(room_id)
            provider_name = previous.provider_name if previous else self.default_provider
            self._bindings[room_id] = RoomBinding(
                project_path=project_path,
                provider_name=provider_name,
                bound_at=datetime.now(UTC),
            )
            try:
                self._save()
            except StatePersistenceError:
                if previous is None:
                    del self._bindings[room_id]
                else:
                    self._bindings[room_id] = previous
                raise

        if previous is not None and previous.project_path != project_path:
            logger.info(f"Room {room_id} switched project: {previous.project_path} -> {project_path}")
        return self.get_or_create(room_id, project_path, provider_name)

    def get_binding(self, room_id: str) -> RoomBinding | None:
        with self._lock:
            return self._bindings.get(room_id)

    def list_bindings(self) -> dict[str, RoomBinding]:
        """List room bindings keyed by room id."""
        with self._lock:
            return dict(self._bindings)

    def get_session(self, room_id: str) -> Session:
        """Return the session of the room's bound project.

        Raises:
            UnknownProjectError: If the room has no bound project or it vanished.
        """
        binding = self.get_binding(room_id)
        if binding is None:
            raise UnknownProjectError("No project bound to this room. Use .project <name> first.")
        if not binding.project_path.is_dir():
            raise UnknownProjectError(f"Bound project no longer exists: {binding.project_path}")
        return self.get_or_create(room_id, binding.project_path, binding.provider_name)

    def get_or_create(self, room_id: str, project_path: Path, provider_name: str | None = None) -> Session:
        """Return the live session for (room, project), opening it if needed."""
        key = make_session_key(room_id, Path(project_path).resolve())
        with self._lock:
            session = self._sessions.get(key)
        if session is not None:
            return session

        session = Session.open(room_id, project_path, provider_name or self.default_provider)
        with self._lock:
            # Another caller may have opened the same session meanwhile
            session = self._sessions.setdefault(key, session)
        logger.info(f"Opened session {session.session_id} for {key}")
        return session

    def lookup(self, session_key: str) -> Session:
        """Return a live session by key.

        Raises:
            UnknownSessionError: If no session with that key is open.
        """
        with self._lock:
            session = self._sessions.get(session_key)
        if session is None:
            raise UnknownSessionError(f"No open session: {session_key}")
        return session

    def set_provider(self, room_id: str, provider_name: str) -> Session:
        """Select the provider for the room's current session and future sessions."""
        session = self.get_session(room_id)
        with self._lock:
            binding = self._bindings[room_id]
            previous = binding.provider_name
            binding.provider_name = provider_name
            try:
                self._save()
            except StatePersistenceError:
                binding.provider_name = previous
                raise
        session.provider_name = provider_name
        logger.info(f"Room {room_id} switched provider: {previous} -> {provider_name}")
        return session

    def list_sessions(self) -> dict[str, Session]:
        """List all open sessions keyed by session key."""
        with self._lock:
            return dict(self._sessions)
