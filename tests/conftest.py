"""Shared fixtures: fake transport, scripted chat models, and project directories."""

from pathlib import Path

import pytest
from langchain_core.messages import AIMessage

from construct.channels.base import ChatTransport, EventCallback
from construct.core.config.models import CommandsConfig, ExecutorConfig, ProviderConfig, TimeoutTiersConfig
from construct.executor.runner import CommandExecutor
from construct.providers.client import ProviderClient


class FakeTransport(ChatTransport):
    """In-memory transport recording sent, edited and notice messages."""

    name = "fake"

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str]] = []  # (room, handle, content)
        self.edits: list[tuple[str, str, str]] = []
        self.notices: list[tuple[str, str]] = []
        self.fail_edits = False
        self.renders: list[str] = []  # every feed content sent or edited, in order
        self._callback: EventCallback | None = None
        self._counter = 0

    def on_message(self, callback: EventCallback) -> None:
        self._callback = callback

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def send_message(self, room_id: str, content: str) -> str:
        self._counter += 1
        handle = f"msg-{self._counter}"
        self.sent.append((room_id, handle, content))
        self.renders.append(content)
        return handle

    async def edit_message(self, room_id: str, handle: str, content: str) -> None:
        if self.fail_edits:
            raise RuntimeError("message can no longer be edited")
        self.edits.append((room_id, handle, content))
        self.renders.append(content)

    async def send_notice(self, room_id: str, content: str) -> None:
        self.notices.append((room_id, content))

    def latest_feed(self) -> str:
        """Content of the most recent send or edit of the feed message."""
        return self.renders[-1] if self.renders else ""

    def notice_texts(self, room_id: str | None = None) -> list[str]:
        return [text for room, text in self.notices if room_id is None or room == room_id]


class ModelNotFound(Exception):
    """Mimics the SDK error raised for an unknown model."""

    status_code = 404


def ai_reply(text: str, cache_read: int = 0, model: str | None = None) -> AIMessage:
    """Build an AIMessage with usage metadata like the provider packages return."""
    return AIMessage(
        content=text,
        usage_metadata={
            "input_tokens": 120,
            "output_tokens": 40,
            "total_tokens": 160,
            "input_token_details": {"cache_read": cache_read},
        },
        response_metadata={"model_name": model} if model else {},
    )


class ScriptedModel:
    """Chat model stand-in that returns (or raises) queued replies in order."""

    def __init__(self, script: "ScriptedFactory", model_name: str):
        self.script = script
        self.model_name = model_name

    async def ainvoke(self, messages):
        self.script.calls.append((self.model_name, messages))
        if self.model_name in self.script.unavailable:
            raise ModelNotFound(f"model_not_found: {self.model_name}")
        if not self.script.replies:
            raise RuntimeError("no scripted reply left")
        reply = self.script.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return ai_reply(reply, model=self.model_name)
        return reply


class ScriptedFactory:
    """Model factory handing out ScriptedModels that share one reply queue."""

    def __init__(self, replies: list | None = None, unavailable: set[str] | None = None):
        self.replies = list(replies or [])
        self.unavailable = set(unavailable or ())
        self.calls: list[tuple[str, list]] = []
        self.built: list[tuple[str, float | None, int | None]] = []

    def __call__(self, config, model_name, temperature, max_tokens):
        self.built.append((model_name, temperature, max_tokens))
        return ScriptedModel(self, model_name)


PLAN_TEXT = """Here is the plan:

1. Record the start `echo one >> steps.log`
2. Wait for the validator `sleep 5`
3. Report completion `echo three >> steps.log`
"""


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def projects_root(tmp_path: Path) -> Path:
    root = tmp_path / "projects"
    (root / "demo").mkdir(parents=True)
    (root / "other").mkdir()
    (root / "demo" / "roadmap.md").write_text("# Roadmap\n\n- Validate inputs\n")
    (root / "demo" / "tasks.md").write_text("- [ ] input validation\n- [x] scaffolding\n")
    return root


@pytest.fixture
def project_dir(projects_root: Path) -> Path:
    return (projects_root / "demo").resolve()


@pytest.fixture
def commands_config() -> CommandsConfig:
    return CommandsConfig(
        allowed=["echo", "printf", "cat", "test", "touch", "true", "false", "ls", "sleep"],
        ask=["rm"],
        blocked=["shutdown", "reboot", "mkfs"],
        default="ask",
        timeouts=TimeoutTiersConfig(short=5, medium=0.5, long=30),
        medium_commands=["sleep"],
        long_commands=["make"],
    )


@pytest.fixture
def executor(commands_config: CommandsConfig, projects_root: Path) -> CommandExecutor:
    return CommandExecutor(
        commands_config,
        projects_root,
        admins=["alice"],
        config=ExecutorConfig(grace_seconds=0.5),
    )


@pytest.fixture
def factory() -> ScriptedFactory:
    return ScriptedFactory()


@pytest.fixture
def providers(factory: ScriptedFactory) -> ProviderClient:
    return ProviderClient({"fake": ProviderConfig(protocol="openai", model="fake-large")}, model_factory=factory)
