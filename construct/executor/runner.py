"""Sandboxed shell command execution with tiered timeouts."""

import asyncio
import logging
import os
import signal
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from construct.core.config.models import CommandsConfig, ExecutorConfig
from construct.core.errors import ConfirmationRequired, ExecutionDenied, ExecutionTimedOut
from construct.executor.classification import Classification, CommandClassifier, TimeoutTier
from construct.executor.sandbox import ensure_within_root
from construct.model.events import FeedEvent, FeedEventKind

logger = logging.getLogger(__name__)

EventListener = Callable[[FeedEvent], None]


@dataclass
class CommandOutcome:
    """Result of a command that ran to completion.

    Attributes:
        command: The command line that ran.
        stdout: Captured standard output (truncated to the safety limit).
        stderr: Captured standard error (truncated to the safety limit).
        exit_code: Process exit status.
        duration: Wall-clock seconds the command took.
        tier: Timeout tier applied.
    """

    command: str
    stdout: str
    stderr: str
    exit_code: int
    duration: float = 0.0
    tier: TimeoutTier = TimeoutTier.SHORT

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    def format(self) -> str:
        """Combine stdout, stderr and the exit code into one block of text."""
        text = self.stdout
        if self.stderr:
            text += f"\n--- STDERR ---\n{self.stderr}"
        text += f"\n[Exit Code: {self.exit_code}]"
        return text.strip()


class CommandExecutor:
    """Runs shell commands inside the projects root with classification and timeouts.

    Every call to `execute` or `execute_raw` reports exactly one FeedEvent to
    the listener, whether the command completed, was denied, needs
    confirmation, timed out, or was cancelled.

    Each process runs in its own session, so timeouts and cancellation
    terminate the whole process group, not just the shell.
    """

    def __init__(
        self,
        commands: CommandsConfig,
        projects_root: Path,
        admins: list[str] | None = None,
        config: ExecutorConfig | None = None,
    ):
        """Initialize the executor.

        Args:
            commands: Classification lists and timeout tiers.
            projects_root: Directory every working directory must resolve under.
            admins: Principals allowed to use the raw execution path.
            config: Grace period and output limit settings.
        """
        self.classifier = CommandClassifier(commands)
        self.projects_root = Path(projects_root)
        self.admins = {admin.lower() for admin in (admins or [])}
        self.config = config or ExecutorConfig()

    def is_admin(self, principal: str) -> bool:
        return principal.lower() in self.admins

    async def execute(
        self,
        command: str,
        cwd: Path,
        *,
        confirmed: bool = False,
        listener: EventListener | None = None,
    ) -> CommandOutcome:
        """Classify and run a command.

        Args:
            command: Shell command line.
            cwd: Working directory; must resolve inside the projects root.
            confirmed: True when a human confirmed an `ask` command.
            listener: Receives the single feed event for this execution.

        Returns:
            CommandOutcome for a command that ran to completion (any exit code).

        Raises:
            ExecutionDenied: Command is blocked or the cwd escapes the root.
            ConfirmationRequired: Command is classified `ask` and not confirmed.
            ExecutionTimedOut: Command exceeded its timeout tier.
        """
        result = self.classifier.classify(command)
        if result.classification == Classification.BLOCKED:
            raise self._denied(command, result.reason, listener)
        if result.classification == Classification.ASK and not confirmed:
            logger.info(f"Command needs confirmation: {command[:100]} ({result.reason})")
            _emit(listener, FeedEvent(FeedEventKind.COMMAND_EXECUTED, f"Needs confirmation: `{command}`", icon="⚠️"))
            raise ConfirmationRequired(command, result.reason)

        tier = self.classifier.tier_for(command)
        return await self._run(command, cwd, tier, listener)

    async def execute_raw(
        self,
        command: str,
        cwd: Path,
        principal: str,
        *,
        listener: EventListener | None = None,
    ) -> CommandOutcome:
        """Run a command for an admin principal, bypassing classification.

        The long timeout tier applies and the working directory is still
        confined to the projects root.

        Raises:
            ExecutionDenied: Principal is not an admin, or the cwd escapes the root.
            ExecutionTimedOut: Command exceeded the long timeout.
        """
        if not self.is_admin(principal):
            raise self._denied(command, f"{principal} is not an admin", listener)
        logger.warning(f"Raw command by {principal}: {command[:100]}")
        return await self._run(command, cwd, TimeoutTier.LONG, listener)

    def _denied(self, command: str, reason: str, listener: EventListener | None) -> ExecutionDenied:
        logger.warning(f"Blocked command: {command[:100]} - {reason}")
        _emit(listener, FeedEvent(FeedEventKind.COMMAND_EXECUTED, f"Blocked: `{command}`", success=False, output=reason, icon="🚫"))
        return ExecutionDenied(command, reason)

    async def _run(
        self,
        command: str,
        cwd: Path,
        tier: TimeoutTier,
        listener: EventListener | None,
    ) -> CommandOutcome:
        try:
            workdir = ensure_within_root(self.projects_root, Path(cwd))
        except ValueError as e:
            raise self._denied(command, str(e), listener) from None
        if not workdir.is_dir():
            raise self._denied(command, f"working directory does not exist: {workdir}", listener)

        timeout = self.classifier.seconds(tier)
        start_time = time.monotonic()
        logger.info(f"Executing ({tier.value}, {timeout:g}s) in {workdir}: {command[:100]}")

        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=workdir,
            start_new_session=True,
        )
        # Up to 4 bytes per UTF-8 character
        byte_limit = self.config.max_output_chars * 4
        stdout_buffer = _OutputBuffer(byte_limit)
        stderr_buffer = _OutputBuffer(byte_limit)
        readers = [
            asyncio.create_task(_drain(process.stdout, stdout_buffer)),
            asyncio.create_task(_drain(process.stderr, stderr_buffer)),
        ]

        try:
            async with asyncio.timeout(timeout):
                await asyncio.gather(*readers)
                await process.wait()
        except TimeoutError:
            await self._kill_group(process, readers)
            elapsed = time.monotonic() - start_time
            stdout = self._decode(stdout_buffer)
            stderr = self._decode(stderr_buffer)
            logger.warning(f"Command timed out after {elapsed:.1f}s: {command[:100]}")
            _emit(
                listener,
                FeedEvent(
                    FeedEventKind.COMMAND_EXECUTED,
                    f"Timed out after {timeout:g}s: `{command}`",
                    success=False,
                    output=(stdout + stderr).strip() or None,
                    icon="⏱",
                ),
            )
            raise ExecutionTimedOut(command, timeout, stdout, stderr) from None
        except asyncio.CancelledError:
            await self._kill_group(process, readers)
            logger.info(f"Command cancelled: {command[:100]}")
            partial = (self._decode(stdout_buffer) + self._decode(stderr_buffer)).strip()
            _emit(
                listener,
                FeedEvent(
                    FeedEventKind.COMMAND_EXECUTED,
                    f"Stopped: `{command}`",
                    success=False,
                    output=partial or None,
                    icon="⏹",
                ),
            )
            raise

        elapsed = time.monotonic() - start_time
        outcome = CommandOutcome(
            command=command,
            stdout=self._decode(stdout_buffer),
            stderr=self._decode(stderr_buffer),
            exit_code=process.returncode if process.returncode is not None else -1,
            duration=elapsed,
            tier=tier,
        )
        logger.info(f"Command exited {outcome.exit_code} in {elapsed:.1f}s: {command[:100]}")
        _emit(
            listener,
            FeedEvent(
                FeedEventKind.COMMAND_EXECUTED,
                f"`{command}`",
                success=outcome.success,
                output=(outcome.stdout + outcome.stderr).strip() or None,
            ),
        )
        return outcome

    async def _kill_group(self, process: asyncio.subprocess.Process, readers: list[asyncio.Task]) -> None:
        """Terminate the process group, escalating to SIGKILL after the grace period."""
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except ProcessLookupError:
            pass  # Already exited
        try:
            async with asyncio.timeout(self.config.grace_seconds):
                await process.wait()
        except TimeoutError:
            logger.warning(f"Process group {process.pid} ignored SIGTERM, sending SIGKILL")
        # Children may outlive the shell; the group is killed unconditionally
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        await process.wait()
        for reader in readers:
            reader.cancel()
        await asyncio.gather(*readers, return_exceptions=True)

    def _decode(self, buffer: "_OutputBuffer") -> str:
        output = b"".join(buffer.chunks).decode("utf-8", errors="replace")
        max_chars = self.config.max_output_chars
        if buffer.dropped:
            return (
                f"[Output truncated: {buffer.total_bytes} bytes, showing first {max_chars} characters]\n"
                f"{output[:max_chars]}"
            )
        if len(output) > max_chars:
            output = (
                f"[Output truncated: {len(output)} characters, showing first {max_chars}]\n"
                f"{output[:max_chars]}"
            )
        return output


@dataclass
class _OutputBuffer:
    """Captured bytes of one stream, capped at `limit`; the rest is only counted."""

    limit: int
    chunks: list[bytes] = field(default_factory=list)
    size: int = 0
    dropped: int = 0

    @property
    def total_bytes(self) -> int:
        return self.size + self.dropped

    def append(self, chunk: bytes) -> None:
        kept = chunk[: max(self.limit - self.size, 0)]
        if kept:
            self.chunks.append(kept)
            self.size += len(kept)
        self.dropped += len(chunk) - len(kept)


async def _drain(stream: asyncio.StreamReader | None, buffer: _OutputBuffer) -> None:
    # Keeps reading past the cap so the child never blocks on a full pipe
    if stream is None:
        return
    while True:
        chunk = await stream.read(65536)
        if not chunk:
            return
        buffer.append(chunk)


def _emit(listener: EventListener | None, event: FeedEvent) -> None:
    if listener is not None:
        listener(event)

