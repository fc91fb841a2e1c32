"""Exception hierarchy shared across Construct components.

Every failure that reaches a user is one of these types. The router converts
them into chat notices; components never leak vendor exception types.
"""


class ConstructError(Exception):
    """Base class for all Construct errors."""


class ProviderError(ConstructError):
    """A language-model provider call failed.

    Attributes:
        message: Human-readable failure description.
        provider_name: Name of the configured provider that failed.
    """

    def __init__(self, message: str, provider_name: str):
        super().__init__(message)
        self.message = message
        self.provider_name = provider_name

    def __str__(self) -> str:
        return f"[{self.provider_name}] {self.message}"


class UnknownProviderError(ProviderError):
    """The requested provider is not configured."""


class NoModelAvailableError(ProviderError):
    """Every candidate model for a provider was unavailable."""


class RateLimitExceededError(ProviderError):
    """The provider's request budget is exhausted and the request was not queued."""


class ExecutionDenied(ConstructError):
    """A command was refused before it started.

    Attributes:
        command: The command that was refused.
        reason: Why the command was refused.
    """

    def __init__(self, command: str, reason: str):
        super().__init__(reason)
        self.command = command
        self.reason = reason

    def __str__(self) -> str:
        return f"Command denied: {self.reason}"


class ConfirmationRequired(ExecutionDenied):
    """A command is classified `ask` and needs explicit human confirmation."""

    def __str__(self) -> str:
        return f"Confirmation required: {self.reason}"


class ExecutionTimedOut(ConstructError):
    """A command exceeded its timeout tier and its process group was killed.

    Attributes:
        command: The command that timed out.
        timeout: The timeout that was applied, in seconds.
        stdout: Output captured before termination.
        stderr: Error output captured before termination.
    """

    def __init__(self, command: str, timeout: float, stdout: str = "", stderr: str = ""):
        super().__init__(f"Command timed out after {timeout:g}s")
        self.command = command
        self.timeout = timeout
        self.stdout = stdout
        self.stderr = stderr


class UnknownSessionError(ConstructError):
    """No session exists for the requested key."""


class UnknownProjectError(ConstructError):
    """The room has no bound project, or the project path does not exist."""


class StatePersistenceError(ConstructError):
    """Persisting Construct state to disk failed.

    Attributes:
        path: The file that could not be written.
    """

    def __init__(self, message: str, path: object = None):
        super().__init__(message)
        self.path = path


class InvalidTransitionError(ConstructError):
    """A command is not valid in the task's current workflow state."""


class PlanParseError(ConstructError):
    """A provider response contained no executable plan steps."""


class WorkflowStageError(ConstructError):
    """A workflow stage failed and the task was left in a recoverable state.

    Attributes:
        stage: The stage that failed (planning, step N, summary, answer).
        cause: The underlying failure description.
    """

    def __init__(self, stage: str, cause: str):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause
