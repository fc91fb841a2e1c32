"""Pydantic configuration models for Construct.

This module defines all configuration models used throughout Construct.
For loading logic, see loader.py.
"""

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class CachePolicyConfig(BaseModel):
    """Native prompt caching preference for a provider."""

    max_age_seconds: int = Field(default=300, ge=1, description="Requested cache lifetime in seconds")


class ProviderConfig(BaseModel):
    """Configuration for a single named language-model provider."""

    protocol: str = Field(
        default="openai",
        description="Backend protocol: openai, anthropic (claude), groq, xai, gemini, zai, deepseek",
    )
    model: str | None = Field(default=None, description="Default model identifier")
    endpoint: str | None = Field(default=None, description="Override API base URL")
    api_key: str | None = Field(default=None, description="API key for the provider")
    api_key_env: str | None = Field(default=None, description="Environment variable holding the API key")
    requests_per_minute: int | None = Field(default=None, ge=1, description="Request budget per 60s window")
    rate_limit_mode: Literal["wait", "fail"] = Field(
        default="wait", description="Over-budget behavior: wait in queue or fail fast"
    )
    max_queued_requests: int = Field(default=16, ge=0, description="Max requests waiting for budget")
    model_order: list[str] = Field(default_factory=list, description="Preferred models, most preferred first")
    model_fallbacks: list[str] = Field(default_factory=list, description="Models tried when others are unavailable")
    temperature: float | None = Field(default=None, description="Default sampling temperature")
    max_tokens: int | None = Field(default=None, description="Default completion token limit")
    cache: CachePolicyConfig | None = Field(default=None, description="Native caching preference")
    extra_params: dict[str, Any] = Field(default_factory=dict, description="Extra model constructor kwargs")

    model_config = {"extra": "allow"}

    @field_validator("protocol")
    @classmethod
    def normalize_protocol(cls, v: str) -> str:
        return v.strip().lower()

    def resolve_api_key(self) -> str | None:
        """Return the explicit API key, falling back to the configured env var."""
        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


class TimeoutTiersConfig(BaseModel):
    """Command timeout tiers in seconds."""

    short: float = Field(default=30, gt=0, description="Timeout for ordinary commands")
    medium: float = Field(default=120, gt=0, description="Timeout for medium_commands")
    long: float = Field(default=600, gt=0, description="Timeout for long_commands and admin raw commands")


class CommandsConfig(BaseModel):
    """Command classification lists and timeout tiers."""

    allowed: list[str] = Field(default_factory=list, description="Executables that run without asking")
    ask: list[str] = Field(default_factory=list, description="Executables that need confirmation")
    blocked: list[str] = Field(
        default_factory=lambda: ["mkfs", "dd", "shutdown", "reboot", "halt", "poweroff", "chown"],
        description="Executables that never run",
    )
    default: Literal["allow", "ask", "block"] = Field(
        default="ask", description="Policy for executables in no list"
    )
    precedence: Literal["restrictive", "allowed_first"] = Field(
        default="restrictive",
        description="Tie-break when a name is in several lists",
    )
    timeouts: TimeoutTiersConfig = Field(default_factory=TimeoutTiersConfig)
    medium_commands: list[str] = Field(default_factory=list, description="Executables in the medium tier")
    long_commands: list[str] = Field(
        default_factory=lambda: ["cargo", "npm", "yarn", "pip", "docker", "make"],
        description="Executables in the long tier",
    )

    @field_validator("allowed", "ask", "blocked", "medium_commands", "long_commands")
    @classmethod
    def strip_names(cls, v: list[str]) -> list[str]:
        return [name.strip() for name in v if name.strip()]


class ExecutorConfig(BaseModel):
    """Sandboxed command executor settings."""

    grace_seconds: float = Field(default=5.0, ge=0, description="Wait after SIGTERM before SIGKILL")
    max_output_chars: int = Field(default=100_000, ge=1, description="Output truncation limit")


class SystemConfig(BaseModel):
    """Process-wide settings."""

    projects_dir: Path = Field(default=Path("projects"), description="Root that every project lives under")
    data_dir: Path = Field(default=Path("data"), description="Directory for orchestrator state")
    admin: list[str] = Field(default_factory=list, description="Principals allowed to run raw commands")
    default_provider: str | None = Field(default=None, description="Provider bound to new sessions")


class FeedConfig(BaseModel):
    """Progressive feed rendering settings."""

    capacity: int = Field(default=15, ge=1, description="Entries shown in Active mode")
    output_chars: int = Field(default=300, ge=0, description="Output snippet limit per entry")
    summary_chars: int = Field(default=500, ge=1, description="Squashed summary line limit")


class WorkflowConfig(BaseModel):
    """Task workflow engine settings."""

    continue_on_error: bool = Field(default=False, description="Keep executing after a failed step")
    history_context_chars: int = Field(
        default=2000, ge=0, description="Command history tail included in planning context"
    )


class LaneConfig(BaseModel):
    """Session lane settings."""

    max_concurrency: int = Field(default=4, ge=1, description="Sessions processed in parallel")


class LoggingConfig(BaseModel):
    """Configuration for logging system."""

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    directory: str = Field(default="logs", description="Directory for log files")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB before rotation")
    backup_count: int = Field(default=5, description="Number of backup log files to keep")
    per_project: bool = Field(default=False, description="Create separate log files per project")


class Config(BaseModel):
    """Root configuration for Construct."""

    providers: dict[str, ProviderConfig] = Field(default_factory=dict, description="Named providers")
    commands: CommandsConfig = Field(default_factory=CommandsConfig)
    executor: ExecutorConfig = Field(default_factory=ExecutorConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)
    lanes: LaneConfig = Field(default_factory=LaneConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    model_config = {"extra": "allow"}

    @model_validator(mode="after")
    def check_default_provider(self) -> "Config":
        default = self.system.default_provider
        if default is not None and default not in self.providers:
            raise ValueError(
                f"system.default_provider '{default}' is not a configured provider. "
                f"Configured: {', '.join(sorted(self.providers)) or 'none'}"
            )
        return self

    @property
    def default_provider(self) -> str | None:
        """Provider bound to new sessions: explicit default, else the first configured."""
        if self.system.default_provider:
            return self.system.default_provider
        return next(iter(self.providers), None)
