"""Sandboxed command execution."""

from construct.executor.classification import (
    Classification,
    ClassificationResult,
    CommandClassifier,
    TimeoutTier,
)
from construct.executor.runner import CommandExecutor, CommandOutcome
from construct.executor.sandbox import ensure_within_root, resolve_sandboxed_path

__all__ = [
    "Classification",
    "ClassificationResult",
    "CommandClassifier",
    "CommandExecutor",
    "CommandOutcome",
    "TimeoutTier",
    "ensure_within_root",
    "resolve_sandboxed_path",
]
