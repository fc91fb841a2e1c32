"""Command classification against the configured allow, ask, and block lists.

Classification is pure: it inspects the command text only and never touches
the filesystem or spawns anything.
"""

import os
import re
import shlex
from dataclasses import dataclass, field
from enum import StrEnum

from construct.core.config.models import CommandsConfig


class Classification(StrEnum):
    ALLOWED = "allowed"
    ASK = "ask"
    BLOCKED = "blocked"

    @property
    def severity(self) -> int:
        return {Classification.ALLOWED: 0, Classification.ASK: 1, Classification.BLOCKED: 2}[self]


class TimeoutTier(StrEnum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one command line.

    Attributes:
        classification: The most restrictive classification across all chained parts.
        reason: Human-readable explanation for ask/blocked results.
        executables: Executable names found, in order.
    """

    classification: Classification
    reason: str = ""
    executables: tuple[str, ...] = field(default_factory=tuple)


# Operators that chain separate commands
_CHAIN_OPERATORS = {"&&", "||", ";", "|", "&", ";;", "|&"}
# Executables that wrap another command and are skipped to find the real one
_WRAPPERS = {"sudo", "doas", "env", "nohup", "time", "nice", "exec", "command"}
# Wrappers that run a command with elevated privilege
_ELEVATION_WRAPPERS = {"sudo", "doas", "su", "pkexec"}
ELEVATION_REASON = "elevated privilege requires the admin raw path"
_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")
_SUBSHELL_MARKERS = ("$(", "`", "<(", ">(")


def split_chain(command: str) -> list[list[str]]:
    """Split a command line into the token lists of its chained parts.

    Quotes are honored, so operators inside quoted strings do not split.
    Newlines separate commands like `;`.

    Raises:
        ValueError: If the command cannot be tokenized (e.g. unbalanced quotes).

    Examples:
        >>> split_chain("cd src && ls -la | grep py")
        [['cd', 'src'], ['ls', '-la'], ['grep', 'py']]
    """
    lexer = shlex.shlex(command.replace("\n", " ; "), posix=True, punctuation_chars=True)
    lexer.whitespace_split = True
    parts: list[list[str]] = [[]]
    for token in lexer:
        if token in _CHAIN_OPERATORS:
            parts.append([])
        else:
            parts[-1].append(token)
    return [part for part in parts if part]


def executable_name(tokens: list[str]) -> str | None:
    """Return the executable a token list runs, unwrapping sudo-style prefixes.

    Leading variable assignments, subshell parentheses, wrapper commands and
    their option flags are skipped. Paths are reduced to their basename.

    Examples:
        >>> executable_name(["sudo", "-u", "deploy", "/usr/bin/rm", "-rf", "x"])
        'rm'
    """
    i = 0
    skipping_wrapper_options = False
    while i < len(tokens):
        token = tokens[i]
        if token in ("(", ")", "{", "}") or _ASSIGNMENT.match(token):
            i += 1
            continue
        if token in _WRAPPERS:
            skipping_wrapper_options = True
            i += 1
            continue
        if skipping_wrapper_options and token.startswith("-"):
            # sudo -u <user> takes a value
            if token in ("-u", "-g"):
                i += 1
            i += 1
            continue
        return os.path.basename(token) or None
    return None


def elevation_wrapper(tokens: list[str]) -> str | None:
    """Return the privilege-elevating wrapper a token list runs through, if any.

    Only command positions count: leading wrappers and the executable itself,
    never arguments.

    Examples:
        >>> elevation_wrapper(["env", "FOO=1", "sudo", "-n", "true"])
        'sudo'
        >>> elevation_wrapper(["grep", "su", "notes.txt"]) is None
        True
    """
    for token in tokens:
        if token in ("(", ")", "{", "}") or _ASSIGNMENT.match(token):
            continue
        name = os.path.basename(token)
        if name in _ELEVATION_WRAPPERS:
            return name
        if name not in _WRAPPERS and not token.startswith("-"):
            return None
    return None


class CommandClassifier:
    """Classifies commands and picks their timeout tier.

    Example:
        >>> classifier = CommandClassifier(CommandsConfig(allowed=["ls"], blocked=["rm"]))
        >>> classifier.classify("ls && rm -rf build").classification
        <Classification.BLOCKED: 'blocked'>
    """

    def __init__(self, config: CommandsConfig):
        self.config = config
        self._allowed = set(config.allowed)
        self._ask = set(config.ask)
        self._blocked = set(config.blocked)
        self._medium = set(config.medium_commands)
        self._long = set(config.long_commands)

    def classify_name(self, name: str) -> Classification:
        """Classify a single executable name.

        `blocked` always wins. Between `ask` and `allowed` the configured
        precedence decides; names in no list get the default policy.
        """
        if name in self._blocked:
            return Classification.BLOCKED
        if self.config.precedence == "allowed_first":
            order = ((self._allowed, Classification.ALLOWED), (self._ask, Classification.ASK))
        else:
            order = ((self._ask, Classification.ASK), (self._allowed, Classification.ALLOWED))
        for names, classification in order:
            if name in names:
                return classification
        return {
            "allow": Classification.ALLOWED,
            "block": Classification.BLOCKED,
        }.get(self.config.default, Classification.ASK)

    def classify(self, command: str) -> ClassificationResult:
        """Classify a full command line.

        Every chained part is classified and the most restrictive result wins.
        Subshell constructs force at least `ask` because their contents cannot
        be inspected reliably.
        """
        if not command.strip():
            return ClassificationResult(Classification.BLOCKED, "empty command")

        try:
            parts = split_chain(command)
        except ValueError as e:
            return ClassificationResult(Classification.ASK, f"could not parse command: {e}")

        executables: list[str] = []
        result = Classification.ALLOWED
        reason = ""
        for tokens in parts:
            elevation = elevation_wrapper(tokens)
            if elevation is not None:
                executables.append(elevation)
                if result != Classification.BLOCKED:
                    result = Classification.BLOCKED
                    reason = ELEVATION_REASON
                continue
            wrapper = next((t for t in tokens if t in _WRAPPERS and t in self._blocked), None)
            if wrapper is not None:
                executables.append(wrapper)
                result = Classification.BLOCKED
                reason = f"'{wrapper}' is blocked"
                continue
            name = executable_name(tokens)
            if name is None:
                continue
            executables.append(name)
            classification = self.classify_name(name)
            if classification.severity > result.severity:
                result = classification
                reason = f"'{name}' is {self._describe(name, classification)}"

        if not executables:
            return ClassificationResult(Classification.BLOCKED, "no executable found", ())

        if any(marker in command for marker in _SUBSHELL_MARKERS) and result == Classification.ALLOWED:
            result = Classification.ASK
            reason = "command contains a subshell"

        return ClassificationResult(result, reason, tuple(executables))

    def _describe(self, name: str, classification: Classification) -> str:
        listed = (
            (classification == Classification.BLOCKED and name in self._blocked)
            or (classification == Classification.ASK and name in self._ask)
        )
        if listed:
            return "blocked" if classification == Classification.BLOCKED else "marked ask"
        return f"not listed (default: {self.config.default})"

    def tier_for(self, command: str) -> TimeoutTier:
        """Pick the timeout tier: the longest tier of any chained executable."""
        try:
            names = [executable_name(tokens) for tokens in split_chain(command)]
        except ValueError:
            return TimeoutTier.SHORT
        if any(name in self._long for name in names):
            return TimeoutTier.LONG
        if any(name in self._medium for name in names):
            return TimeoutTier.MEDIUM
        return TimeoutTier.SHORT

    def timeout_for(self, command: str) -> float:
        """Return the timeout in seconds for a command."""
        return self.seconds(self.tier_for(command))

    def seconds(self, tier: TimeoutTier) -> float:
        return float(getattr(self.config.timeouts, tier.value))
