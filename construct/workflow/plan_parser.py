"""Extraction of ordered plan steps from provider responses."""

import re

from construct.core.errors import PlanParseError
from construct.model.task import Plan, Step

_CHECKBOX = re.compile(r"^\s*[-*+]\s*\[[ xX]\]\s+(?P<text>.+?)\s*$")
_NUMBERED = re.compile(r"^\s*(?:\*\*)?(?:step\s+)?\d+[.):](?:\*\*)?\s+(?P<text>.+?)\s*$", re.IGNORECASE)
_TRAILING_CODE = re.compile(r"^(?P<desc>.*?)[\s:\-]*`(?P<code>[^`]+)`\s*\.?$")
_FENCE_OPEN = re.compile(r"^\s*```\s*(?P<lang>[\w+-]*)\s*$")
_FENCE_CLOSE = re.compile(r"^\s*```\s*$")
_SHELL_LANGS = {"", "bash", "sh", "shell", "console", "zsh"}


def _split_command(text: str) -> tuple[str, str | None]:
    """Split a step line into (description, trailing inline command)."""
    match = _TRAILING_CODE.match(text)
    if not match:
        return text.strip(), None
    description = match.group("desc").strip().rstrip(":").strip()
    command = match.group("code").strip()
    return description or command, command or None


def _clean_block(lines: list[str]) -> str | None:
    commands = []
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("$ "):
            stripped = stripped[2:]
        commands.append(stripped)
    return "\n".join(commands) or None


def parse_plan(text: str) -> Plan:
    """Parse a markdown plan into ordered steps.

    Steps are checklist items (``- [ ] ...``) or numbered lines (``1. ...``).
    A step's command is a trailing inline code span, or the shell fenced block
    that directly follows the step line when the step has no inline command.

    Raises:
        PlanParseError: If no steps are found.

    Examples:
        >>> plan = parse_plan("- [ ] Run tests `pytest -q`\\n- [ ] Review output")
        >>> [(s.description, s.command) for s in plan.steps]
        [('Run tests', 'pytest -q'), ('Review output', None)]
    """
    steps: list[Step] = []
    fence_lines: list[str] | None = None
    fence_is_shell = False

    for line in text.splitlines():
        if fence_lines is not None:
            if _FENCE_CLOSE.match(line):
                if fence_is_shell and steps and steps[-1].command is None:
                    steps[-1].command = _clean_block(fence_lines)
                fence_lines = None
            else:
                fence_lines.append(line)
            continue

        fence = _FENCE_OPEN.match(line)
        if fence:
            fence_lines = []
            fence_is_shell = fence.group("lang").lower() in _SHELL_LANGS
            continue

        match = _CHECKBOX.match(line) or _NUMBERED.match(line)
        if match:
            description, command = _split_command(match.group("text"))
            steps.append(Step(index=len(steps), description=description, command=command))

    if not steps:
        raise PlanParseError("The response did not contain any plan steps")

    return Plan(steps=steps, raw_text=text.strip())
