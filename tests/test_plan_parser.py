"""Tests for extracting plan steps from provider responses."""

import pytest

from construct.core.errors import PlanParseError
from construct.model.task import StepStatus
from construct.workflow.plan_parser import parse_plan


def test_numbered_steps_with_inline_commands():
    plan = parse_plan(
        "Plan:\n\n1. Add a validator module `touch validators.py`\n2. Run the tests: `pytest -q`\n3. Review the diff\n"
    )

    assert [(s.index, s.description, s.command) for s in plan.steps] == [
        (0, "Add a validator module", "touch validators.py"),
        (1, "Run the tests", "pytest -q"),
        (2, "Review the diff", None),
    ]
    assert all(s.status == StepStatus.PENDING for s in plan.steps)
    assert plan.approved is False


def test_checklist_steps():
    plan = parse_plan("- [ ] Lint `ruff check .`\n- [x] Format `ruff format .`\n* [ ] Celebrate")
    assert [s.command for s in plan.steps] == ["ruff check .", "ruff format .", None]


def test_bold_step_labels():
    plan = parse_plan("**Step 1:** Build the image `docker build .`\n**2.** Ship it")
    assert [s.description for s in plan.steps] == ["Build the image", "Ship it"]
    assert plan.steps[0].command == "docker build ."


def test_fenced_shell_block_attaches_to_previous_step():
    text = "1. Install dependencies\n```bash\n$ pip install -r requirements.txt\n# then node\nnpm ci\n```\n2. Done"
    plan = parse_plan(text)
    assert plan.steps[0].command == "pip install -r requirements.txt\nnpm ci"
    assert plan.steps[1].command is None


def test_non_shell_fence_is_ignored():
    text = "1. Write the function\n```python\ndef f():\n    return 1\n```\n"
    plan = parse_plan(text)
    assert len(plan.steps) == 1
    assert plan.steps[0].command is None


def test_list_items_inside_fence_are_not_steps():
    text = "1. Create the file\n```\n1. not a step\n```\n2. Commit `git commit -am wip`"
    plan = parse_plan(text)
    assert [s.description for s in plan.steps] == ["Create the file", "Commit"]


def test_raw_text_is_kept():
    plan = parse_plan("  1. Only step `true`  \n")
    assert plan.raw_text == "1. Only step `true`"


def test_no_steps_raises():
    with pytest.raises(PlanParseError):
        parse_plan("I am not sure what you want me to do.")
