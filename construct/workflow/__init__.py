"""Task workflow: planning, approval, execution and summary."""

from construct.workflow.cancellation import CancellationToken
from construct.workflow.engine import WorkflowEngine
from construct.workflow.plan_parser import parse_plan

__all__ = ["CancellationToken", "WorkflowEngine", "parse_plan"]
