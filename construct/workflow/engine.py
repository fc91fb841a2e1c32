"""Task workflow engine: plan, approve, execute, summarize.

The engine owns every workflow state transition of a session's task. It is
called only from the session's lane worker, so transitions for one session
never interleave.

Every transition is applied to a copy of the task, persisted, and only then
installed as the session's current task. A failed persist therefore leaves
the in-memory task at the last state that reached disk.
"""

import copy
import logging
from typing import TYPE_CHECKING

from construct.core.config.models import WorkflowConfig
from construct.core.errors import (
    ConfirmationRequired,
    ExecutionDenied,
    ExecutionTimedOut,
    InvalidTransitionError,
    PlanParseError,
    ProviderError,
    UnknownProviderError,
    WorkflowStageError,
)
from construct.core.prompts.notices import (
    PLAN_PROPOSED_TEMPLATE,
    STEP_CONFIRM_TEMPLATE,
    STEP_HALTED_TEMPLATE,
    TASK_COMPLETE_TEMPLATE,
    TASK_REJECTED,
)
from construct.core.prompts.workflow import (
    ASK_SYSTEM_PROMPT,
    ASK_TEMPLATE,
    EMPTY_SECTION,
    PLANNING_SYSTEM_PROMPT,
    PLANNING_TEMPLATE,
    REPLAN_TEMPLATE,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_TEMPLATE,
)
from construct.core.utils import first_line, utc_now
from construct.executor.runner import CommandExecutor
from construct.model.events import FeedEvent, FeedEventKind
from construct.model.task import Plan, Step, StepStatus, Task, WorkflowState
from construct.providers.client import ProviderClient
from construct.providers.types import ChatMessage, CompletionContext
from construct.workflow.plan_parser import parse_plan

if TYPE_CHECKING:
    from construct.runtime.session.session import Session

logger = logging.getLogger(__name__)


class WorkflowEngine:
    """Drives a session's task through its workflow states.

    Lifecycle:
    1. `start_task` asks the provider for a plan -> AwaitingApproval
    2. `modify` re-plans with feedback, `reject` drops the task
    3. `approve` freezes the plan and runs steps in order
    4. A failed step halts execution; `approve` retries it, `skip` moves past it
    5. When every step is terminal the provider writes a summary -> Idle

    Nothing is retried automatically. Stage failures raise WorkflowStageError
    after leaving the task in a state the human can resume from.
    """

    def __init__(
        self,
        providers: ProviderClient,
        executor: CommandExecutor,
        config: WorkflowConfig | None = None,
    ):
        self.providers = providers
        self.executor = executor
        self.config = config or WorkflowConfig()

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _working_copy(session: "Session") -> Task:
        if session.task is None:
            raise InvalidTransitionError("No task in progress. Start one with .task <goal>.")
        return copy.deepcopy(session.task)

    @staticmethod
    def _commit(session: "Session", task: Task) -> None:
        session.task_store.save(task)
        session.task = task

    @staticmethod
    def _discard(session: "Session") -> None:
        session.task_store.clear()
        session.task = None

    @staticmethod
    def _require(task: Task, *states: WorkflowState) -> None:
        if task.state not in states:
            allowed = " or ".join(s.value for s in states)
            raise InvalidTransitionError(f"The task is {task.state.value}; this needs {allowed}.")

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    async def start_task(self, session: "Session", goal: str) -> str:
        """Create a task for `goal` and ask the provider for a plan.

        Returns:
            The plan notice for the room.

        Raises:
            InvalidTransitionError: If the session already has a task.
            WorkflowStageError: If planning failed; the task waits in
                AwaitingApproval without a plan so `.modify` can re-plan.
        """
        if session.task is not None:
            raise InvalidTransitionError(
                f"A task is already {session.task.state.value}: {first_line(session.task.goal)}. "
                "Finish it, or use .stop to abort it."
            )
        goal = goal.strip()
        if not goal:
            raise InvalidTransitionError("Usage: .task <goal>")

        task = Task(goal=goal, state=WorkflowState.PLANNING)
        self._commit(session, task)
        session.token.reset()
        session.emit(FeedEvent(FeedEventKind.TASK_STARTED, goal))
        session.emit(FeedEvent(FeedEventKind.ACTIVITY, f"Planning with {session.provider_name}"))
        logger.info(f"Task {task.id} started for {session.key}: {first_line(goal)}")

        return await self._propose(session, previous=None, feedback=None)

    async def modify(self, session: "Session", feedback: str) -> str:
        """Re-plan the awaiting task with reviewer feedback.

        An empty feedback string simply retries planning.

        Raises:
            InvalidTransitionError: If no task is awaiting approval.
            WorkflowStageError: If planning failed; the prior plan is kept.
        """
        task = self._working_copy(session)
        self._require(task, WorkflowState.AWAITING_APPROVAL)
        feedback = feedback.strip()

        previous = task.plan
        task.state = WorkflowState.PLANNING
        if feedback:
            task.feedback.append(feedback)
        self._commit(session, task)
        session.emit(FeedEvent(FeedEventKind.ACTIVITY, f"Revising plan: {feedback}" if feedback else "Re-planning"))

        return await self._propose(session, previous=previous, feedback=feedback)

    async def _propose(self, session: "Session", previous: Plan | None, feedback: str | None) -> str:
        task = self._working_copy(session)
        try:
            plan = await self._request_plan(session, task, previous, feedback)
        except (ProviderError, PlanParseError) as e:
            task.state = WorkflowState.AWAITING_APPROVAL
            task.plan = previous
            task.error = f"planning: {e}"
            self._commit(session, task)
            session.emit(FeedEvent(FeedEventKind.FAILURE, f"Planning failed: {e}", success=False))
            logger.warning(f"Planning failed for task {task.id}: {e}")
            raise WorkflowStageError("planning", str(e)) from e

        task.plan = plan
        task.state = WorkflowState.AWAITING_APPROVAL
        task.error = None
        self._commit(session, task)
        session.emit(
            FeedEvent(FeedEventKind.PLAN_PROPOSED, f"Plan proposed ({len(plan.steps)} steps)", success=True)
        )
        return PLAN_PROPOSED_TEMPLATE.format(goal=first_line(task.goal), steps=plan.render())

    async def _request_plan(
        self,
        session: "Session",
        task: Task,
        previous: Plan | None,
        feedback: str | None,
    ) -> Plan:
        context = session.files.read_context()
        roadmap = context["roadmap"] or EMPTY_SECTION
        tasks = context["tasks"] or EMPTY_SECTION

        if previous is not None or feedback:
            prompt = REPLAN_TEMPLATE.format(
                goal=task.goal,
                roadmap=roadmap,
                tasks=tasks,
                plan=previous.raw_text if previous else EMPTY_SECTION,
                feedback="\n".join(f"- {item}" for item in task.feedback) or EMPTY_SECTION,
            )
        else:
            prompt = PLANNING_TEMPLATE.format(
                goal=task.goal,
                roadmap=roadmap,
                tasks=tasks,
                history=session.history.tail(self.config.history_context_chars) or EMPTY_SECTION,
            )

        response = await self._complete(session, PLANNING_SYSTEM_PROMPT, prompt)
        return parse_plan(response)

    async def _complete(self, session: "Session", system_prompt: str, prompt: str) -> str:
        if not session.provider_name:
            raise UnknownProviderError("No provider selected. Use .provider <name>.", "none")
        session.token.raise_if_cancelled()
        response = await self.providers.complete(
            session.provider_name,
            CompletionContext(
                messages=[ChatMessage.system(system_prompt), ChatMessage.user(prompt)],
            ),
        )
        return response.content

    async def ask(self, session: "Session", question: str) -> str:
        """Answer a one-off question with the project as context.

        The session's task, if any, is left untouched. The exchange is
        recorded in the command history.

        Raises:
            WorkflowStageError: If the provider could not answer.
        """
        question = question.strip()
        if not question:
            return "Usage: .ask <question>"

        context = session.files.read_context()
        prompt = ASK_TEMPLATE.format(
            roadmap=context["roadmap"] or EMPTY_SECTION,
            tasks=context["tasks"] or EMPTY_SECTION,
            history=session.history.tail(self.config.history_context_chars) or EMPTY_SECTION,
            question=question,
        )
        try:
            answer = await self._complete(session, ASK_SYSTEM_PROMPT, prompt)
        except ProviderError as e:
            logger.warning(f"Question in {session.key} failed: {e}")
            raise WorkflowStageError("answer", str(e)) from e

        session.history.log_note(f"❓ **Question**: {question}\n\n{answer.strip()}")
        return answer.strip()

    async def reject(self, session: "Session") -> str:
        """Drop the task awaiting approval."""
        task = self._working_copy(session)
        self._require(task, WorkflowState.AWAITING_APPROVAL)
        self._discard(session)
        session.emit(FeedEvent(FeedEventKind.TASK_REJECTED, f"🗑 {first_line(task.goal)} (rejected)"))
        logger.info(f"Task {task.id} rejected")
        return f"{TASK_REJECTED}: {first_line(task.goal)}"

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def approve(self, session: "Session") -> str:
        """Approve the plan, or resume a halted execution.

        From AwaitingApproval this freezes the plan and starts at step 1.
        From a halted Executing state it retries the failed step, or runs the
        step that was waiting for confirmation. Succeeded steps never re-run.

        Raises:
            InvalidTransitionError: If there is nothing to approve.
            WorkflowStageError: If the summary could not be written.
        """
        task = self._working_copy(session)
        confirmed_index: int | None = None

        if task.state == WorkflowState.AWAITING_APPROVAL:
            if task.plan is None:
                raise InvalidTransitionError("There is no plan to approve. Use .modify to re-plan.")
            task.plan.approved = True
            task.state = WorkflowState.EXECUTING
            task.error = None
            self._commit(session, task)
            session.emit(FeedEvent(FeedEventKind.PLAN_APPROVED, "Plan approved", success=True))
            logger.info(f"Task {task.id} approved ({len(task.plan.steps)} steps)")
        elif task.state == WorkflowState.EXECUTING:
            confirmed_index = task.awaiting_confirmation
            if task.halted_at is not None:
                self._reopen_from(task, task.halted_at, retry=True)
            task.halted_at = None
            task.awaiting_confirmation = None
            task.error = None
            self._commit(session, task)
            session.emit(FeedEvent(FeedEventKind.ACTIVITY, "Resuming execution"))
        else:
            self._require(task, WorkflowState.AWAITING_APPROVAL, WorkflowState.EXECUTING)

        session.token.reset()
        return await self._run_steps(session, confirmed_index)

    async def skip(self, session: "Session") -> str:
        """Skip the halted or confirmation-pending step and continue."""
        task = self._working_copy(session)
        self._require(task, WorkflowState.EXECUTING)
        index = task.awaiting_confirmation if task.awaiting_confirmation is not None else task.halted_at
        if index is None or task.plan is None:
            raise InvalidTransitionError("No step is waiting. Use .approve to continue.")

        step = task.plan.steps[index]
        step.status = StepStatus.SKIPPED
        self._reopen_from(task, index + 1, retry=False)
        task.halted_at = None
        task.awaiting_confirmation = None
        task.error = None
        self._commit(session, task)
        session.emit(FeedEvent(FeedEventKind.ACTIVITY, f"Step {step.number} skipped", icon="⏭"))

        session.token.reset()
        return await self._run_steps(session, None)

    @staticmethod
    def _reopen_from(task: Task, index: int, retry: bool) -> None:
        """Return steps skipped by a halt to pending, starting at `index`.

        With `retry`, the failed step at `index` is reset too.
        """
        assert task.plan is not None
        for step in task.plan.steps[index:]:
            if step.status == StepStatus.SKIPPED or (retry and step.index == index and step.status == StepStatus.FAILED):
                step.status = StepStatus.PENDING
                step.output = ""
                step.exit_code = None
                step.error = None

    async def _run_steps(self, session: "Session", confirmed_index: int | None) -> str:
        while True:
            session.token.raise_if_cancelled()
            task = self._working_copy(session)
            assert task.plan is not None
            step = task.plan.next_pending()
            if step is None:
                break

            step.status = StepStatus.RUNNING
            self._commit(session, task)
            label = f"Step {step.number}: {step.description}"
            session.emit(FeedEvent(FeedEventKind.STEP_STARTED, label))

            task = self._working_copy(session)
            assert task.plan is not None
            step = task.plan.steps[step.index]
            failure = await self._run_step(session, step, confirmed=step.index == confirmed_index)

            if isinstance(failure, ConfirmationRequired):
                step.status = StepStatus.PENDING
                task.awaiting_confirmation = step.index
                self._commit(session, task)
                session.emit(FeedEvent(FeedEventKind.STEP_FINISHED, label, icon="⚠️"))
                return STEP_CONFIRM_TEMPLATE.format(number=step.number, command=step.command, reason=failure.reason)

            if failure is None:
                step.status = StepStatus.SUCCEEDED
                self._commit(session, task)
                session.emit(FeedEvent(FeedEventKind.STEP_FINISHED, label, success=True))
                continue

            step.status = StepStatus.FAILED
            step.error = failure
            if self.config.continue_on_error:
                self._commit(session, task)
                session.emit(FeedEvent(FeedEventKind.STEP_FINISHED, label, success=False))
                continue

            # Halt: later steps are not run in this pass
            for later in task.plan.steps[step.index + 1:]:
                if later.status == StepStatus.PENDING:
                    later.status = StepStatus.SKIPPED
            task.halted_at = step.index
            task.error = f"step {step.number}: {failure}"
            self._commit(session, task)
            session.emit(FeedEvent(FeedEventKind.STEP_FINISHED, label, success=False))
            for later in task.plan.steps[step.index + 1:]:
                if later.status == StepStatus.SKIPPED:
                    session.emit(
                        FeedEvent(FeedEventKind.ACTIVITY, f"Step {later.number}: {later.description}", icon="⏭")
                    )
            logger.warning(f"Task {task.id} halted at step {step.number}: {failure}")
            return STEP_HALTED_TEMPLATE.format(number=step.number, cause=failure)

        return await self._summarize(session)

    async def _run_step(self, session: "Session", step: Step, confirmed: bool) -> str | ConfirmationRequired | None:
        """Run one step's command, recording its output on the step.

        Returns:
            None on success, the ConfirmationRequired error when the command
            needs confirmation, otherwise a failure description.
        """
        if not step.command:
            return None

        session.token.raise_if_cancelled()
        try:
            outcome = await self.executor.execute(
                step.command,
                session.project_path,
                confirmed=confirmed,
                listener=session.emit,
            )
        except ConfirmationRequired as e:
            return e
        except ExecutionDenied as e:
            step.error = e.reason
            session.history.log_command(step.command, e.reason, success=False, note=f"step {step.number} denied")
            return f"denied: {e.reason}"
        except ExecutionTimedOut as e:
            step.output = (e.stdout + e.stderr).strip()
            session.history.log_command(step.command, step.output, success=False, note=f"step {step.number} timed out")
            return f"timed out after {e.timeout:g}s"

        step.output = outcome.format()
        step.exit_code = outcome.exit_code
        session.history.log_command(step.command, step.output, success=outcome.success, note=f"step {step.number}")
        if outcome.success:
            return None
        return f"exit code {outcome.exit_code}"

    # ------------------------------------------------------------------
    # Summarizing
    # ------------------------------------------------------------------

    async def _summarize(self, session: "Session") -> str:
        task = self._working_copy(session)
        assert task.plan is not None
        task.state = WorkflowState.SUMMARIZING
        self._commit(session, task)
        session.emit(FeedEvent(FeedEventKind.TASK_SUMMARIZING, task.goal))

        counts = task.plan.counts()
        fallback = (
            f"Completed {counts[StepStatus.SUCCEEDED]}/{len(task.plan.steps)} steps "
            f"({counts[StepStatus.FAILED]} failed, {counts[StepStatus.SKIPPED]} skipped)."
        )
        results = "\n".join(
            f"{step.number}. [{step.status.value}] {step.description}"
            + (f" (exit {step.exit_code})" if step.exit_code not in (None, 0) else "")
            for step in task.plan.steps
        )

        failure: ProviderError | None = None
        try:
            summary = (
                await self._complete(
                    session,
                    SUMMARY_SYSTEM_PROMPT,
                    SUMMARY_TEMPLATE.format(goal=task.goal, results=results),
                )
            ).strip() or fallback
        except ProviderError as e:
            logger.warning(f"Summary failed for task {task.id}, using fallback: {e}")
            summary = fallback
            failure = e

        session.files.append_summary(task.goal, summary)
        task.completed_at = utc_now()
        self._discard(session)
        session.emit(FeedEvent(FeedEventKind.TASK_SUMMARIZED, f"✅ {first_line(task.goal)}: {summary}"))
        logger.info(f"Task {task.id} complete: {fallback}")

        if failure is not None:
            raise WorkflowStageError("summary", f"{failure} (recorded: {fallback})") from failure
        return TASK_COMPLETE_TEMPLATE.format(summary=summary)

    # ------------------------------------------------------------------
    # Abort and project completion
    # ------------------------------------------------------------------

    async def abort(self, session: "Session") -> Task | None:
        """Return the session to Idle, discarding its task.

        Succeeded steps keep their status; steps that had not finished are
        marked skipped. The caller is responsible for cancelling in-flight
        work before calling this.

        Returns:
            The aborted task in its final form, or None if there was none.
        """
        if session.task is None:
            session.token.reset()
            return None

        task = copy.deepcopy(session.task)
        if task.plan is not None:
            for step in task.plan.steps:
                if step.status in (StepStatus.PENDING, StepStatus.RUNNING):
                    step.status = StepStatus.SKIPPED
        task.state = WorkflowState.IDLE
        task.completed_at = utc_now()

        self._discard(session)
        session.token.reset()

        if task.plan is not None and task.plan.approved:
            counts = task.plan.counts()
            session.history.log_note(
                f"⏹ Task stopped: {first_line(task.goal)} "
                f"({counts[StepStatus.SUCCEEDED]} succeeded, {counts[StepStatus.SKIPPED]} skipped)"
            )
        session.emit(FeedEvent(FeedEventKind.TASK_ABORTED, f"⏹ {first_line(task.goal)} (stopped)"))
        logger.info(f"Task {task.id} aborted for {session.key}")
        return task

    async def finish_project(self, session: "Session") -> str:
        """Mark the project complete and turn the feed into its final summary."""
        if session.task is not None:
            raise InvalidTransitionError(
                f"A task is still {session.task.state.value}. Finish it or .stop it first."
            )
        session.emit(FeedEvent(FeedEventKind.PROJECT_DONE, "Project complete"))
        session.history.log_note("🏁 Project marked complete")
        return f"🏁 {session.project_name} marked complete."

    def describe(self, session: "Session") -> str:
        """Render the session's workflow status for the `.status` command."""
        lines = [f"📁 {session.project_name} ({session.provider_name or 'no provider'})"]
        task = session.task
        if task is None:
            lines.append("State: idle")
            return "\n".join(lines)

        lines.append(f"State: {task.state.value}")
        lines.append(f"Task: {first_line(task.goal)}")
        if task.awaiting_confirmation is not None:
            lines.append(f"Waiting for confirmation of step {task.awaiting_confirmation + 1}")
        elif task.halted_at is not None:
            lines.append(f"Halted at step {task.halted_at + 1}")
        if task.error:
            lines.append(f"Last error: {task.error}")
        if task.plan is not None:
            lines.append("")
            lines.append(task.plan.render())
        return "\n".join(lines)
