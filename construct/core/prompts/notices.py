"""Chat notice templates sent back to the originating room."""

from langchain_core.prompts import PromptTemplate

PLAN_PROPOSED_TEMPLATE = PromptTemplate(
    template=(
        "📋 Plan for: {goal}\n\n{steps}\n\n"
        "Reply .approve to run it, .modify <feedback> to revise, or .reject to drop it."
    ),
    input_variables=["goal", "steps"],
)

STEP_HALTED_TEMPLATE = PromptTemplate(
    template=(
        "❌ step {number} failed: {cause}\n"
        "Reply .approve to retry it, .skip to continue past it, or .stop to abort."
    ),
    input_variables=["number", "cause"],
)

STEP_CONFIRM_TEMPLATE = PromptTemplate(
    template=(
        "⚠️ step {number} wants to run `{command}` ({reason}).\n"
        "Reply .approve to run it, .skip to skip it, or .stop to abort."
    ),
    input_variables=["number", "command", "reason"],
)

TASK_COMPLETE_TEMPLATE = PromptTemplate(
    template="✅ Task complete: {summary}",
    input_variables=["summary"],
)

STAGE_FAILED_TEMPLATE = PromptTemplate(
    template="❌ {stage} failed: {cause}",
    input_variables=["stage", "cause"],
)

TASK_STOPPED = "⏹ Stopped. Completed steps were kept; remaining steps were skipped."
NOTHING_TO_STOP = "Nothing is running."
TASK_REJECTED = "🗑 Plan rejected"
