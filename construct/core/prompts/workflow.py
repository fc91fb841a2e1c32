"""Provider prompt templates for planning, re-planning, and summarizing."""

from langchain_core.prompts import PromptTemplate

PLANNING_SYSTEM_PROMPT = (
    "You are the planning agent of a supervised engineering orchestrator. "
    "Turn the user's goal into a short, ordered plan that a human will review "
    "before anything runs.\n\n"
    "Format every step as a markdown checklist item:\n"
    "- [ ] Description of the step `single shell command`\n\n"
    "Put the shell command for a step in a trailing inline code span, or in a "
    "```bash fenced block directly below the step when it spans several lines. "
    "Steps that need no command are allowed and act as checkpoints. "
    "Commands run from the project root. Do not use sudo."
)

PLANNING_TEMPLATE = PromptTemplate(
    template=(
        "Goal:\n{goal}\n\n"
        "Project roadmap:\n{roadmap}\n\n"
        "Open tasks:\n{tasks}\n\n"
        "Recent command history:\n{history}"
    ),
    input_variables=["goal", "roadmap", "tasks", "history"],
)

REPLAN_TEMPLATE = PromptTemplate(
    template=(
        "Goal:\n{goal}\n\n"
        "Project roadmap:\n{roadmap}\n\n"
        "Open tasks:\n{tasks}\n\n"
        "Previously proposed plan:\n{plan}\n\n"
        "The reviewer asked for these changes:\n{feedback}\n\n"
        "Produce the complete revised plan."
    ),
    input_variables=["goal", "roadmap", "tasks", "plan", "feedback"],
)

SUMMARY_SYSTEM_PROMPT = (
    "You summarize completed engineering work for a project log. "
    "Write two or three plain sentences: what was done and anything that failed or was skipped."
)

SUMMARY_TEMPLATE = PromptTemplate(
    template="Goal:\n{goal}\n\nStep results:\n{results}",
    input_variables=["goal", "results"],
)

# Used when nothing is known about a context section
EMPTY_SECTION = "(none)"

ASK_SYSTEM_PROMPT = (
    "You answer questions about a software project for its maintainers. "
    "Use the roadmap, open tasks and command history below as context. "
    "Answer directly and briefly; you cannot run commands."
)

ASK_TEMPLATE = PromptTemplate(
    template=(
        "Project roadmap:\n{roadmap}\n\n"
        "Open tasks:\n{tasks}\n\n"
        "Recent command history:\n{history}\n\n"
        "Question:\n{question}"
    ),
    input_variables=["roadmap", "tasks", "history", "question"],
)
