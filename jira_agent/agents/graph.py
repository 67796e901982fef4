"""
LangGraph workflow for Jira story creation with human-in-the-loop approval.

Graph shape:

    generate_story ──(error)──► END
          │
    format_preview ──(error)──► END
          │
    human_approval (interrupt) ◄──┐
          │                       │ pending
          ├── decision? ──────────┘
          │
    [approved]           [rejected]
          │                   │
    create_issue             END
          │
         END

The approval gate uses LangGraph's ``interrupt()``. State is checkpointed to
an in-process MemorySaver keyed by ``run_id``, so a run can be split into
``preview_story`` (runs up to the gate) and ``finalize_story`` (resumes with
the human answer). ``run_main_workflow`` chains both for interactive callers.
"""

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import StateGraph, END
from langgraph.types import Command
from jira_agent.agents.state import (
    IssueOptions,
    WorkflowState,
    initial_state,
    new_run_id,
)
from jira_agent.agents.nodes import (
    generate_story_node,
    format_preview_node,
    human_approval_node,
    create_issue_node,
)
from jira_agent.constants import (
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    OUTCOME_CREATED,
    OUTCOME_ERROR,
    OUTCOME_REJECTED,
)
from jira_agent.errors import RunNotFoundError
from jira_agent.schemas.workflow import PreviewedStory, TerminalState
from typing import Any, Awaitable, Callable, Dict, Optional, Union
import asyncio
import inspect
import logging

logger = logging.getLogger(__name__)

APPROVAL_NODE = "human_approval"

# One lock per run paused at the approval gate; removed once the run ends
_decision_locks: Dict[str, asyncio.Lock] = {}


# ---------------------------------------------------------------------------
# Routing helpers
# ---------------------------------------------------------------------------


def route_on_error(state: WorkflowState) -> str:
    """Stop the run as soon as any stage has set ``error``."""
    if state.get("error"):
        logger.info(f"Run {state.get('run_id')}: Error set → ending run")
        return "halt"
    return "continue"


def route_after_approval(state: WorkflowState) -> str:
    """Route on the human decision: create, stop, or ask again."""
    if state.get("error"):
        return "end"
    approval = state.get("approval")
    if approval == APPROVAL_APPROVED:
        return "create_issue"
    if approval == APPROVAL_PENDING:
        return APPROVAL_NODE
    return "end"


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------


def get_workflow() -> StateGraph:
    """Build the (uncompiled) story workflow."""
    workflow = StateGraph(WorkflowState)

    workflow.add_node("generate_story", generate_story_node)
    workflow.add_node("format_preview", format_preview_node)
    workflow.add_node(APPROVAL_NODE, human_approval_node)
    workflow.add_node("create_issue", create_issue_node)

    workflow.set_entry_point("generate_story")

    workflow.add_conditional_edges(
        "generate_story",
        route_on_error,
        {"continue": "format_preview", "halt": END},
    )
    workflow.add_conditional_edges(
        "format_preview",
        route_on_error,
        {"continue": APPROVAL_NODE, "halt": END},
    )
    workflow.add_conditional_edges(
        APPROVAL_NODE,
        route_after_approval,
        {
            "create_issue": "create_issue",
            APPROVAL_NODE: APPROVAL_NODE,
            "end": END,
        },
    )

    workflow.add_edge("create_issue", END)

    return workflow


def create_story_graph():
    """Compile the workflow with a checkpointer for interrupt() support."""
    return get_workflow().compile(checkpointer=MemorySaver())


# Compiled graph singleton
story_graph = create_story_graph()


def _config(run_id: str) -> dict:
    return {"configurable": {"thread_id": run_id}}


async def _snapshot(run_id: str):
    return await story_graph.aget_state(_config(run_id))


async def discard_run(run_id: str) -> None:
    """Drop a finished run's checkpoints."""
    await story_graph.checkpointer.adelete_thread(run_id)
    logger.debug(f"Run {run_id}: Checkpoints discarded")


# ---------------------------------------------------------------------------
# Caller-facing API
# ---------------------------------------------------------------------------


def to_terminal_state(values: WorkflowState) -> TerminalState:
    """Interpret a finished run. ``error`` wins over every other outcome."""
    run_id = values.get("run_id", "unknown")
    story = {
        "title": values.get("title"),
        "description": values.get("description"),
        "acceptance_criteria": list(values.get("acceptance_criteria") or []),
        "trace": list(values.get("trace") or []),
    }

    if values.get("error"):
        return TerminalState(run_id=run_id, status=OUTCOME_ERROR, error=values["error"], **story)

    if values.get("approval") == APPROVAL_REJECTED:
        return TerminalState(run_id=run_id, status=OUTCOME_REJECTED, **story)

    issues = values.get("created_issues") or []
    if issues:
        issue = issues[0]
        return TerminalState(
            run_id=run_id,
            status=OUTCOME_CREATED,
            key=issue["key"],
            url=issue["url"],
            parent_key=issue.get("parent_key"),
            parent_url=issue.get("parent_url"),
            **story,
        )

    return TerminalState(
        run_id=run_id,
        status=OUTCOME_ERROR,
        error="Workflow ended without creating an issue",
        **story,
    )


async def preview_story(
    topic: str,
    options: Optional[IssueOptions] = None,
    run_id: Optional[str] = None,
    parent_key: Optional[str] = None,
) -> PreviewedStory:
    """Run generate → preview and pause at the approval gate.

    With ``parent_key`` the approved story is created as a sub-task of
    that issue.
    """
    run_id = run_id or new_run_id()
    logger.info(f"Run {run_id}: Starting story workflow for topic '{topic}'")

    state = initial_state(topic, run_id=run_id, options=options)
    if parent_key:
        state["parent_key"] = parent_key

    await story_graph.ainvoke(state, config=_config(run_id))

    snapshot = await _snapshot(run_id)
    values = snapshot.values
    awaiting = APPROVAL_NODE in (snapshot.next or ())

    if not awaiting:
        # Ended before the gate; nothing left to resume
        await discard_run(run_id)

    return PreviewedStory(
        run_id=run_id,
        topic=topic,
        awaiting_decision=awaiting and not values.get("error"),
        title=values.get("title"),
        description=values.get("description"),
        acceptance_criteria=list(values.get("acceptance_criteria") or []),
        preview=values.get("preview"),
        error=values.get("error"),
        trace=list(values.get("trace") or []),
    )


async def is_awaiting_decision(run_id: str) -> bool:
    snapshot = await _snapshot(run_id)
    return APPROVAL_NODE in (snapshot.next or ())


async def finalize_story(run_id: str, answer: Any) -> TerminalState:
    """Resume a paused run with the human answer and return how it ended.

    Decisions for the same run are serialized: the first one resumes the
    graph, later ones find the run gone and raise ``RunNotFoundError``.
    The run's checkpoints are discarded once the terminal state is built.

    Raises:
        RunNotFoundError: no run with this id is waiting at the approval gate
    """
    lock = _decision_locks.setdefault(run_id, asyncio.Lock())
    async with lock:
        if not await is_awaiting_decision(run_id):
            _decision_locks.pop(run_id, None)
            raise RunNotFoundError(f"No run awaiting approval with id {run_id}")

        # Command(resume=None) would not resume the interrupt
        if answer is None:
            answer = ""

        logger.info(f"Run {run_id}: Resuming with human decision")
        await story_graph.ainvoke(Command(resume=answer), config=_config(run_id))

        snapshot = await _snapshot(run_id)
        result = to_terminal_state(snapshot.values)

        await discard_run(run_id)
        _decision_locks.pop(run_id, None)

    logger.info(f"Run {run_id}: Finished with status {result.status}")
    return result


AskFn = Callable[[str], Union[str, Awaitable[str]]]


async def run_main_workflow(
    topic: str,
    ask: AskFn,
    options: Optional[IssueOptions] = None,
) -> TerminalState:
    """Run the whole workflow, asking ``ask(preview)`` for the decision."""
    previewed = await preview_story(topic, options=options)

    if not previewed.awaiting_decision:
        return TerminalState(
            run_id=previewed.run_id,
            status=OUTCOME_ERROR,
            error=previewed.error or "Workflow stopped before approval",
            title=previewed.title,
            description=previewed.description,
            acceptance_criteria=previewed.acceptance_criteria,
            trace=previewed.trace,
        )

    answer = ask(previewed.preview or "")
    if inspect.isawaitable(answer):
        answer = await answer

    return await finalize_story(previewed.run_id, answer)
