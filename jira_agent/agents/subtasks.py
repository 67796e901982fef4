"""
Subtask fan-out: split an approved story and create every piece concurrently.

    generate_subtasks ──(error)──► done (run-level error, nothing dispatched)
          │
    scatter: one branch state per subtask
          │
    create_issue (×N, asyncio.gather)
          │
    gather: merge_state over every branch update

Each branch works on its own copy of the run state, so no locking is
needed; only the final merge combines them. ``created_issues`` is a
concatenating field, so completion order never loses an entry. A failing
branch is recorded as a ``SubtaskFailure`` and never sets the run-level
``error``, and siblings are not cancelled because their issues may
already exist in Jira.
"""

from jira_agent.agents.state import (
    GeneratedStory,
    IssueOptions,
    SubtaskItem,
    WorkflowState,
    initial_state,
    merge_state,
    trace_entry,
)
from jira_agent.agents.nodes import create_issue_node, generate_subtasks_node
from jira_agent.constants import ROLE_ERROR, ROLE_SYSTEM
from jira_agent.errors import SubtaskCountError
from jira_agent.schemas.workflow import SubtaskFailure, SubtaskOutcome
from jira_agent.services.story_generation import bound_subtasks
from typing import Any, List, Optional
import asyncio
import logging

logger = logging.getLogger(__name__)


def branch_state(state: WorkflowState, item: SubtaskItem) -> WorkflowState:
    """Independent copy of ``state`` carrying one subtask's story fields."""
    branch: WorkflowState = dict(state)  # type: ignore[assignment]
    branch.update({
        "title": item["title"],
        "description": item["description"],
        "acceptance_criteria": list(item["acceptance_criteria"]),
        "parent_key": state["parent_key"],
        "subtasks": None,
        "created_issues": [],
        "trace": [],
    })
    return branch


def scatter(state: WorkflowState) -> List[WorkflowState]:
    return [branch_state(state, item) for item in state.get("subtasks") or []]


async def dispatch(branches: List[WorkflowState]) -> List[Any]:
    """Run create_issue for every branch concurrently; exceptions are returned."""
    return await asyncio.gather(
        *(create_issue_node(branch) for branch in branches),
        return_exceptions=True,
    )


def gather_results(
    state: WorkflowState,
    branches: List[WorkflowState],
    results: List[Any],
) -> tuple[WorkflowState, List[SubtaskFailure]]:
    """Merge every branch update into ``state``, separating out failures."""
    run_id = state.get("run_id", "unknown")
    failures: List[SubtaskFailure] = []

    for branch, result in zip(branches, results):
        title = branch.get("title") or ""
        if isinstance(result, BaseException):
            message = f"Unexpected error: {result}"
            logger.error(f"Run {run_id}: Subtask '{title}' raised {result!r}")
            update: dict = {"trace": [trace_entry(ROLE_ERROR, f"Failed to create '{title}': {message}")]}
            failures.append(SubtaskFailure(title=title, error=message))
        else:
            update = dict(result)
            error = update.pop("error", None)
            if error:
                failures.append(SubtaskFailure(title=title, error=error))
        state = merge_state(state, update)

    return state, failures


def _outcome(state: WorkflowState, failures: List[SubtaskFailure]) -> SubtaskOutcome:
    return SubtaskOutcome(
        parent_key=state.get("parent_key") or "",
        created_issues=list(state.get("created_issues") or []),
        failures=failures,
        error=state.get("error"),
        trace=list(state.get("trace") or []),
    )


async def run_subtask_workflow(
    parent_story: GeneratedStory,
    parent_key: str,
    options: Optional[IssueOptions] = None,
    subtasks: Optional[List[SubtaskItem]] = None,
    run_id: Optional[str] = None,
) -> SubtaskOutcome:
    """
    Create linked sub-tasks under ``parent_key``.

    Args:
        parent_story: The approved story the subtasks are split from
        parent_key: Jira key of the already created parent issue
        options: Optional Jira fields applied to every subtask
        subtasks: Pre-built subtasks; skips LLM generation when given.
            Held to the same 3-5 bound as generated ones; [] creates nothing
        run_id: Log/trace identifier (generated when omitted)

    Returns:
        SubtaskOutcome with the created issues, per-subtask failures, and
        ``error`` set only if generation failed or too few usable subtasks
        were supplied
    """
    state = initial_state(parent_story["title"], run_id=run_id, options=options)
    state = merge_state(state, {
        "title": parent_story["title"],
        "description": parent_story["description"],
        "acceptance_criteria": list(parent_story["acceptance_criteria"]),
        "parent_key": parent_key,
    })
    run_id = state["run_id"]

    if subtasks is None:
        state = merge_state(state, await generate_subtasks_node(state))
        if state.get("error"):
            return _outcome(state, [])
    elif subtasks:
        try:
            items = bound_subtasks(subtasks)
        except SubtaskCountError as e:
            logger.error(f"Run {run_id}: Supplied subtasks rejected: {e}")
            state = merge_state(state, {
                "error": str(e),
                "trace": [trace_entry(ROLE_ERROR, str(e))],
            })
            return _outcome(state, [])
        state = merge_state(state, {
            "subtasks": items,
            "trace": [trace_entry(ROLE_SYSTEM, f"Received {len(items)} subtasks")],
        })

    branches = scatter(state)
    if not branches:
        logger.info(f"Run {run_id}: No subtasks to create under {parent_key}")
        return _outcome(state, [])

    logger.info(f"Run {run_id}: Dispatching {len(branches)} concurrent subtask creations under {parent_key}")

    results = await dispatch(branches)
    state, failures = gather_results(state, branches, results)

    created = len(state.get("created_issues") or [])
    if failures:
        logger.warning(
            f"Run {run_id}: Partial success under {parent_key}: "
            f"{created} created, {len(failures)} failed"
        )
    else:
        logger.info(f"Run {run_id}: Created {created} subtasks under {parent_key}")

    return _outcome(state, failures)
