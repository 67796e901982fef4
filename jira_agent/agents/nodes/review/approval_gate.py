"""
Human Approval Gate Node - LangGraph interrupt() for human-in-the-loop.

The node pauses the graph with the preview package as the interrupt value.
State is saved to the checkpointer under the run's thread id, and the graph
resumes when the caller invokes:

    graph.ainvoke(Command(resume="yes"), config={"configurable": {"thread_id": run_id}})

Only an explicit "y"/"yes" approves. Anything else, including an empty or
unparseable answer, rejects.
"""

from typing import Any

from langgraph.types import interrupt

from jira_agent.agents.state import WorkflowState, trace_entry
from jira_agent.constants import (
    AFFIRMATIVE_ANSWERS,
    APPROVAL_APPROVED,
    APPROVAL_PENDING,
    APPROVAL_REJECTED,
    ROLE_HUMAN,
)
import logging

logger = logging.getLogger(__name__)


def parse_decision(answer: Any) -> str:
    """Map a human answer to "approved" or "rejected" (fail-closed)."""
    if isinstance(answer, dict):
        answer = answer.get("answer")
    if not isinstance(answer, str):
        return APPROVAL_REJECTED
    if answer.strip().lower() in AFFIRMATIVE_ANSWERS:
        return APPROVAL_APPROVED
    return APPROVAL_REJECTED


def human_approval_node(state: WorkflowState) -> dict:
    """Pause for the human decision and record it."""
    run_id = state.get("run_id", "unknown")

    # A decision is final; re-entering the gate never reverts it
    if state.get("approval") not in (None, APPROVAL_PENDING):
        return {}

    review_package = {
        "run_id": run_id,
        "title": state.get("title"),
        "description": state.get("description"),
        "acceptance_criteria": state.get("acceptance_criteria"),
        "preview": state.get("preview"),
    }

    logger.info(f"Run {run_id}: Waiting for approval, graph will pause here")

    # GRAPH PAUSES HERE; resumes with the answer passed to Command(resume=...)
    answer = interrupt(review_package)

    decision = parse_decision(answer)
    if decision == APPROVAL_APPROVED:
        message = "Approved"
    elif isinstance(answer, str) and answer.strip().lower() in ("n", "no"):
        message = "Rejected"
    else:
        message = f"Unrecognized: {answer!r}"

    logger.info(f"Run {run_id}: Approval decision received: {decision}")

    return {
        "approval": decision,
        "trace": [trace_entry(ROLE_HUMAN, message)],
    }
