from jira_agent.agents.state import WorkflowState, story_from_state, trace_entry
from jira_agent.constants import ROLE_ERROR, ROLE_SYSTEM
from jira_agent.errors import IssueCreationError
from jira_agent.services.jira_client import IssueFields, get_jira_client
import logging

logger = logging.getLogger(__name__)


def issue_fields_from_state(state: WorkflowState) -> IssueFields:
    """Collect the Jira fields for this run's story (and parent, if any)."""
    fields: IssueFields = {
        "title": state.get("title") or "",
        "description": state.get("description") or "",
        "acceptance_criteria": list(state.get("acceptance_criteria") or []),
    }
    if state.get("parent_key"):
        fields["parent_key"] = state["parent_key"]
    options = state.get("options") or {}
    for key in ("due_date", "start_date", "labels"):
        if options.get(key):
            fields[key] = options[key]
    return fields


async def create_issue_node(state: WorkflowState) -> dict:
    """
    Create one Jira issue from the story in ``state``.

    Used as the last node of the main graph and, once per subtask, by the
    fan-out. With ``parent_key`` set the issue is created as a sub-task.
    Failures are returned in ``error``; nothing is raised.
    """
    run_id = state.get("run_id", "unknown")
    parent_key = state.get("parent_key")

    if story_from_state(state) is None:
        message = "Missing story content"
        logger.error(f"Run {run_id}: {message}")
        return {"error": message, "trace": [trace_entry(ROLE_ERROR, message)]}

    title = state.get("title")
    logger.info(
        f"Run {run_id}: Creating Jira issue '{title}'"
        + (f" under {parent_key}" if parent_key else "")
    )

    try:
        issue = await get_jira_client().create_issue(issue_fields_from_state(state))
    except IssueCreationError as e:
        message = f"Failed to create '{title}': {e}"
        logger.error(f"Run {run_id}: {message}")
        return {"error": str(e), "trace": [trace_entry(ROLE_ERROR, message)]}

    logger.info(f"Run {run_id}: Jira issue created: {issue['key']}")

    return {
        "created_issues": [issue],
        "trace": [trace_entry(ROLE_SYSTEM, f"Jira issue created: {issue['key']}")],
    }
