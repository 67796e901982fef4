"""
Format Preview Node - validates the drafted story and renders it for review.

Separates "is the content complete" from "ask the human": a story missing
any field never reaches the approval gate.
"""

from jira_agent.agents.state import GeneratedStory, WorkflowState, story_from_state, trace_entry
from jira_agent.config import settings
from jira_agent.constants import APPROVAL_PENDING, ROLE_ERROR, ROLE_SYSTEM
from jira_agent.errors import StoryValidationError
import logging

logger = logging.getLogger(__name__)

_RULE = "=" * 60


def render_preview(story: GeneratedStory, project_key: str, jira_url: str) -> str:
    """Human-readable preview of a story and where it will be created."""
    criteria = "\n".join(
        f"   {i}. {criterion}"
        for i, criterion in enumerate(story["acceptance_criteria"], 1)
    )
    return (
        f"{_RULE}\n"
        f"JIRA STORY PREVIEW\n"
        f"{_RULE}\n\n"
        f"TITLE:\n{story['title']}\n\n"
        f"DESCRIPTION:\n{story['description']}\n\n"
        f"ACCEPTANCE CRITERIA:\n{criteria}\n\n"
        f"{_RULE}\n"
        f"Project: {project_key}\n"
        f"Site: {jira_url}\n"
        f"{_RULE}"
    )


def format_preview_node(state: WorkflowState) -> dict:
    """Fail on a partial story, otherwise mark approval pending with a preview."""
    run_id = state.get("run_id", "unknown")

    story = story_from_state(state)
    if story is None:
        error = StoryValidationError("Missing story content to format")
        logger.error(f"Run {run_id}: {error}")
        return {
            "error": str(error),
            "trace": [trace_entry(ROLE_ERROR, str(error))],
        }

    logger.info(f"Run {run_id}: Story formatted and ready for approval")

    return {
        "preview": render_preview(story, settings.jira_project_key, settings.jira_url),
        "approval": APPROVAL_PENDING,
        "trace": [trace_entry(ROLE_SYSTEM, "Story formatted and ready for approval")],
    }
