from jira_agent.agents.state import WorkflowState, story_from_state, trace_entry
from jira_agent.constants import ROLE_ERROR, ROLE_SYSTEM
from jira_agent.errors import GenerationError, SubtaskCountError
from jira_agent.services.story_generation import generate_subtasks
import logging

logger = logging.getLogger(__name__)


async def generate_subtasks_node(state: WorkflowState) -> dict:
    """Ask the LLM to split the parent story into 3-5 subtasks."""
    run_id = state.get("run_id", "unknown")

    parent = story_from_state(state)
    if parent is None:
        message = "Missing parent story content for subtask generation"
        logger.error(f"Run {run_id}: {message}")
        return {"error": message, "trace": [trace_entry(ROLE_ERROR, message)]}

    try:
        subtasks = await generate_subtasks(parent)
    except (GenerationError, SubtaskCountError) as e:
        logger.error(f"Run {run_id}: Subtask generation failed: {e}")
        return {"error": str(e), "trace": [trace_entry(ROLE_ERROR, str(e))]}

    logger.info(f"Run {run_id}: Generated {len(subtasks)} subtasks for '{parent['title']}'")

    return {
        "subtasks": subtasks,
        "trace": [trace_entry(ROLE_SYSTEM, f"Generated {len(subtasks)} subtasks")],
    }
