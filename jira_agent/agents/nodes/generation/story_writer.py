from jira_agent.agents.state import WorkflowState, trace_entry
from jira_agent.constants import ROLE_ERROR, ROLE_SYSTEM
from jira_agent.errors import GenerationError
from jira_agent.services.story_generation import generate_story
import logging

logger = logging.getLogger(__name__)


async def generate_story_node(state: WorkflowState) -> dict:
    """Draft title, description and acceptance criteria for the run's topic."""
    run_id = state.get("run_id", "unknown")
    topic = state.get("topic", "")

    logger.info(f"Run {run_id}: Generating story for topic '{topic}'")

    try:
        story = await generate_story(topic)
    except GenerationError as e:
        logger.error(f"Run {run_id}: Story generation failed: {e}")
        return {
            "error": str(e),
            "trace": [trace_entry(ROLE_ERROR, str(e))],
        }

    logger.info(f"Run {run_id}: Generated story '{story['title']}'")

    return {
        "title": story["title"],
        "description": story["description"],
        "acceptance_criteria": story["acceptance_criteria"],
        "trace": [trace_entry(ROLE_SYSTEM, f"Generated story: {story['title']}")],
    }
