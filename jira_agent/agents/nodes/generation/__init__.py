"""Generation phase nodes: story drafting and subtask breakdown."""

from jira_agent.agents.nodes.generation.story_writer import generate_story_node
from jira_agent.agents.nodes.generation.subtask_writer import generate_subtasks_node

__all__ = [
    "generate_story_node",
    "generate_subtasks_node",
]
