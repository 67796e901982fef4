"""
All workflow node functions re-exported for convenient imports.

Usage in graph.py:
    from jira_agent.agents.nodes import generate_story_node, format_preview_node, ...
"""

# ── Generation phase ──
from jira_agent.agents.nodes.generation.story_writer import generate_story_node
from jira_agent.agents.nodes.generation.subtask_writer import generate_subtasks_node

# ── Review phase ──
from jira_agent.agents.nodes.review.preview import format_preview_node
from jira_agent.agents.nodes.review.approval_gate import human_approval_node, parse_decision

# ── Tracker phase ──
from jira_agent.agents.nodes.tracker.create_issue import create_issue_node

__all__ = [
    # Generation
    "generate_story_node",
    "generate_subtasks_node",
    # Review
    "format_preview_node",
    "human_approval_node",
    "parse_decision",
    # Tracker
    "create_issue_node",
]
