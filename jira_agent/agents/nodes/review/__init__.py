"""Review phase nodes: preview formatting and the human approval gate."""

from jira_agent.agents.nodes.review.preview import format_preview_node
from jira_agent.agents.nodes.review.approval_gate import human_approval_node, parse_decision

__all__ = [
    "format_preview_node",
    "human_approval_node",
    "parse_decision",
]
