"""Tracker phase nodes: Jira issue creation."""

from jira_agent.agents.nodes.tracker.create_issue import create_issue_node

__all__ = ["create_issue_node"]
