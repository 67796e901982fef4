"""Jira story agent: LLM-drafted stories, human approval, Jira creation."""

__version__ = "1.0.0"
