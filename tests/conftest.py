"""Shared fixtures for the Jira story agent test suite."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from langchain_core.messages import AIMessage

from jira_agent.errors import IssueCreationError


class FakeJira:
    """Stands in for JiraClient: records every create call, numbers keys PROJ-1, PROJ-2, ..."""

    base_url = "https://example.atlassian.net"

    def __init__(self, fail_titles=(), raise_titles=()):
        self.calls = []
        self.fail_titles = set(fail_titles)
        self.raise_titles = set(raise_titles)
        self._next = 0

    async def create_issue(self, fields):
        self.calls.append(dict(fields))
        await asyncio.sleep(0)
        title = fields["title"]
        if title in self.fail_titles:
            raise IssueCreationError("Jira API error (400): summary is invalid")
        if title in self.raise_titles:
            raise RuntimeError("connection reset")
        self._next += 1
        key = f"PROJ-{self._next}"
        issue = {"key": key, "url": f"{self.base_url}/browse/{key}"}
        if fields.get("parent_key"):
            issue["parent_key"] = fields["parent_key"]
            issue["parent_url"] = f"{self.base_url}/browse/{fields['parent_key']}"
        return issue


@pytest.fixture
def story():
    """A complete drafted story."""
    return {
        "title": "As a user, I want to reset my password via email",
        "description": "As a user, I want to reset my password so that I can regain access.\n\nUses a signed link.",
        "acceptance_criteria": [
            "Given a registered email, when I request a reset, then I receive a link",
            "Given an expired link, when I open it, then I see an error",
            "Given a valid link, when I set a new password, then I can log in",
        ],
    }


@pytest.fixture
def subtask_items():
    """Four subtasks as returned by the generator."""
    return [
        {
            "title": f"Subtask {i}",
            "description": f"Deliver part {i}",
            "acceptance_criteria": [f"Part {i} works"],
        }
        for i in range(1, 5)
    ]


@pytest.fixture
def fake_jira():
    """Patch the Jira client used by the create_issue node."""
    fake = FakeJira()
    with patch(
        "jira_agent.agents.nodes.tracker.create_issue.get_jira_client",
        return_value=fake,
    ):
        yield fake


@pytest.fixture
def make_llm():
    """Patch get_llm with a fake chat model that answers with ``reply``."""
    patchers = []

    def _make(reply=None, error=None):
        llm = MagicMock()
        if error is not None:
            llm.ainvoke = AsyncMock(side_effect=error)
        else:
            content = reply if isinstance(reply, str) else json.dumps(reply)
            llm.ainvoke = AsyncMock(return_value=AIMessage(content=content))
        p = patch("jira_agent.services.story_generation.get_llm", return_value=llm)
        p.start()
        patchers.append(p)
        return llm

    yield _make

    for p in patchers:
        p.stop()
