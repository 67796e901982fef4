"""Tests for the generation, preview and tracker nodes."""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from jira_agent.agents.nodes import (
    create_issue_node,
    format_preview_node,
    generate_story_node,
    generate_subtasks_node,
)
from jira_agent.agents.nodes.review.preview import render_preview
from jira_agent.agents.nodes.tracker.create_issue import issue_fields_from_state
from jira_agent.errors import GenerationError, SubtaskCountError


# --- generate_story_node ---

class TestGenerateStoryNode:
    def test_success_sets_story_fields(self, story):
        with patch(
            "jira_agent.agents.nodes.generation.story_writer.generate_story",
            new=AsyncMock(return_value=story),
        ) as gen:
            update = asyncio.run(generate_story_node({"run_id": "r1", "topic": "password reset"}))
        gen.assert_awaited_once_with("password reset")
        assert update["title"] == story["title"]
        assert update["acceptance_criteria"] == story["acceptance_criteria"]
        assert update["trace"][0] == {"role": "system", "message": f"Generated story: {story['title']}"}
        assert "error" not in update

    def test_failure_sets_error_only(self):
        with patch(
            "jira_agent.agents.nodes.generation.story_writer.generate_story",
            new=AsyncMock(side_effect=GenerationError("LLM call failed: timeout")),
        ):
            update = asyncio.run(generate_story_node({"run_id": "r1", "topic": "t"}))
        assert update["error"] == "LLM call failed: timeout"
        assert update["trace"][0]["role"] == "error"
        assert "title" not in update


# --- generate_subtasks_node ---

class TestGenerateSubtasksNode:
    def test_success(self, story, subtask_items):
        with patch(
            "jira_agent.agents.nodes.generation.subtask_writer.generate_subtasks",
            new=AsyncMock(return_value=subtask_items),
        ):
            update = asyncio.run(generate_subtasks_node({"run_id": "r1", **story}))
        assert update["subtasks"] == subtask_items
        assert update["trace"][0]["message"] == "Generated 4 subtasks"

    def test_count_error_is_reported(self, story):
        with patch(
            "jira_agent.agents.nodes.generation.subtask_writer.generate_subtasks",
            new=AsyncMock(side_effect=SubtaskCountError(2, 3)),
        ):
            update = asyncio.run(generate_subtasks_node({"run_id": "r1", **story}))
        assert "at least 3 required" in update["error"]
        assert "subtasks" not in update

    def test_missing_parent_story(self):
        update = asyncio.run(generate_subtasks_node({"run_id": "r1", "title": "only a title"}))
        assert update["error"]


# --- format_preview_node ---

class TestFormatPreviewNode:
    def test_complete_story_is_pending(self, story):
        update = format_preview_node({"run_id": "r1", **story})
        assert update["approval"] == "pending"
        assert story["title"] in update["preview"]
        assert update["trace"][0]["message"] == "Story formatted and ready for approval"

    @pytest.mark.parametrize("missing", ["title", "description", "acceptance_criteria"])
    def test_partial_story_fails(self, story, missing):
        state = {"run_id": "r1", **story}
        del state[missing]
        update = format_preview_node(state)
        assert update["error"] == "Missing story content to format"
        assert "approval" not in update

    def test_render_preview_numbers_criteria(self, story):
        text = render_preview(story, "PROJ", "https://example.atlassian.net")
        assert "   1. Given a registered email" in text
        assert "   3. Given a valid link" in text
        assert "Project: PROJ" in text
        assert "Site: https://example.atlassian.net" in text


# --- create_issue_node ---

class TestCreateIssueNode:
    def test_creates_issue(self, story, fake_jira):
        update = asyncio.run(create_issue_node({"run_id": "r1", **story}))
        assert update["created_issues"] == [
            {"key": "PROJ-1", "url": "https://example.atlassian.net/browse/PROJ-1"}
        ]
        assert update["trace"][0]["message"] == "Jira issue created: PROJ-1"
        assert "parent_key" not in fake_jira.calls[0]

    def test_parent_key_and_options_forwarded(self, story, fake_jira):
        state = {
            "run_id": "r1",
            **story,
            "parent_key": "PROJ-9",
            "options": {"due_date": "2026-12-01", "labels": ["auth"]},
        }
        update = asyncio.run(create_issue_node(state))
        call = fake_jira.calls[0]
        assert call["parent_key"] == "PROJ-9"
        assert call["due_date"] == "2026-12-01"
        assert call["labels"] == ["auth"]
        assert update["created_issues"][0]["parent_key"] == "PROJ-9"

    def test_jira_failure_sets_error(self, story, fake_jira):
        fake_jira.fail_titles.add(story["title"])
        update = asyncio.run(create_issue_node({"run_id": "r1", **story}))
        assert update["error"].startswith("Jira API error (400)")
        assert "created_issues" not in update
        assert update["trace"][0]["message"].startswith(f"Failed to create '{story['title']}'")

    def test_missing_story_never_calls_jira(self, fake_jira):
        update = asyncio.run(create_issue_node({"run_id": "r1", "title": "T"}))
        assert update["error"] == "Missing story content"
        assert fake_jira.calls == []


def test_issue_fields_skip_empty_options(story):
    fields = issue_fields_from_state({**story, "options": {"labels": [], "start_date": "2026-11-01"}})
    assert fields["start_date"] == "2026-11-01"
    assert "labels" not in fields
    assert "parent_key" not in fields
