"""End-to-end tests for the main workflow: preview, decide, create."""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from jira_agent.agents import graph
from jira_agent.agents.graph import (
    finalize_story,
    preview_story,
    route_after_approval,
    route_on_error,
    run_main_workflow,
    to_terminal_state,
)
from jira_agent.errors import GenerationError, RunNotFoundError


@pytest.fixture
def drafted(story):
    """Patch story generation to return the ``story`` fixture."""
    with patch(
        "jira_agent.agents.nodes.generation.story_writer.generate_story",
        new=AsyncMock(return_value=story),
    ) as gen:
        yield gen


def _preview_then_decide(topic, answer, **kwargs):
    async def scenario():
        previewed = await preview_story(topic, **kwargs)
        result = await finalize_story(previewed.run_id, answer)
        return previewed, result

    return asyncio.run(scenario())


class TestRouting:
    def test_route_on_error(self):
        assert route_on_error({"error": "boom"}) == "halt"
        assert route_on_error({}) == "continue"

    def test_route_after_approval(self):
        assert route_after_approval({"approval": "approved"}) == "create_issue"
        assert route_after_approval({"approval": "rejected"}) == "end"
        assert route_after_approval({"approval": "pending"}) == "human_approval"
        assert route_after_approval({"approval": "approved", "error": "x"}) == "end"


class TestApprovedRun:
    def test_yes_creates_one_issue(self, drafted, fake_jira, story):
        previewed, result = _preview_then_decide("password reset via email", "yes")

        assert previewed.awaiting_decision
        assert previewed.title == story["title"]
        assert "JIRA STORY PREVIEW" in previewed.preview

        assert result.status == "created"
        assert result.key == "PROJ-1"
        assert result.url.endswith("/browse/PROJ-1")
        assert result.error is None
        assert len(fake_jira.calls) == 1
        assert fake_jira.calls[0]["title"] == story["title"]

        messages = [e.message for e in result.trace]
        assert messages[0] == f"Generated story: {story['title']}"
        assert "Approved" in messages
        assert messages[-1] == "Jira issue created: PROJ-1"

    def test_options_and_parent_reach_jira(self, drafted, fake_jira):
        _, result = _preview_then_decide(
            "t", "Y", options={"labels": ["voice"]}, parent_key="PROJ-40"
        )
        assert result.status == "created"
        assert result.parent_key == "PROJ-40"
        assert fake_jira.calls[0]["labels"] == ["voice"]
        assert fake_jira.calls[0]["parent_key"] == "PROJ-40"


class TestRejectedRun:
    @pytest.mark.parametrize("answer", ["no", "n", "maybe", "", None])
    def test_anything_but_yes_creates_nothing(self, drafted, fake_jira, answer):
        _, result = _preview_then_decide("t", answer)
        assert result.status == "rejected"
        assert result.rejected
        assert result.key is None
        assert result.error is None
        assert fake_jira.calls == []

    def test_rejected_run_cannot_be_decided_again(self, drafted, fake_jira):
        async def scenario():
            previewed = await preview_story("t")
            await finalize_story(previewed.run_id, "no")
            await finalize_story(previewed.run_id, "yes")

        with pytest.raises(RunNotFoundError):
            asyncio.run(scenario())
        assert fake_jira.calls == []


class TestFailedRuns:
    def test_generation_failure_stops_before_approval(self, fake_jira):
        with patch(
            "jira_agent.agents.nodes.generation.story_writer.generate_story",
            new=AsyncMock(side_effect=GenerationError("LLM call failed: timeout")),
        ):
            previewed = asyncio.run(preview_story("t"))

        assert not previewed.awaiting_decision
        assert previewed.error == "LLM call failed: timeout"
        assert previewed.title is None
        assert previewed.trace[-1].role == "error"
        assert fake_jira.calls == []

        with pytest.raises(RunNotFoundError):
            asyncio.run(finalize_story(previewed.run_id, "yes"))

    def test_jira_failure_after_approval(self, drafted, fake_jira, story):
        fake_jira.fail_titles.add(story["title"])
        _, result = _preview_then_decide("t", "yes")
        assert result.status == "error"
        assert result.error.startswith("Jira API error (400)")
        assert result.key is None

    def test_unknown_run_id(self):
        with pytest.raises(RunNotFoundError):
            asyncio.run(finalize_story("no-such-run", "yes"))


class TestRunMainWorkflow:
    def test_sync_ask(self, drafted, fake_jira):
        seen = []

        def ask(preview):
            seen.append(preview)
            return "y"

        result = asyncio.run(run_main_workflow("t", ask))
        assert result.status == "created"
        assert "JIRA STORY PREVIEW" in seen[0]

    def test_async_ask(self, drafted, fake_jira):
        async def ask(preview):
            return "no"

        result = asyncio.run(run_main_workflow("t", ask))
        assert result.status == "rejected"

    def test_generation_error_never_asks(self, fake_jira):
        asked = []
        with patch(
            "jira_agent.agents.nodes.generation.story_writer.generate_story",
            new=AsyncMock(side_effect=GenerationError("down")),
        ):
            result = asyncio.run(run_main_workflow("t", asked.append))
        assert result.status == "error"
        assert result.error == "down"
        assert asked == []


class TestTerminalState:
    def test_error_wins(self):
        result = to_terminal_state({
            "run_id": "r1",
            "error": "boom",
            "approval": "approved",
            "created_issues": [{"key": "PROJ-1", "url": "u"}],
        })
        assert result.status == "error"

    def test_no_issue_and_no_decision_is_error(self):
        result = to_terminal_state({"run_id": "r1", "approval": "approved"})
        assert result.status == "error"


class TestConcurrentDecisions:
    def test_only_the_first_decision_resumes_the_run(self, drafted, fake_jira):
        async def scenario():
            previewed = await preview_story("t")
            results = await asyncio.gather(
                finalize_story(previewed.run_id, "yes"),
                finalize_story(previewed.run_id, "yes"),
                return_exceptions=True,
            )
            return previewed.run_id, results

        run_id, (first, second) = asyncio.run(scenario())

        assert first.status == "created"
        assert first.key == "PROJ-1"
        assert isinstance(second, RunNotFoundError)
        assert len(fake_jira.calls) == 1
        assert run_id not in graph._decision_locks

    def test_approve_and_reject_race_is_decided_once(self, drafted, fake_jira):
        async def scenario():
            previewed = await preview_story("t")
            return await asyncio.gather(
                finalize_story(previewed.run_id, "no"),
                finalize_story(previewed.run_id, "yes"),
                return_exceptions=True,
            )

        first, second = asyncio.run(scenario())
        assert first.status == "rejected"
        assert isinstance(second, RunNotFoundError)
        assert fake_jira.calls == []


class TestCheckpointCleanup:
    def _values(self, run_id):
        return asyncio.run(graph.story_graph.aget_state(graph._config(run_id))).values

    @pytest.mark.parametrize("answer", ["yes", "no"])
    def test_finished_run_is_discarded(self, drafted, fake_jira, answer):
        previewed, result = _preview_then_decide("t", answer)
        assert result.status in ("created", "rejected")
        assert not self._values(previewed.run_id)

    def test_paused_run_is_kept(self, drafted, fake_jira):
        previewed = asyncio.run(preview_story("t"))
        assert self._values(previewed.run_id)["approval"] == "pending"

    def test_failed_preview_is_discarded(self, fake_jira):
        with patch(
            "jira_agent.agents.nodes.generation.story_writer.generate_story",
            new=AsyncMock(side_effect=GenerationError("down")),
        ):
            previewed = asyncio.run(preview_story("t"))
        assert previewed.error == "down"
        assert not self._values(previewed.run_id)
