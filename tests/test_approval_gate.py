"""Tests for the human approval gate: only an explicit yes approves."""

import pytest
from unittest.mock import patch

from jira_agent.agents.nodes import human_approval_node, parse_decision


class TestParseDecision:
    @pytest.mark.parametrize("answer", ["y", "yes", "Y", "YES", " yes ", "\tY\n"])
    def test_affirmative_answers_approve(self, answer):
        assert parse_decision(answer) == "approved"

    @pytest.mark.parametrize(
        "answer",
        ["n", "no", "", "   ", "maybe", "yes please", "yeah", "ok", "approve", "1", "true"],
    )
    def test_anything_else_rejects(self, answer):
        assert parse_decision(answer) == "rejected"

    @pytest.mark.parametrize("answer", [None, 1, True, ["yes"]])
    def test_non_string_rejects(self, answer):
        assert parse_decision(answer) == "rejected"

    def test_dict_answer_is_unwrapped(self):
        assert parse_decision({"answer": "yes"}) == "approved"
        assert parse_decision({"answer": None}) == "rejected"
        assert parse_decision({}) == "rejected"


class TestHumanApprovalNode:
    @pytest.fixture
    def pending_state(self, story):
        return {"run_id": "r1", **story, "preview": "PREVIEW", "approval": "pending"}

    def _run(self, state, answer):
        with patch(
            "jira_agent.agents.nodes.review.approval_gate.interrupt",
            return_value=answer,
        ) as interrupt:
            update = human_approval_node(state)
        return update, interrupt

    def test_yes_approves(self, pending_state):
        update, interrupt = self._run(pending_state, "yes")
        assert update["approval"] == "approved"
        assert update["trace"] == [{"role": "human", "message": "Approved"}]
        package = interrupt.call_args.args[0]
        assert package["preview"] == "PREVIEW"
        assert package["run_id"] == "r1"

    def test_no_rejects(self, pending_state):
        update, _ = self._run(pending_state, "no")
        assert update["approval"] == "rejected"
        assert update["trace"][0]["message"] == "Rejected"

    def test_unrecognized_answer_rejects_and_is_traced(self, pending_state):
        update, _ = self._run(pending_state, "maybe")
        assert update["approval"] == "rejected"
        assert update["trace"][0]["message"] == "Unrecognized: 'maybe'"

    @pytest.mark.parametrize("decided", ["approved", "rejected"])
    def test_decision_is_final(self, pending_state, decided):
        pending_state["approval"] = decided
        update, interrupt = self._run(pending_state, "yes")
        assert update == {}
        interrupt.assert_not_called()
