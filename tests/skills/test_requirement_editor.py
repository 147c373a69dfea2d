"""Tests for the per-requirement editing skill."""

import pytest

from skills import RequirementEditorSkill, SkillContext
from tuning.candidates import CandidateElement
from tuning.decisions import (
    EXHAUSTED_DECISION_REASON,
    TEMPORARY_DECISION_REASON,
    DecisionDraft,
    Edit,
    Unresolved,
)
from tuning.models import Mention, RequirementType

BULLET = "experience[0].bullets[0]"
FITTING_EDIT = "Built weekly reports for stakeholder reviews"


@pytest.fixture
def candidates():
    return [
        CandidateElement(
            path=BULLET,
            text="Built weekly reports",
            max_lines=2,
            max_chars_per_line=40,
            max_chars_total=80,
        )
    ]


@pytest.fixture
def requirement(requirement_factory):
    return requirement_factory("Stakeholder management", type=RequirementType.LEADERSHIP)


@pytest.fixture
def run(mock_claude_client, test_config, candidates, requirement):
    def execute(locked=False):
        skill = RequirementEditorSkill(mock_claude_client, test_config)
        return skill.execute(
            SkillContext(config=test_config),
            requirement=requirement,
            candidates=candidates,
            locked=locked,
            allowed_tools={"sql"},
        )

    return execute


class TestRequirementEditorSkill:
    """Tests for RequirementEditorSkill."""

    def test_overlong_edit_is_repaired(self, run, mock_claude_client, edit_draft, overflow_text):
        mock_claude_client.generate.side_effect = [
            edit_draft(BULLET, overflow_text),
            edit_draft(BULLET, FITTING_EDIT),
        ]

        result = run()

        assert result.success
        assert result.data == Edit(
            path=BULLET,
            mentioned=Mention.IMPLIED,
            replacement=FITTING_EDIT,
            reason="Applied ATS-aligned inline rewrite.",
        )
        assert result.metadata["attempts"] == 2
        assert mock_claude_client.generate.call_count == 2

        second_prompt = mock_claude_client.generate.call_args_list[1].kwargs["prompt"]
        assert f"Previous suggested edit:\n{overflow_text}" in second_prompt
        assert "chars 85/80, wrapped lines 3/2" in second_prompt

    def test_first_prompt_lists_candidates(self, run, mock_claude_client, edit_draft):
        mock_claude_client.generate.side_effect = [edit_draft(BULLET, FITTING_EDIT)]
        run()

        call = mock_claude_client.generate.call_args_list[0].kwargs
        assert call["schema"] is DecisionDraft
        assert "lockedNoEdit: false" in call["prompt"]
        assert BULLET in call["prompt"]
        assert "Previous suggested edit" not in call["prompt"]

    def test_exhaustion_is_unresolved(self, run, mock_claude_client, edit_draft, overflow_text):
        mock_claude_client.generate.side_effect = [edit_draft(BULLET, overflow_text)] * 3

        result = run()

        assert result.success
        assert result.data == Unresolved(reason=EXHAUSTED_DECISION_REASON)
        assert mock_claude_client.generate.call_count == 3

    def test_attempt_limit_comes_from_config(
        self, run, mock_claude_client, test_config, edit_draft, overflow_text
    ):
        test_config["limits"]["max_decision_attempts"] = 1
        mock_claude_client.generate.side_effect = [edit_draft(BULLET, overflow_text)] * 3
        run()
        assert mock_claude_client.generate.call_count == 1

    def test_temporary_failures(self, run, mock_claude_client, transient_error):
        mock_claude_client.generate.side_effect = [transient_error] * 3

        result = run()

        assert result.success
        assert result.data == Unresolved(reason=TEMPORARY_DECISION_REASON)
        assert result.data.is_temporary

    def test_recovers_after_transient_failure(
        self, run, mock_claude_client, transient_error, edit_draft
    ):
        mock_claude_client.generate.side_effect = [transient_error, edit_draft(BULLET, FITTING_EDIT)]

        result = run()

        assert isinstance(result.data, Edit)
        assert result.metadata["attempts"] == 2

    def test_permanent_failure_fails(self, run, mock_claude_client, permanent_error):
        mock_claude_client.generate.side_effect = [permanent_error]

        result = run()

        assert not result.success
        assert result.metadata["transient"] is False
        assert mock_claude_client.generate.call_count == 1

    def test_locked_requirement_is_never_edited(self, run, mock_claude_client, edit_draft):
        mock_claude_client.generate.side_effect = [edit_draft(BULLET, FITTING_EDIT)]

        result = run(locked=True)

        assert isinstance(result.data, Unresolved)
        assert "lockedNoEdit: true" in mock_claude_client.generate.call_args.kwargs["prompt"]

    def test_already_mentioned(self, run, mock_claude_client):
        mock_claude_client.generate.side_effect = [
            DecisionDraft(path=BULLET, mentioned=Mention.YES, reason="Stated in bullet.")
        ]
        result = run()
        assert result.data.kind == "already"
        assert result.data.path == BULLET
