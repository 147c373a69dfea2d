"""Tests for decision outcomes and the policy pipeline."""

import pytest

from tuning.candidates import CandidateElement
from tuning.decisions import (
    Already,
    DecisionContext,
    DecisionDraft,
    Edit,
    Unresolved,
    check_edit_length,
    judge_decision,
)
from tuning.models import Mention, RequirementType

BULLET = "experience[0].bullets[0]"


@pytest.fixture
def candidates():
    return [
        CandidateElement(
            path=BULLET,
            text="Cut reporting time by 40% with SQL",
            max_lines=2,
            max_chars_per_line=40,
            max_chars_total=80,
        ),
        CandidateElement(
            path="metadata.subtitle",
            text="Data Analyst",
            max_lines=1,
            max_chars_per_line=40,
            max_chars_total=40,
        ),
    ]


@pytest.fixture
def context(candidates, requirement_factory):
    def make(canonical="Stakeholder management", locked=False, **kwargs):
        return DecisionContext(
            requirement=requirement_factory(canonical, type=RequirementType.LEADERSHIP, **kwargs),
            candidates=candidates,
            locked=locked,
            allowed_tools={"sql"},
        )

    return make


class TestJudgeDecision:
    """Tests for judge_decision()."""

    def test_unknown_path_needs_repair(self, context):
        verdict = judge_decision(DecisionDraft(path="summary", mentioned=Mention.YES), context())
        assert not verdict.accepted
        assert "Selected path is not valid" in verdict.feedback

    def test_mentioned_yes_is_already(self, context):
        verdict = judge_decision(
            DecisionDraft(path="metadata.subtitle", mentioned=Mention.YES), context()
        )
        assert verdict.accepted
        assert verdict.value == Already(
            path="metadata.subtitle", reason="Requirement already explicit."
        )

    def test_mentioned_yes_without_path_needs_repair(self, context):
        verdict = judge_decision(DecisionDraft(mentioned=Mention.YES), context())
        assert not verdict.accepted
        assert "path must point to the matching candidate" in verdict.feedback

    def test_fitting_edit_is_accepted(self, context, edit_draft):
        draft = edit_draft(BULLET, "Cut reporting time by 40% for stakeholders")
        verdict = judge_decision(draft, context())

        assert verdict.accepted
        assert verdict.value == Edit(
            path=BULLET,
            mentioned=Mention.IMPLIED,
            replacement="Cut reporting time by 40% for stakeholders",
            reason="Applied ATS-aligned inline rewrite.",
        )

    def test_edit_is_sanitized(self, context, edit_draft):
        draft = edit_draft(BULLET, "  Cut reporting time by 40% for stakeholders\x00 ")
        verdict = judge_decision(draft, context())
        assert verdict.value.replacement == "Cut reporting time by 40% for stakeholders"

    def test_overlong_edit_reports_measurements(self, context, edit_draft, overflow_text):
        draft = edit_draft(BULLET, overflow_text + " 40%")
        verdict = judge_decision(draft, context())

        assert not verdict.accepted
        assert verdict.feedback == (
            f"Suggested edit exceeded limits for {BULLET}: chars 89/80, "
            "wrapped lines 3/2. Rewrite to fit exactly."
        )
        assert verdict.previous == overflow_text + " 40%"

    def test_edit_without_text_needs_repair(self, context, edit_draft):
        verdict = judge_decision(edit_draft(BULLET, ""), context())
        assert verdict.feedback == "For an edit, suggested_edit must be a non-empty string."

    def test_edit_without_path_needs_repair(self, context, edit_draft):
        verdict = judge_decision(edit_draft(None, "Some text"), context())
        assert verdict.feedback.startswith("For an edit, path is required")

    def test_edit_introducing_tool_needs_repair(self, context, edit_draft):
        draft = edit_draft(BULLET, "Cut reporting time by 40% with Tableau and Docker")
        verdict = judge_decision(draft, context())
        assert not verdict.accepted
        assert "docker" in verdict.feedback

    def test_tool_named_only_by_requirement_needs_repair(self, context, edit_draft):
        draft = edit_draft(BULLET, "Cut reporting time by 40% with SQL on Kubernetes")
        verdict = judge_decision(draft, context(canonical="Kubernetes"))

        assert not verdict.accepted
        assert "kubernetes" in verdict.feedback
        assert verdict.previous == "Cut reporting time by 40% with SQL on Kubernetes"

    def test_explicitly_allowed_tool_is_accepted(
        self, candidates, requirement_factory, edit_draft
    ):
        ctx = DecisionContext(
            requirement=requirement_factory("Kubernetes", type=RequirementType.TOOL),
            candidates=candidates,
            allowed_tools={"sql", "kubernetes"},
        )
        draft = edit_draft(BULLET, "Cut reporting time by 40% with SQL on Kubernetes")
        verdict = judge_decision(draft, ctx)

        assert verdict.accepted
        assert isinstance(verdict.value, Edit)

    def test_edit_dropping_number_needs_repair(self, context, edit_draft):
        verdict = judge_decision(edit_draft(BULLET, "Cut reporting time with SQL"), context())
        assert not verdict.accepted
        assert "40%" in verdict.feedback

    def test_nothing_feasible_is_unresolved(self, context):
        verdict = judge_decision(DecisionDraft(mentioned=Mention.NONE), context())
        assert verdict.accepted
        assert verdict.value == Unresolved(reason="No truthful inline edit found.")


class TestLockedRequirements:
    """Locked requirements are detected but never edited."""

    def test_locked_edit_becomes_unresolved(self, context, edit_draft):
        draft = edit_draft(BULLET, "Cut reporting time by 40% over 5 years")
        verdict = judge_decision(draft, context(locked=True))

        assert verdict.accepted
        assert isinstance(verdict.value, Unresolved)
        assert verdict.value.reason == "Locked requirement cannot be edited."

    def test_locked_mention_is_already(self, context):
        draft = DecisionDraft(path=BULLET, mentioned=Mention.YES, reason="Stated.")
        verdict = judge_decision(draft, context(locked=True))
        assert verdict.value == Already(path=BULLET, reason="Stated.")

    def test_locked_mention_without_path_needs_repair(self, context):
        verdict = judge_decision(DecisionDraft(mentioned=Mention.YES), context(locked=True))
        assert not verdict.accepted


class TestCustomPolicies:
    """Policies are an ordered list; callers may supply their own."""

    def test_first_settling_policy_wins(self, context, edit_draft):
        draft = edit_draft(BULLET, "Cut reporting time with SQL")
        verdict = judge_decision(draft, context(), policies=[check_edit_length])
        assert verdict.accepted
        assert isinstance(verdict.value, Edit)

    def test_empty_pipeline_settles_unresolved(self, context, edit_draft):
        verdict = judge_decision(edit_draft(BULLET, "text"), context(), policies=[])
        assert verdict.value.path == BULLET
        assert isinstance(verdict.value, Unresolved)

    def test_temporary_reason(self):
        from tuning.decisions import TEMPORARY_DECISION_REASON

        assert Unresolved(reason=TEMPORARY_DECISION_REASON).is_temporary
        assert not Unresolved(reason="No truthful inline edit found.").is_temporary
