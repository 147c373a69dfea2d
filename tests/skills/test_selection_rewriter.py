"""Tests for the selection rewrite skill."""

import pytest

from claude_client import ProviderCallError
from skills import SelectionRewriterSkill, SkillContext
from skills.selection_rewriter import (
    INVALID_OPERATIONS_ERROR,
    RewriteField,
    RewriteOperation,
    RewriteOperationsDraft,
    RewriteScope,
    find_length_violations,
)
from tuning.models import FieldLengthConstraint

PATH = "experience[0].bullets[0]"


def _constraint():
    return FieldLengthConstraint(
        max_lines=2,
        max_chars_per_line=40,
        max_chars_total=80,
        available_width_px=300,
        font_size_px=13.33,
        font_family="serif",
        safety_buffer=0.95,
    )


def _ops(value, op="replace"):
    return RewriteOperationsDraft(operations=[RewriteOperation(op=op, path=PATH, value=value)])


@pytest.fixture
def run(mock_claude_client, test_config):
    def execute(constrained=True):
        skill = SelectionRewriterSkill(mock_claude_client, test_config)
        field = RewriteField(
            path=PATH,
            text="Built SQL dashboards that cut reporting time by 40%",
            length_constraint=_constraint() if constrained else None,
        )
        return skill.execute(
            SkillContext(config=test_config),
            instruction="Make it punchier",
            fields=[field],
            scope=RewriteScope(),
        )

    return execute


class TestFindLengthViolations:
    """Tests for find_length_violations()."""

    def test_reports_measurements(self, overflow_text):
        ops = [RewriteOperation(op="replace", path=PATH, value=overflow_text)]
        assert find_length_violations(ops, {PATH: _constraint()}) == [
            {
                "path": PATH,
                "maxLines": 2,
                "maxCharsPerLine": 40,
                "maxCharsTotal": 80,
                "wrappedLines": 3,
                "charCount": 85,
            }
        ]

    def test_ignores_deletes_and_unconstrained_paths(self, overflow_text):
        ops = [
            RewriteOperation(op="delete", path=PATH),
            RewriteOperation(op="replace", path="metadata.summary", value=overflow_text),
        ]
        assert find_length_violations(ops, {PATH: _constraint()}) == []


class TestSelectionRewriterSkill:
    """Tests for SelectionRewriterSkill."""

    def test_accepts_fitting_operations(self, run, mock_claude_client):
        mock_claude_client.generate.side_effect = [_ops(" Cut reporting time 40% with SQL ")]

        result = run()

        assert result.success
        assert result.data == [
            RewriteOperation(op="replace", path=PATH, value="Cut reporting time 40% with SQL")
        ]

    def test_overflow_is_repaired(self, run, mock_claude_client, overflow_text):
        mock_claude_client.generate.side_effect = [_ops(overflow_text), _ops("Short enough")]

        result = run()

        assert result.success
        assert result.metadata["attempts"] == 2
        prompt = mock_claude_client.generate.call_args_list[1].kwargs["prompt"]
        assert f"- {PATH}: chars 85/80; wrapped lines 3/2; maxCharsPerLine=40" in prompt
        assert "Previous draft operations to revise:" in prompt

    def test_exhaustion_reports_violations(self, run, mock_claude_client, overflow_text):
        mock_claude_client.generate.side_effect = [_ops(overflow_text)] * 3

        result = run()

        assert not result.success
        assert result.metadata["violations"][0]["charCount"] == 85
        assert mock_claude_client.generate.call_count == 3

    def test_schema_failure_is_repairable(
        self, run, mock_claude_client, permanent_error
    ):
        mock_claude_client.generate.side_effect = [permanent_error, _ops("Fixed")]

        result = run()

        assert result.success
        second_prompt = mock_claude_client.generate.call_args_list[1].kwargs["prompt"]
        assert "did not match the required JSON schema" in second_prompt

    def test_schema_failures_exhausted(self, run, mock_claude_client, permanent_error):
        mock_claude_client.generate.side_effect = [permanent_error] * 3

        result = run()

        assert not result.success
        assert result.error == INVALID_OPERATIONS_ERROR
        assert result.metadata["invalid_output"] is True

    def test_transient_failures(self, run, mock_claude_client, transient_error):
        mock_claude_client.generate.side_effect = [transient_error] * 3

        result = run()

        assert not result.success
        assert result.metadata["transient"] is True

    def test_permanent_provider_failure(self, run, mock_claude_client):
        mock_claude_client.generate.side_effect = [ProviderCallError("Invalid API key", 401)]

        result = run()

        assert not result.success
        assert result.metadata["transient"] is False
        assert mock_claude_client.generate.call_count == 1

    def test_unconstrained_prompt(self, run, mock_claude_client, overflow_text):
        mock_claude_client.generate.side_effect = [_ops(overflow_text)]

        result = run(constrained=False)

        assert result.success
        assert "Length constraints: none." in mock_claude_client.generate.call_args.kwargs["prompt"]
