"""Tests for the structural patch and diff builder."""

from tuning.diff_builder import build_tune_outputs
from tuning.draft import EvidenceLevel, RewriteMeta
from tuning.models import SkillEntry

BULLET_AFTER = "Built SQL dashboards for stakeholders, cutting reporting time by 40%"


def _tuned(resume):
    return resume.model_copy(deep=True)


class TestBuildTuneOutputs:
    """Tests for build_tune_outputs()."""

    def test_no_changes(self, sample_resume):
        outputs = build_tune_outputs(sample_resume, _tuned(sample_resume), {}, [])
        assert outputs.json_patch == []
        assert outputs.diffs == []

    def test_bullet_replace(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.experience[0].bullets[0] = BULLET_AFTER

        outputs = build_tune_outputs(sample_resume, tuned, {}, ["stakeholders"])

        assert outputs.json_patch == [
            {"op": "replace", "path": "/experience/0/bullets/0", "value": BULLET_AFTER}
        ]
        diff = outputs.diffs[0]
        assert diff.op == "replace"
        assert diff.path == "experience[0].bullets[0]"
        assert diff.before == sample_resume.experience[0].bullets[0]
        assert diff.after == BULLET_AFTER
        assert diff.keywords_covered == ["stakeholders"]
        assert diff.evidence_level == EvidenceLevel.CONSERVATIVE_REPHRASE
        assert diff.confidence == 0.72
        assert not diff.manual_approval_required

    def test_meta_is_carried(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.experience[0].bullets[0] = BULLET_AFTER
        meta = {"experience[0].bullets[0]": RewriteMeta(["sql"], 0.8, EvidenceLevel.EXPLICIT)}

        diff = build_tune_outputs(sample_resume, tuned, meta, []).diffs[0]
        assert diff.confidence == 0.8
        assert diff.evidence_level == EvidenceLevel.EXPLICIT
        assert diff.keywords_covered == ["sql"]

    def test_whitespace_only_change_is_ignored(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.metadata.subtitle = "  Data Analyst  "
        assert build_tune_outputs(sample_resume, tuned, {}, []).diffs == []

    def test_longer_text_reports_line_delta(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.metadata.summary = " ".join([sample_resume.metadata.summary] * 4)
        diff = build_tune_outputs(sample_resume, tuned, {}, []).diffs[0]
        assert diff.path == "metadata.summary"
        assert diff.line_delta > 0

    def test_cover_letter_fields(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.cover_letter.hiring_manager = "Dana Lee"
        outputs = build_tune_outputs(sample_resume, tuned, {}, [])
        assert outputs.json_patch == [
            {"op": "replace", "path": "/coverLetter/hiringManager", "value": "Dana Lee"}
        ]

    def test_new_skill_is_appended(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.skills.append(SkillEntry(id="sk-3", name="Tableau", category="BI"))

        outputs = build_tune_outputs(sample_resume, tuned, {}, [])

        assert outputs.json_patch == [
            {
                "op": "add",
                "path": "/skills/-",
                "value": {"id": "sk-3", "name": "Tableau", "category": "BI"},
            }
        ]
        assert outputs.diffs[0].op == "insert"
        assert outputs.diffs[0].after == "Tableau (BI)"
        assert outputs.diffs[0].line_delta == 1

    def test_category_change(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.skills[1].category = "Programming"
        outputs = build_tune_outputs(sample_resume, tuned, {}, [])
        assert outputs.json_patch == [
            {"op": "replace", "path": "/skills/1/category", "value": "Programming"}
        ]
        assert outputs.diffs[0].before == "Languages"

    def test_removals_need_deletions_allowed(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.skills = []
        assert build_tune_outputs(sample_resume, tuned, {}, []).json_patch == []

    def test_removals_highest_index_first(self, sample_resume):
        tuned = _tuned(sample_resume)
        tuned.skills = []

        outputs = build_tune_outputs(sample_resume, tuned, {}, [], allow_deletions=True)

        assert outputs.json_patch == [
            {"op": "remove", "path": "/skills/1"},
            {"op": "remove", "path": "/skills/0"},
        ]
        assert all(d.manual_approval_required for d in outputs.diffs)
        assert [d.before for d in outputs.diffs] == ["Python", "SQL"]
        assert all(d.line_delta == -1 for d in outputs.diffs)
