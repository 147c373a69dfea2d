"""Tests for the claim catalogue and draft application."""

from datetime import date

import pytest

from tuning.claims import build_claims, claim_ids
from tuning.draft import (
    CoverLetterDraft,
    EntryDraft,
    EvidenceLevel,
    MetadataDraft,
    OptimizedDraft,
    RewriteDraft,
    SkillDraft,
    apply_draft,
    collect_evidence_ids,
    normalize_cover_letter_date,
)
from tuning.models import SkillEntry
from tuning.validators import build_tool_allowlist

TODAY = date(2026, 10, 18)
REWRITTEN = "Built SQL dashboards for stakeholders, cutting reporting time by 40%"


@pytest.fixture
def applier(sample_resume):
    valid_ids = claim_ids(build_claims(sample_resume))
    allowed = build_tool_allowlist(sample_resume)

    def run(draft, allow_deletions=False):
        return apply_draft(
            sample_resume,
            draft,
            valid_ids,
            allowed,
            ["stakeholders", "sql", "tableau"],
            allow_deletions=allow_deletions,
            today=TODAY,
        )

    return run


class TestClaims:
    """Tests for build_claims()."""

    def test_claim_ids(self, sample_resume):
        claims = build_claims(sample_resume)
        assert [c.id for c in claims] == [
            "exp-1-1",
            "exp-1-2",
            "proj-1-1",
            "summary",
            "skill-1",
            "skill-2",
            "edu-1",
        ]
        assert claims[-1].text == "Bachelor of Science Statistics State University"

    def test_empty_claims_are_skipped(self, sample_resume):
        resume = sample_resume.model_copy(deep=True)
        resume.metadata.summary = "   "
        assert "summary" not in claim_ids(build_claims(resume))

    def test_collect_evidence_ids(self):
        draft = OptimizedDraft(
            metadata=MetadataDraft(summary=RewriteDraft(text="s", evidence_ids=["summary"])),
            experience=[EntryDraft(id="e", bullets=[RewriteDraft(evidence_ids=["exp-1-1"])])],
            skills=[SkillDraft(name="SQL", evidence_ids=["skill-1"])],
        )
        assert collect_evidence_ids(draft) == ["summary", "exp-1-1", "skill-1"]


class TestCoverLetterDate:
    """Tests for normalize_cover_letter_date()."""

    def test_parses_long_form(self):
        assert normalize_cover_letter_date("March 3, 2026", today=TODAY) == "2026-03-03"

    def test_future_dates_clamp_to_today(self):
        assert normalize_cover_letter_date("2027-01-01", today=TODAY) == "2026-10-18"

    def test_invalid_falls_back(self):
        assert normalize_cover_letter_date("2026-02-30", "2026-01-05", today=TODAY) == "2026-01-05"

    def test_nothing_parses_uses_today(self):
        assert normalize_cover_letter_date("soon", "", today=TODAY) == "2026-10-18"


class TestApplyDraft:
    """Tests for apply_draft()."""

    def test_grounded_bullet_is_applied(self, applier, sample_resume):
        draft = OptimizedDraft(
            experience=[
                EntryDraft(
                    id="exp-a",
                    bullets=[
                        RewriteDraft(text=REWRITTEN, evidence_ids=["exp-1-1"]),
                        RewriteDraft(text="Automated KPI reports", evidence_ids=["bogus"]),
                    ],
                )
            ]
        )
        applied = applier(draft)

        assert applied.resume.experience[0].bullets == [
            REWRITTEN,
            "Automated weekly KPI reports with Python",
        ]
        meta = applied.meta_by_path["experience[0].bullets[0]"]
        assert meta.evidence_level == EvidenceLevel.EXPLICIT
        assert meta.confidence == 0.8
        assert meta.keywords_covered == ["stakeholders", "sql"]
        assert "experience[0].bullets[1]" not in applied.meta_by_path
        assert sample_resume.experience[0].bullets[0] != REWRITTEN

    def test_dropped_number_keeps_original(self, applier, sample_resume):
        draft = OptimizedDraft(
            experience=[
                EntryDraft(
                    id="exp-a",
                    bullets=[RewriteDraft(text="Built SQL dashboards", evidence_ids=["exp-1-1"])],
                )
            ]
        )
        applied = applier(draft)
        assert applied.resume.experience[0].bullets[0] == sample_resume.experience[0].bullets[0]
        assert applied.meta_by_path == {}

    def test_unknown_entry_is_ignored(self, applier, sample_resume):
        draft = OptimizedDraft(
            experience=[
                EntryDraft(id="other", bullets=[RewriteDraft(text=REWRITTEN, evidence_ids=["exp-1-1"])])
            ]
        )
        assert applier(draft).resume.experience == sample_resume.experience

    def test_summary_requires_evidence(self, applier, sample_resume):
        draft = OptimizedDraft(
            metadata=MetadataDraft(summary=RewriteDraft(text="Analyst with 6 years in SQL"))
        )
        assert applier(draft).resume.metadata.summary == sample_resume.metadata.summary

    def test_skills_are_appended_and_recategorized(self, applier, sample_resume):
        draft = OptimizedDraft(
            skills=[
                SkillDraft(name="sql", category="Databases", evidence_ids=["skill-1"]),
                SkillDraft(name="Dashboards", category="BI", evidence_ids=["exp-1-1"]),
                SkillDraft(name="Reporting", category="Ops", evidence_ids=[]),
            ]
        )
        skills = applier(draft).resume.skills

        assert [s.name for s in skills] == ["SQL", "Python", "Dashboards"]
        assert skills[0].category == "Databases"
        assert skills[0].id == "sk-1"
        assert sample_resume.skills[0].category == "Data"

    def test_skills_replaced_when_deletions_allowed(self, applier):
        draft = OptimizedDraft(
            skills=[SkillDraft(name="Python", category="Languages", evidence_ids=["skill-2"])]
        )
        skills = applier(draft, allow_deletions=True).resume.skills
        assert skills == [SkillEntry(id="sk-2", name="Python", category="Languages")]

    def test_skills_naming_new_tools_are_dropped(self, applier, sample_resume):
        draft = OptimizedDraft(
            skills=[
                SkillDraft(name="Kubernetes", category="Ops", evidence_ids=["summary"]),
                SkillDraft(name="Dashboards", category="Docker", evidence_ids=["exp-1-1"]),
                SkillDraft(name="Python", category="Languages", evidence_ids=["skill-2"]),
            ]
        )

        appended = applier(draft).resume.skills
        replaced = applier(draft, allow_deletions=True).resume.skills

        assert appended == sample_resume.skills
        assert [s.name for s in replaced] == ["Python"]

    def test_subtitle_naming_new_tools_is_reverted(self, applier, sample_resume):
        draft = OptimizedDraft(
            metadata=MetadataDraft(subtitle="Kubernetes and Docker Platform Engineer")
        )
        applied = applier(draft)

        assert applied.resume.metadata.subtitle == sample_resume.metadata.subtitle
        assert "metadata.subtitle" not in applied.meta_by_path

    def test_subtitle_rewrite(self, applier):
        applied = applier(OptimizedDraft(metadata=MetadataDraft(subtitle="  SQL Data Analyst ")))

        assert applied.resume.metadata.subtitle == "SQL Data Analyst"
        assert "metadata.subtitle" in applied.meta_by_path

    def test_cover_letter_paragraphs_join(self, applier):
        draft = OptimizedDraft(
            cover_letter=CoverLetterDraft(
                paragraphs=[
                    RewriteDraft(text="I am excited to apply.", evidence_ids=["summary"]),
                    RewriteDraft(
                        text="My SQL dashboards cut reporting time by 40%.",
                        evidence_ids=["exp-1-1"],
                    ),
                ],
                hiring_manager="Dana Lee",
            )
        )
        applied = applier(draft)
        letter = applied.resume.cover_letter

        assert letter.body == (
            "I am excited to apply.\n\nMy SQL dashboards cut reporting time by 40%."
        )
        assert letter.hiring_manager == "Dana Lee"
        assert letter.date == "2026-01-05"
        assert "coverLetter.body" in applied.meta_by_path
        assert "coverLetter.hiringManager" in applied.meta_by_path
        assert "coverLetter.date" not in applied.meta_by_path

    def test_cover_letter_losing_number_reverts(self, applier, sample_resume):
        draft = OptimizedDraft(
            cover_letter=CoverLetterDraft(
                paragraphs=[RewriteDraft(text="I love data.", evidence_ids=["summary"])]
            )
        )
        assert applier(draft).resume.cover_letter.body == sample_resume.cover_letter.body
