"""Shared test fixtures for Resume Tuner tests."""

import copy
from unittest.mock import MagicMock

import pytest

from claude_client import GenerationSchemaError, ProviderCallError
from config_loader import DEFAULT_CONFIG
from tuning.candidates import candidate_fields
from tuning.decisions import DecisionDraft
from tuning.models import (
    CoverLetter,
    EducationEntry,
    ElementProfile,
    ExperienceEntry,
    Mention,
    ProjectEntry,
    Requirement,
    RequirementType,
    ResumeData,
    ResumeMetadata,
    SkillEntry,
)


@pytest.fixture
def test_config():
    """Create a test configuration dictionary."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    config["client"]["retry_count"] = 0
    config["client"]["retry_delay"] = 0
    return config


@pytest.fixture
def overflow_text():
    """85 characters: three wrapped lines at 40 characters per line."""
    return " ".join(["x" * 9] * 8) + " " + "y" * 5


@pytest.fixture
def mock_claude_client():
    """Create a mock Claude client; tests script ``generate`` side effects."""
    client = MagicMock()
    client.complete.return_value = "Mock response"
    client.complete_json.return_value = {}
    client.get_token_usage.return_value = {
        "input_tokens": 100,
        "output_tokens": 50,
        "total_tokens": 150,
    }
    return client


@pytest.fixture
def transient_error():
    return ProviderCallError("Service unavailable", status_code=503)


@pytest.fixture
def permanent_error():
    return GenerationSchemaError("Response did not match DecisionDraft: 2 errors")


@pytest.fixture
def sample_resume():
    """A one-page resume with one role, one project, education and two skills."""
    return ResumeData(
        metadata=ResumeMetadata(
            full_name="Test User",
            subtitle="Data Analyst",
            summary="Data analyst with 6 years of experience building reporting pipelines.",
        ),
        experience=[
            ExperienceEntry(
                id="exp-a",
                company="Acme",
                job_title="Analyst",
                bullets=[
                    "Built SQL dashboards that cut reporting time by 40%",
                    "Automated weekly KPI reports with Python",
                ],
            )
        ],
        projects=[
            ProjectEntry(
                id="proj-a",
                name="Churn Model",
                technologies=["Python"],
                bullets=["Trained a churn model on 1,200 accounts"],
            )
        ],
        education=[
            EducationEntry(
                id="edu-a",
                degree="Bachelor of Science",
                field="Statistics",
                institution="State University",
            )
        ],
        skills=[
            SkillEntry(id="sk-1", name="SQL", category="Data"),
            SkillEntry(id="sk-2", name="Python", category="Languages"),
        ],
        cover_letter=CoverLetter(
            date="2026-01-05",
            body="I am excited to apply.\n\nMy SQL work cut reporting time by 40%.",
        ),
    )


@pytest.fixture
def profile_factory():
    """Build uniform profiles for every candidate field of a document."""

    def make(resume, max_lines=2, max_chars_per_line=80, paths=None):
        return [
            ElementProfile(
                path=path,
                text=text,
                max_lines=max_lines,
                max_chars_per_line=max_chars_per_line,
                max_chars_total=max_lines * max_chars_per_line,
                total_char_count=len(text),
            )
            for path, text in candidate_fields(resume)
            if paths is None or path in paths
        ]

    return make


@pytest.fixture
def sample_profiles(sample_resume, profile_factory):
    return profile_factory(sample_resume)


@pytest.fixture
def requirement_factory():
    def make(canonical, type=RequirementType.TOOL, id=None, aliases=None, **kwargs):
        return Requirement(
            id=id or f"req-{canonical.lower().replace(' ', '-')}",
            canonical=canonical,
            type=type,
            aliases=aliases or [],
            **kwargs,
        )

    return make


@pytest.fixture
def edit_draft():
    """Build an edit decision draft for a path."""

    def make(path, text, mentioned=Mention.IMPLIED, reason=""):
        return DecisionDraft(
            path=path,
            mentioned=mentioned,
            feasible_edit=True,
            edited=True,
            suggested_edit=text,
            reason=reason,
        )

    return make
