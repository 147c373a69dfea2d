"""Pydantic models for Resume Tuner services.

Request and response models shared by CLI and API layers.
Services return these models; callers handle presentation.
Wire names are camelCase; serialize with ``by_alias=True``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import Field

from skills.resume_tuner import AttemptRecord, PageCount
from skills.selection_rewriter import RewriteField, RewriteOperation, RewriteScope
from tuning.diff_builder import TuneDiff
from tuning.models import CamelModel, ElementProfile, Mention, Requirement, ResumeData

MAX_REQUIREMENTS_PER_REQUEST = 24


# =============================================================================
# Enums
# =============================================================================


class ResolutionStatus(str, Enum):
    """Final status of a requirement after an edit run."""

    ALREADY_MENTIONED = "already_mentioned"
    EDITED = "edited"
    UNRESOLVED = "unresolved"
    LOCKED_NO_EDIT = "locked_no_edit"


class JobDescriptionSource(str, Enum):
    URL = "url"
    MANUAL = "manual"
    URL_AND_MANUAL = "url+manual"


# =============================================================================
# Request Models
# =============================================================================


class EditRequest(CamelModel):
    """Request to resolve weighted requirements with inline edits."""

    requirements: list[Requirement] = Field(
        min_length=1, max_length=MAX_REQUIREMENTS_PER_REQUEST
    )
    resume_data: ResumeData
    element_profiles: list[ElementProfile] = Field(default_factory=list)
    allowed_additions: list[str] = Field(default_factory=list)
    stream: bool = Field(default=False, description="Deliver progress as server-sent events")


class TuneRequest(CamelModel):
    """Request to tune the whole document for a job."""

    company_name: str = ""
    job_title: str = ""
    job_url: str = ""
    job_description: str = ""
    max_resume_pages: int = Field(default=1, ge=1, le=4)
    allow_deletions: bool = False
    allowed_additions: list[str] = Field(default_factory=list)
    resume_data: ResumeData


class ExtractRequest(CamelModel):
    job_description: str = ""


class SelectionRewriteRequest(CamelModel):
    instruction: str = Field(min_length=1)
    fields: list[RewriteField]
    scope: RewriteScope = Field(default_factory=RewriteScope)


class EstimateRequest(CamelModel):
    resume_data: ResumeData


# =============================================================================
# Response Models
# =============================================================================


class EditOperation(CamelModel):
    """Atomic replace instruction produced by an edit run."""

    op: Literal["replace"] = "replace"
    path: str
    value: str
    index: int = -1
    item_type: Literal["text", "bullet"]
    requirement_id: str
    mentioned: Mention
    feasible_edit: bool = True
    edited: bool = True


class ReportEntry(CamelModel):
    requirement_id: str
    canonical: str
    status: ResolutionStatus
    mentioned: Mention
    matched_path: str | None = None
    edited_path: str | None = None
    reason: str | None = None


class ProgressEvent(CamelModel):
    """Emitted after each requirement finishes, in processing order."""

    completed: int
    total: int
    requirement_id: str
    canonical: str
    status: ResolutionStatus


class EditResponse(CamelModel):
    operations: list[EditOperation] = Field(default_factory=list)
    report: list[ReportEntry] = Field(default_factory=list)
    error: str | None = None


class PageEstimation(CamelModel):
    resume_pages: int
    cover_letter_pages: int
    max_resume_pages: int
    max_cover_letter_pages: int
    within_limit: bool


class TuneConstraints(CamelModel):
    allow_deletions: bool
    deletions_require_manual_approval: bool = True


class TuneRaw(CamelModel):
    attempts: list[AttemptRecord] = Field(default_factory=list)
    selected_attempt: int | None = None
    selected_estimation: PageCount | None = None
    fit_error: str | None = None


class TuneResponse(CamelModel):
    optimized_resume: ResumeData
    best_effort_resume: ResumeData | None = None
    json_patch: list[dict[str, Any]] = Field(default_factory=list)
    diffs: list[TuneDiff] = Field(default_factory=list)
    constraints: TuneConstraints
    fit_error: str | None = None
    job_description: str
    job_description_source: JobDescriptionSource
    scrape_warning: str | None = None
    estimation: PageEstimation
    raw: TuneRaw


class ExtractResponse(CamelModel):
    requirements: list[Requirement]


class SelectionRewriteResponse(CamelModel):
    operations: list[RewriteOperation]


class EstimateResponse(CamelModel):
    resume_pages: int
    cover_letter_pages: int
    resume_chars_per_line: int
    cover_chars_per_line: int


class HealthResponse(CamelModel):
    status: str = "ok"
    version: str
