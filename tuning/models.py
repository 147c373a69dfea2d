"""Pydantic models for the document snapshot, job requirements and measured field profiles.

These are the inputs the tuning core consumes. Wire names are camelCase
(``sectionVisibility``, ``coverLetter.body``); Python attributes are snake_case.
"""

from __future__ import annotations

import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_id() -> str:
    return uuid.uuid4().hex


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Enums
# =============================================================================


class RequirementType(str, Enum):
    """Closed set of job requirement kinds."""

    TOOL = "tool"
    PLATFORM = "platform"
    METHOD = "method"
    RESPONSIBILITY = "responsibility"
    DOMAIN = "domain"
    GOVERNANCE = "governance"
    LEADERSHIP = "leadership"
    COMMERCIAL = "commercial"
    EDUCATION = "education"
    CONSTRAINT = "constraint"


class Mention(str, Enum):
    """How explicitly a requirement already appears in a field."""

    YES = "yes"
    IMPLIED = "implied"
    NONE = "none"


class PaperSize(str, Enum):
    A4 = "a4"
    LETTER = "letter"


class FontFamily(str, Enum):
    SERIF = "serif"
    SANS = "sans"
    MONO = "mono"


# =============================================================================
# Requirements and measured profiles
# =============================================================================


class Requirement(CamelModel):
    """A weighted job requirement. Immutable once extracted."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    canonical: str = Field(min_length=1)
    type: RequirementType
    weight: float = 1.0
    must_have: bool = False
    aliases: list[str] = Field(default_factory=list)
    jd_evidence: list[str] = Field(default_factory=list)


class FieldLengthConstraint(CamelModel):
    """Line and character budget for a rendered field."""

    max_lines: int = Field(gt=0)
    max_chars_per_line: int = Field(gt=0)
    max_chars_total: int = Field(gt=0)
    available_width_px: float = Field(gt=0)
    font_size_px: float = Field(gt=0)
    font_family: str = Field(min_length=1)
    safety_buffer: float = Field(gt=0, le=1)


class ElementWord(CamelModel):
    index: int = Field(ge=0)
    word: str
    char_count: int = Field(ge=0)
    start: int = Field(ge=0)
    end: int = Field(ge=0)


class ElementProfile(CamelModel):
    """Measured length budget for one document field, produced by the layout measurer."""

    path: str = Field(min_length=1)
    text: str = ""
    max_lines: int = Field(gt=0)
    max_chars_per_line: int = Field(gt=0)
    max_chars_total: int = Field(gt=0)
    used_line_count: int = Field(default=0, ge=0)
    remaining_line_count: int = Field(default=0, ge=0)
    overflow_line_count: int = Field(default=0, ge=0)
    total_char_count: int = Field(default=0, ge=0)
    remaining_char_count: int = 0
    overflow_char_count: int = 0
    words: list[ElementWord] = Field(default_factory=list)


# =============================================================================
# Document snapshot
# =============================================================================


class Margins(CamelModel):
    """Page margins in millimetres."""

    top: float = 20.0
    right: float = 20.0
    bottom: float = 20.0
    left: float = 20.0


class PageSettings(CamelModel):
    paper_size: PaperSize = PaperSize.LETTER
    resume_margins: Margins | None = None
    cover_letter_margins: Margins | None = None
    # Older snapshots carry a single shared margin set.
    margins: Margins | None = None


class ContactInfo(CamelModel):
    email: str = ""
    phone: str = ""
    location: str = ""
    linkedin: str = ""
    website: str = ""
    github: str = ""


class ResumeMetadata(CamelModel):
    full_name: str = ""
    subtitle: str = ""
    summary: str = ""
    contact_info: ContactInfo = Field(default_factory=ContactInfo)


class SectionVisibility(CamelModel):
    summary: bool = True
    experience: bool = True
    projects: bool = True
    education: bool = True
    skills: bool = True


class FontSizes(CamelModel):
    """Font sizes in points."""

    name: float = 24
    subtitle: float = 14
    contact: float = 10
    section_title: float = 13
    item_title: float = 11
    item_detail: float = 10
    item_meta: float = 10
    body: float = 10


class FontPreferences(CamelModel):
    family: FontFamily = FontFamily.SERIF
    sizes: FontSizes = Field(default_factory=FontSizes)


class LayoutPreferences(CamelModel):
    model_config = ConfigDict(extra="allow")

    font_preferences: FontPreferences = Field(default_factory=FontPreferences)
    cover_letter_font_preferences: FontPreferences = Field(default_factory=FontPreferences)


class CoverLetter(CamelModel):
    date: str = ""
    hiring_manager: str = ""
    company_address: str = ""
    body: str = ""
    sendoff: str = "Best Regards,"


class ExperienceEntry(CamelModel):
    id: str = Field(default_factory=new_id)
    company: str = ""
    job_title: str = ""
    location: str = ""
    start_date: str = ""
    end_date: str = ""
    bullets: list[str] = Field(default_factory=list)


class ProjectEntry(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    technologies: list[str] = Field(default_factory=list)
    bullets: list[str] = Field(default_factory=list)


class EducationEntry(CamelModel):
    id: str = Field(default_factory=new_id)
    degree: str = ""
    institution: str = ""
    location: str = ""
    field: str = ""
    graduation_date: str = ""
    gpa: str = ""
    other: str = ""


class SkillEntry(CamelModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    category: str = ""


class ResumeData(CamelModel):
    """Snapshot of a resume plus its cover letter and layout preferences."""

    model_config = ConfigDict(extra="allow")

    page_settings: PageSettings = Field(default_factory=PageSettings)
    metadata: ResumeMetadata = Field(default_factory=ResumeMetadata)
    section_visibility: SectionVisibility = Field(default_factory=SectionVisibility)
    layout_preferences: LayoutPreferences = Field(default_factory=LayoutPreferences)
    cover_letter: CoverLetter = Field(default_factory=CoverLetter)
    experience: list[ExperienceEntry] = Field(default_factory=list)
    projects: list[ProjectEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    skills: list[SkillEntry] = Field(default_factory=list)
