"""Candidate index: the ordered document fields eligible for requirement edits."""

import re
from collections import Counter
from dataclasses import dataclass, field, replace

from .layout import (
    body_text_metrics,
    build_element_length_profile,
    build_field_length_constraint,
    extract_element_words,
)
from .models import ElementProfile, Requirement, RequirementType, ResumeData
from .text import sanitize

DEFAULT_MAX_RESOLUTIONS_PER_ELEMENT = 2

_EXPERIENCE_BULLET = re.compile(r"^experience\[\d+\]\.bullets\[\d+\]$")
_PROJECT_BULLET = re.compile(r"^projects\[\d+\]\.bullets\[\d+\]$")
_SKILL_NAME = re.compile(r"^skills\[\d+\]\.name$")
_EDUCATION_FIELD = re.compile(r"^education\[\d+\]\.(degree|field|other)$")
SUBTITLE_PATH = "metadata.subtitle"


@dataclass(frozen=True)
class CandidateWord:
    word: str
    char_count: int


@dataclass(frozen=True)
class CandidateElement:
    """A field that may receive an edit, with its own length budget."""

    path: str
    text: str
    max_lines: int
    max_chars_per_line: int
    max_chars_total: int
    total_char_count: int = 0
    words: tuple[CandidateWord, ...] = field(default_factory=tuple)

    @property
    def item_type(self) -> str:
        return "bullet" if ".bullets[" in self.path else "text"

    def summary(self, order: int) -> dict:
        """Prompt-facing description of the candidate."""
        return {
            "order": order,
            "path": self.path,
            "text": self.text,
            "chars": {
                "total": self.total_char_count,
                "maxTotal": self.max_chars_total,
                "maxPerLine": self.max_chars_per_line,
            },
            "lines": {"max": self.max_lines},
            "words": [{"word": w.word, "charCount": w.char_count} for w in self.words],
        }

    def with_text(self, text: str) -> "CandidateElement":
        """Same field and limits, holding ``text`` after an accepted edit."""
        return replace(
            self,
            text=text,
            total_char_count=len(text),
            words=tuple(CandidateWord(w.word, w.char_count) for w in extract_element_words(text)),
        )


def is_experience_bullet_path(path: str) -> bool:
    return bool(_EXPERIENCE_BULLET.match(path))


def is_project_bullet_path(path: str) -> bool:
    return bool(_PROJECT_BULLET.match(path))


def is_subtitle_path(path: str) -> bool:
    return path == SUBTITLE_PATH


def is_skill_path(path: str) -> bool:
    return bool(_SKILL_NAME.match(path))


def is_education_path(path: str) -> bool:
    return bool(_EDUCATION_FIELD.match(path))


def candidate_fields(resume: ResumeData) -> list[tuple[str, str]]:
    """``(path, text)`` for every field that may become a candidate, in index order.

    Order: experience bullets, project bullets, education fields, subtitle,
    skill names. Hidden sections contribute nothing.
    """
    visible = resume.section_visibility
    fields: list[tuple[str, str]] = []

    if visible.experience:
        for i, entry in enumerate(resume.experience):
            for j, bullet in enumerate(entry.bullets):
                fields.append((f"experience[{i}].bullets[{j}]", bullet))

    if visible.projects:
        for i, project in enumerate(resume.projects):
            for j, bullet in enumerate(project.bullets):
                fields.append((f"projects[{i}].bullets[{j}]", bullet))

    if visible.education:
        for i, entry in enumerate(resume.education):
            fields.append((f"education[{i}].degree", entry.degree))
            fields.append((f"education[{i}].field", entry.field))
            fields.append((f"education[{i}].other", entry.other))

    fields.append((SUBTITLE_PATH, resume.metadata.subtitle))

    if visible.skills:
        for i, skill in enumerate(resume.skills):
            fields.append((f"skills[{i}].name", skill.name))

    return fields


def build_candidates(
    resume: ResumeData, profiles: list[ElementProfile]
) -> list[CandidateElement]:
    """Build the ordered candidate list for a document.

    Paths without a measured profile are dropped.
    """
    profiles_by_path = {profile.path: profile for profile in profiles}
    candidates: list[CandidateElement] = []

    for path, text in candidate_fields(resume):
        profile = profiles_by_path.get(path)
        if profile is None:
            continue
        clean = sanitize(text)
        candidates.append(
            CandidateElement(
                path=path,
                text=clean,
                max_lines=profile.max_lines,
                max_chars_per_line=profile.max_chars_per_line,
                max_chars_total=profile.max_chars_total,
                total_char_count=profile.total_char_count or len(clean),
                words=tuple(CandidateWord(w.word, w.char_count) for w in profile.words),
            )
        )

    return candidates


def measure_fields(resume: ResumeData, max_lines: int = 2) -> list[ElementProfile]:
    """Profiles for every candidate field, measured against the document's body font.

    Used when the caller has no rendered measurements of its own.
    """
    width_px, font_size_px, font_family = body_text_metrics(resume)
    constraint = build_field_length_constraint(
        available_width_px=width_px,
        font_size_px=font_size_px,
        font_family=font_family,
        max_lines=max_lines,
    )
    if constraint is None:
        return []
    return [
        build_element_length_profile(path, text, constraint)
        for path, text in candidate_fields(resume)
    ]


class ResolutionBudget:
    """Counts how many requirements each field has satisfied, capped per path."""

    def __init__(self, cap: int = DEFAULT_MAX_RESOLUTIONS_PER_ELEMENT):
        self.cap = cap
        self._counts: Counter[str] = Counter()

    def count(self, path: str) -> int:
        return self._counts[path]

    def has_room(self, path: str) -> bool:
        return self._counts[path] < self.cap

    def record(self, path: str) -> None:
        self._counts[path] += 1

    def snapshot(self) -> dict[str, int]:
        return dict(self._counts)


def eligible_candidates(
    candidates: list[CandidateElement],
    requirement: Requirement,
    budget: ResolutionBudget,
) -> list[CandidateElement]:
    """Candidates still open for ``requirement``, in index order.

    Education fields are only offered to education requirements.
    """
    include_education = requirement.type == RequirementType.EDUCATION
    eligible = []
    for candidate in candidates:
        if not budget.has_room(candidate.path):
            continue
        path = candidate.path
        if (
            is_experience_bullet_path(path)
            or is_project_bullet_path(path)
            or is_subtitle_path(path)
            or is_skill_path(path)
        ):
            eligible.append(candidate)
        elif is_education_path(path) and include_education:
            eligible.append(candidate)
    return eligible
