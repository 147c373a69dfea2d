"""Layout estimation: wrapped-line counts, page counts and per-field length budgets.

Everything here is deterministic and free of I/O so it can be called many
times per request.
"""

import math
import re
from dataclasses import dataclass

from .models import (
    ElementProfile,
    ElementWord,
    FieldLengthConstraint,
    FontFamily,
    Margins,
    ResumeData,
)
from .text import sanitize

DEFAULT_LINE_SAFETY_BUFFER = 0.97
MIN_CHARS_PER_LINE = 8

# Paper sizes in millimetres.
PAPER_DIMENSIONS = {
    "a4": (210.0, 297.0),
    "letter": (215.9, 279.4),
}

DEFAULT_MARGINS = Margins()

# Average glyph width as a fraction of the font size.
CHAR_WIDTH_FACTORS = {
    FontFamily.MONO: 0.61,
    FontFamily.SANS: 0.54,
    FontFamily.SERIF: 0.52,
}

# Bullets are indented, which costs a few characters per line.
BULLET_INDENT_CHARS = 3

_WORD = re.compile(r"\S+")


@dataclass(frozen=True)
class PageEstimate:
    """Estimated page usage of a document."""

    resume_pages: int
    cover_letter_pages: int
    resume_chars_per_line: int
    cover_chars_per_line: int

    @property
    def combined_pages(self) -> int:
        return self.resume_pages + self.cover_letter_pages


def estimate_wrapped_lines(text: str, max_chars_per_line: int) -> int:
    """Count the lines ``text`` occupies under greedy word wrapping.

    Words accumulate on a line while the line stays within
    ``max_chars_per_line``; a word longer than the limit still takes a single
    line. Explicit newlines start a new line. Blank text takes no lines.
    """
    if max_chars_per_line <= 0:
        raise ValueError("max_chars_per_line must be positive")

    normalized = (text or "").replace("\r\n", "\n")
    if not normalized.strip():
        return 0

    total = 0
    for raw_line in normalized.split("\n"):
        words = raw_line.split()
        if not words:
            total += 1
            continue
        lines = 1
        width = len(words[0])
        for word in words[1:]:
            if width + 1 + len(word) <= max_chars_per_line:
                width += 1 + len(word)
            else:
                lines += 1
                width = len(word)
        total += lines
    return total


def _mm_to_pt(mm: float) -> float:
    return mm * 72 / 25.4


def _chars_per_line(width_pt: float, font_size: float, family: FontFamily) -> int:
    char_width = max(2.4, font_size * CHAR_WIDTH_FACTORS.get(family, 0.52))
    return max(20, math.floor(width_pt / char_width))


def _line_height(font_size: float, relaxed: bool = False) -> float:
    return font_size * (1.45 if relaxed else 1.28)


def _lines(text: str, chars_per_line: int) -> int:
    return estimate_wrapped_lines(sanitize(text), chars_per_line)


def _usable_area(resume: ResumeData, margins: Margins | None) -> tuple[float, float]:
    paper_width, paper_height = PAPER_DIMENSIONS[resume.page_settings.paper_size.value]
    m = margins or resume.page_settings.margins or DEFAULT_MARGINS
    width = _mm_to_pt(max(30.0, paper_width - m.left - m.right))
    height = _mm_to_pt(max(30.0, paper_height - m.top - m.bottom))
    return width, height


def _pt_to_px(pt: float) -> float:
    return pt * 96 / 72


def body_text_metrics(resume: ResumeData) -> tuple[float, float, str]:
    """Usable resume width in px, body font size in px and font family."""
    width_pt, _ = _usable_area(resume, resume.page_settings.resume_margins)
    font = resume.layout_preferences.font_preferences
    return _pt_to_px(width_pt), _pt_to_px(font.sizes.body), font.family.value


def estimate_pages(resume: ResumeData) -> PageEstimate:
    """Estimate resume and cover letter page counts.

    Sums per-section heights (line counts times a line height derived from
    the font size) over the visible sections and divides by the usable page
    height, rounding up with a minimum of one page.
    """
    resume_width, resume_height = _usable_area(resume, resume.page_settings.resume_margins)
    cover_width, cover_height = _usable_area(resume, resume.page_settings.cover_letter_margins)

    font = resume.layout_preferences.font_preferences
    cover_font = resume.layout_preferences.cover_letter_font_preferences
    sizes = font.sizes
    visible = resume.section_visibility

    body_cpl = _chars_per_line(resume_width, sizes.body, font.family)
    cover_cpl = _chars_per_line(cover_width, cover_font.sizes.body, cover_font.family)
    bullet_cpl = body_cpl - BULLET_INDENT_CHARS
    section_header = _line_height(sizes.section_title) + 6
    body_line = _line_height(sizes.body, relaxed=True)

    used = (
        _line_height(sizes.name)
        + _line_height(sizes.subtitle)
        + _line_height(sizes.contact)
        + 20
    )

    if visible.summary and sanitize(resume.metadata.summary):
        used += section_header
        used += _lines(resume.metadata.summary, body_cpl) * body_line

    if visible.experience and resume.experience:
        used += section_header
        for entry in resume.experience:
            used += _line_height(sizes.item_title) + _line_height(sizes.item_meta) + 6
            for bullet in entry.bullets:
                used += _lines(bullet, bullet_cpl) * body_line + 2

    if visible.projects and resume.projects:
        used += section_header
        for project in resume.projects:
            used += _line_height(sizes.item_title)
            for bullet in project.bullets:
                used += _lines(bullet, bullet_cpl) * body_line + 2

    if visible.education and resume.education:
        used += section_header
        for entry in resume.education:
            detail = sanitize(
                " ".join(
                    [
                        entry.degree,
                        entry.institution,
                        entry.field,
                        entry.location,
                        entry.graduation_date,
                        entry.gpa,
                    ]
                )
            )
            used += _line_height(sizes.item_title) + _line_height(sizes.item_meta) + 2
            if detail:
                used += _lines(detail, body_cpl) * _line_height(sizes.item_detail, True) + 2

    if visible.skills and resume.skills:
        used += section_header
        used += max(1, len(resume.skills) / 8) * _line_height(sizes.body)

    resume_pages = max(1, math.ceil(used / resume_height))

    cover_line = _line_height(cover_font.sizes.body, relaxed=True)
    paragraphs = [p for p in re.split(r"\n{2,}", sanitize(resume.cover_letter.body)) if p]
    cover_used = cover_line * 8
    for paragraph in paragraphs:
        cover_used += _lines(paragraph, cover_cpl) * cover_line + 8
    cover_letter_pages = max(1, math.ceil(cover_used / cover_height))

    return PageEstimate(
        resume_pages=resume_pages,
        cover_letter_pages=cover_letter_pages,
        resume_chars_per_line=body_cpl,
        cover_chars_per_line=cover_cpl,
    )


def get_font_safety_buffer(font_family: str) -> float:
    normalized = font_family.lower()
    if "mono" in normalized:
        return 0.995
    if "georgia" in normalized or "times" in normalized or "serif" in normalized:
        return 0.97
    if "geist" in normalized or "sans" in normalized:
        return 0.98
    return DEFAULT_LINE_SAFETY_BUFFER


def calculate_max_chars_per_line(
    available_width_px: float,
    char_width_px: float,
    safety_buffer: float,
    min_chars_per_line: int = MIN_CHARS_PER_LINE,
) -> int:
    safe_char_width = char_width_px if char_width_px and char_width_px > 0 else 1
    estimated = math.floor(available_width_px * safety_buffer / safe_char_width)
    return max(min_chars_per_line, estimated)


def build_field_length_constraint(
    available_width_px: float,
    font_size_px: float,
    font_family: str,
    max_lines: int,
    char_width_px: float | None = None,
) -> FieldLengthConstraint | None:
    """Derive a field's character budget from its rendered width and font.

    Returns None when ``max_lines`` is below one (the field is unconstrained).
    """
    if max_lines < 1:
        return None
    safety_buffer = get_font_safety_buffer(font_family)
    if char_width_px is None:
        try:
            family = FontFamily(font_family.lower())
        except ValueError:
            family = None
        char_width_px = font_size_px * CHAR_WIDTH_FACTORS.get(family, 0.52)
    max_chars_per_line = calculate_max_chars_per_line(
        available_width_px, char_width_px, safety_buffer
    )
    return FieldLengthConstraint(
        max_lines=max_lines,
        max_chars_per_line=max_chars_per_line,
        max_chars_total=max_chars_per_line * max_lines,
        available_width_px=available_width_px,
        font_size_px=font_size_px,
        font_family=font_family,
        safety_buffer=safety_buffer,
    )


def extract_element_words(text: str) -> list[ElementWord]:
    normalized = (text or "").replace("\r\n", "\n")
    return [
        ElementWord(
            index=index,
            word=match.group(0),
            char_count=len(match.group(0)),
            start=match.start(),
            end=match.end(),
        )
        for index, match in enumerate(_WORD.finditer(normalized))
    ]


def build_element_length_profile(
    path: str, text: str, constraint: FieldLengthConstraint
) -> ElementProfile:
    """Measure ``text`` against a field constraint."""
    normalized = (text or "").replace("\r\n", "\n")
    total_chars = len(normalized)
    used_lines = estimate_wrapped_lines(normalized, constraint.max_chars_per_line)
    return ElementProfile(
        path=path,
        text=normalized,
        max_lines=constraint.max_lines,
        max_chars_per_line=constraint.max_chars_per_line,
        max_chars_total=constraint.max_chars_total,
        used_line_count=used_lines,
        remaining_line_count=max(0, constraint.max_lines - used_lines),
        overflow_line_count=max(0, used_lines - constraint.max_lines),
        total_char_count=total_chars,
        remaining_char_count=max(0, constraint.max_chars_total - total_chars),
        overflow_char_count=max(0, total_chars - constraint.max_chars_total),
        words=extract_element_words(normalized),
    )
