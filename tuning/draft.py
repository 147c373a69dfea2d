"""Whole-document tuning drafts: the generation schema and how a draft is applied.

Applying a draft never fails. Each field is taken from the draft only when it
cites a known claim and passes the numeric and vocabulary checks; otherwise
the field keeps its original value.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from pydantic import Field

from .keywords import match_keywords
from .models import CamelModel, ResumeData, SkillEntry, new_id
from .text import sanitize
from .validators import find_unknown_tools, has_grounded_evidence, safe_rewrite

# =============================================================================
# Generation schema
# =============================================================================


class RewriteDraft(CamelModel):
    text: str = ""
    evidence_ids: list[str] = Field(default_factory=list)
    keywords_covered: list[str] | None = None
    confidence: float | None = Field(default=None, ge=0, le=1)


class MetadataDraft(CamelModel):
    subtitle: str = ""
    summary: RewriteDraft = Field(default_factory=RewriteDraft)


class EntryDraft(CamelModel):
    id: str
    bullets: list[RewriteDraft] = Field(default_factory=list)


class SkillDraft(CamelModel):
    name: str = ""
    category: str = ""
    evidence_ids: list[str] = Field(default_factory=list)
    confidence: float | None = Field(default=None, ge=0, le=1)


class CoverLetterDraft(CamelModel):
    date: str = ""
    hiring_manager: str = ""
    company_address: str = ""
    paragraphs: list[RewriteDraft] = Field(default_factory=list)
    sendoff: str = ""


class OptimizedDraft(CamelModel):
    metadata: MetadataDraft = Field(default_factory=MetadataDraft)
    experience: list[EntryDraft] = Field(default_factory=list)
    projects: list[EntryDraft] = Field(default_factory=list)
    skills: list[SkillDraft] = Field(default_factory=list)
    cover_letter: CoverLetterDraft = Field(default_factory=CoverLetterDraft)


class TuneDraft(CamelModel):
    """Top-level object the generator returns for a tuning attempt."""

    optimized: OptimizedDraft


def collect_evidence_ids(draft: OptimizedDraft) -> list[str]:
    """Every evidence id cited anywhere in the draft, in order."""
    ids = list(draft.metadata.summary.evidence_ids)
    for entry in [*draft.experience, *draft.projects]:
        for bullet in entry.bullets:
            ids.extend(bullet.evidence_ids)
    for skill in draft.skills:
        ids.extend(skill.evidence_ids)
    for paragraph in draft.cover_letter.paragraphs:
        ids.extend(paragraph.evidence_ids)
    return ids


# =============================================================================
# Application
# =============================================================================


class EvidenceLevel(str, Enum):
    EXPLICIT = "explicit"
    CONSERVATIVE_REPHRASE = "conservative_rephrase"


@dataclass(frozen=True)
class RewriteMeta:
    keywords_covered: list[str]
    confidence: float
    evidence_level: EvidenceLevel


def default_meta(keywords: list[str]) -> RewriteMeta:
    return RewriteMeta(keywords[:6], 0.72, EvidenceLevel.CONSERVATIVE_REPHRASE)


@dataclass
class AppliedDraft:
    resume: ResumeData
    meta_by_path: dict[str, RewriteMeta] = field(default_factory=dict)


_YMD = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%m/%d/%Y", "%Y/%m/%d")


def parse_date_input(value: str) -> date | None:
    raw = sanitize(value)
    if not raw:
        return None
    match = _YMD.match(raw)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(raw).date()
    except ValueError:
        return None


def normalize_cover_letter_date(raw: str, fallback: str = "", today: date | None = None) -> str:
    """``YYYY-MM-DD`` from the draft date, else the fallback, else today; never in the future."""
    today = today or date.today()
    parsed = parse_date_input(raw) or parse_date_input(fallback) or today
    return min(parsed, today).isoformat()


def _skill_key(name: str) -> str:
    return sanitize(name).lower()


def _bullet_meta(rewrite: RewriteDraft, text: str, hints: list[str], confidence: float):
    keywords = rewrite.keywords_covered
    return RewriteMeta(
        keywords_covered=keywords[:6] if keywords is not None else match_keywords(text, hints),
        confidence=rewrite.confidence if rewrite.confidence is not None else confidence,
        evidence_level=EvidenceLevel.EXPLICIT,
    )


def apply_draft(
    base: ResumeData,
    draft: OptimizedDraft,
    valid_ids: set[str],
    allowed_tools: set[str],
    keyword_hints: list[str],
    allow_deletions: bool = False,
    today: date | None = None,
) -> AppliedDraft:
    """Materialize a candidate document from ``draft`` on top of ``base``."""
    nxt = base.model_copy(deep=True)
    meta: dict[str, RewriteMeta] = {}

    def grounded(ids: list[str]) -> bool:
        return has_grounded_evidence(ids, valid_ids)

    subtitle = safe_rewrite(base.metadata.subtitle, draft.metadata.subtitle, allowed_tools)
    if subtitle != base.metadata.subtitle:
        nxt.metadata.subtitle = subtitle
        meta["metadata.subtitle"] = default_meta(match_keywords(subtitle, keyword_hints))

    summary_draft = draft.metadata.summary
    if grounded(summary_draft.evidence_ids) and sanitize(summary_draft.text):
        summary = safe_rewrite(base.metadata.summary, summary_draft.text, allowed_tools)
        nxt.metadata.summary = summary
        meta["metadata.summary"] = _bullet_meta(summary_draft, summary, keyword_hints, 0.76)

    for section, confidence in (("experience", 0.8), ("projects", 0.78)):
        drafts_by_id = {entry.id: entry for entry in getattr(draft, section)}
        for i, entry in enumerate(getattr(nxt, section)):
            optimized = drafts_by_id.get(entry.id)
            if optimized is None:
                continue
            bullets = []
            for j, base_bullet in enumerate(entry.bullets):
                rewrite = optimized.bullets[j] if j < len(optimized.bullets) else None
                if rewrite is None or not grounded(rewrite.evidence_ids) or not sanitize(
                    rewrite.text
                ):
                    bullets.append(base_bullet)
                    continue
                rewritten = safe_rewrite(base_bullet, rewrite.text, allowed_tools)
                if rewritten != base_bullet:
                    meta[f"{section}[{i}].bullets[{j}]"] = _bullet_meta(
                        rewrite, rewritten, keyword_hints, confidence
                    )
                bullets.append(rewritten)
            entry.bullets = bullets

    _apply_skills(base, nxt, draft, grounded, allowed_tools, keyword_hints, allow_deletions, meta)

    letter = draft.cover_letter
    paragraphs = [
        text
        for text in (sanitize(p.text) for p in letter.paragraphs if grounded(p.evidence_ids))
        if text
    ]
    body = nxt.cover_letter.body
    if paragraphs:
        body = safe_rewrite(base.cover_letter.body, "\n\n".join(paragraphs), allowed_tools)

    cover = nxt.cover_letter
    cover.date = normalize_cover_letter_date(letter.date, cover.date, today)
    cover.hiring_manager = sanitize(letter.hiring_manager) or cover.hiring_manager
    cover.company_address = sanitize(letter.company_address) or cover.company_address
    cover.body = body
    cover.sendoff = sanitize(letter.sendoff) or cover.sendoff

    if cover.body != base.cover_letter.body:
        meta["coverLetter.body"] = RewriteMeta(
            match_keywords(cover.body, keyword_hints), 0.78, EvidenceLevel.EXPLICIT
        )
    for attr, path in (
        ("hiring_manager", "coverLetter.hiringManager"),
        ("company_address", "coverLetter.companyAddress"),
        ("sendoff", "coverLetter.sendoff"),
        ("date", "coverLetter.date"),
    ):
        if getattr(cover, attr) != getattr(base.cover_letter, attr):
            meta[path] = default_meta([])

    return AppliedDraft(resume=nxt, meta_by_path=meta)


def _apply_skills(
    base, nxt, draft, grounded, allowed_tools, keyword_hints, allow_deletions, meta
) -> None:
    base_by_name: dict[str, SkillEntry] = {}
    for skill in base.skills:
        key = _skill_key(skill.name)
        if key and key not in base_by_name:
            base_by_name[key] = skill

    draft_skills = [
        (sanitize(s.name), sanitize(s.category), s.confidence if s.confidence is not None else 0.7)
        for s in draft.skills
        if grounded(s.evidence_ids)
    ]
    draft_skills = [
        s for s in draft_skills if s[0] and not find_unknown_tools(f"{s[0]} {s[1]}", allowed_tools)
    ]

    if allow_deletions:
        seen: set[str] = set()
        tuned = []
        for name, category, _ in draft_skills:
            key = _skill_key(name)
            if key in seen:
                continue
            seen.add(key)
            existing = base_by_name.get(key)
            tuned.append(
                SkillEntry(
                    id=existing.id if existing else new_id(),
                    name=name,
                    category=category or (existing.category if existing else ""),
                )
            )
        if tuned:
            nxt.skills = tuned
        return

    appended = [skill.model_copy() for skill in base.skills]
    seen = {_skill_key(skill.name) for skill in base.skills if _skill_key(skill.name)}
    for name, category, confidence in draft_skills:
        key = _skill_key(name)
        existing = base_by_name.get(key)
        if existing is not None:
            if category and category != existing.category:
                index = next(
                    (i for i, item in enumerate(appended) if item.id == existing.id), None
                )
                if index is not None:
                    appended[index].category = category
                    meta[f"skills[{index}]"] = RewriteMeta(
                        match_keywords(f"{name} {category}", keyword_hints),
                        confidence,
                        EvidenceLevel.EXPLICIT,
                    )
            continue
        if key in seen:
            continue
        seen.add(key)
        appended.append(SkillEntry(name=name, category=category))
        meta["skills"] = RewriteMeta(
            match_keywords(f"{name} {category}", keyword_hints),
            confidence,
            EvidenceLevel.EXPLICIT,
        )
    nxt.skills = appended
