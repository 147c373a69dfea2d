"""Requirement Extractor Skill - turns a job description into weighted, typed requirements."""

import logging
import re

from pydantic import Field

from tuning.models import CamelModel, Requirement, RequirementType
from tuning.text import sanitize

from .base_skill import BaseSkill, SkillContext, SkillResult

logger = logging.getLogger(__name__)

MAX_EXTRACTED_REQUIREMENTS = 40

REQUIREMENT_EXTRACTION_PROMPT = """You are a technical recruiter who reads job descriptions the way an ATS does.

Extract the distinct requirements a candidate would be screened against.

RULES
- One requirement per item, phrased as a short noun phrase (e.g., "Python", "Stakeholder management", "5+ years of data engineering experience").
- At most 40 items. Merge duplicates and near-duplicates.
- weight is an integer from 1 to 100: how strongly the posting emphasizes the requirement. Must-haves score above nice-to-haves.
- type is EXACTLY one of: tool | platform | method | responsibility | domain | governance | leadership | commercial | education | constraint
- mustHave is true only when the posting marks it as required.
- aliases lists common alternative spellings or abbreviations (may be empty).
- jdEvidence quotes the shortest phrases from the posting that support the item.
- Do NOT invent requirements that the posting does not state."""


class ExtractedItem(CamelModel):
    requirement: str = Field(min_length=1, max_length=160)
    weight: float = 50
    type: RequirementType = RequirementType.RESPONSIBILITY
    must_have: bool = False
    aliases: list[str] = Field(default_factory=list)
    jd_evidence: list[str] = Field(default_factory=list)


class ExtractionDraft(CamelModel):
    requirements: list[ExtractedItem] = Field(
        default_factory=list, max_length=MAX_EXTRACTED_REQUIREMENTS
    )


def normalize_requirement_text(value: str) -> str:
    return re.sub(r"\s+", " ", sanitize(value))


def rank_requirements(items: list[ExtractedItem]) -> list[Requirement]:
    """De-duplicate case-insensitively (highest weight wins), sort, and number.

    Weights are rounded and clamped to 1..100; ordering is weight descending
    then text. Ids are ``req-1`` onward in that order.
    """
    deduped: dict[str, tuple[str, int, ExtractedItem]] = {}
    for item in items:
        text = normalize_requirement_text(item.requirement)
        if not text:
            continue
        weight = max(1, min(100, round(item.weight)))
        key = text.lower()
        existing = deduped.get(key)
        if existing is None or weight > existing[1]:
            deduped[key] = (text, weight, item)

    ranked = sorted(deduped.values(), key=lambda entry: (-entry[1], entry[0]))
    return [
        Requirement(
            id=f"req-{index}",
            canonical=text,
            type=item.type,
            weight=weight,
            must_have=item.must_have,
            aliases=[a for a in (normalize_requirement_text(a) for a in item.aliases) if a],
            jd_evidence=[e for e in (sanitize(e) for e in item.jd_evidence) if e],
        )
        for index, (text, weight, item) in enumerate(ranked, start=1)
    ]


class RequirementExtractorSkill(BaseSkill):
    """Skill that extracts weighted requirements from a job description."""

    purpose = "extract"

    def execute(self, context: SkillContext, job_description: str) -> SkillResult:
        """Extract requirements from already-cleaned job description text.

        Returns:
            SkillResult with a ranked list of Requirement.
        """
        try:
            draft = self.client.generate(
                system=REQUIREMENT_EXTRACTION_PROMPT,
                prompt=f"Job description:\n{job_description}",
                schema=ExtractionDraft,
                model=self.model,
                max_tokens=4096,
            )
        except Exception as e:
            return SkillResult.from_exception("Failed to extract requirements", e)

        requirements = rank_requirements(draft.requirements)
        logger.info("Extracted %d requirements", len(requirements))
        return SkillResult.ok(requirements)
