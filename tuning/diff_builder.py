"""Structural patch and reviewable diff between an original and a tuned document."""

from typing import Any, Literal

from pydantic import Field

from .draft import EvidenceLevel, RewriteMeta, default_meta
from .keywords import match_keywords
from .layout import estimate_pages, estimate_wrapped_lines
from .models import CamelModel, ResumeData
from .paths import to_patch_path
from .text import sanitize


class TuneDiff(CamelModel):
    op: Literal["replace", "insert", "delete"]
    path: str
    patch_path: str
    before: str | None = None
    after: str | None = None
    keywords_covered: list[str] = Field(default_factory=list)
    line_delta: int = 0
    confidence: float = 0.72
    evidence_level: EvidenceLevel = EvidenceLevel.CONSERVATIVE_REPHRASE
    manual_approval_required: bool = False


class TuneOutputs(CamelModel):
    json_patch: list[dict[str, Any]] = Field(default_factory=list)
    diffs: list[TuneDiff] = Field(default_factory=list)


def _lines(text: str, chars_per_line: int) -> int:
    return estimate_wrapped_lines(sanitize(text), chars_per_line)


def _skill_index(skills) -> dict[str, int]:
    index: dict[str, int] = {}
    for i, skill in enumerate(skills):
        key = sanitize(skill.name).lower()
        if key and key not in index:
            index[key] = i
    return index


def build_tune_outputs(
    base: ResumeData,
    tuned: ResumeData,
    meta_by_path: dict[str, RewriteMeta],
    keyword_hints: list[str],
    allow_deletions: bool = False,
) -> TuneOutputs:
    """Walk the editable fields and emit a patch entry and diff for each change.

    Line deltas use the base document's body width, narrowed for bullet and
    letter indentation. Skill removals appear only when deletions are allowed
    and always require manual approval.
    """
    metrics = estimate_pages(base)
    resume_cpl = max(20, metrics.resume_chars_per_line - 3)
    cover_cpl = max(20, metrics.cover_chars_per_line - 2)
    outputs = TuneOutputs()

    def line_delta(path: str, before: str, after: str) -> int:
        cpl = cover_cpl if path.startswith("coverLetter") else resume_cpl
        return _lines(after, cpl) - _lines(before, cpl)

    def push_replace(path: str, before: str, after: str) -> None:
        if sanitize(before) == sanitize(after):
            return
        meta = meta_by_path.get(path) or default_meta(
            match_keywords(after or before, keyword_hints)
        )
        patch_path = to_patch_path(path)
        outputs.json_patch.append({"op": "replace", "path": patch_path, "value": after})
        outputs.diffs.append(
            TuneDiff(
                op="replace",
                path=path,
                patch_path=patch_path,
                before=before,
                after=after,
                keywords_covered=meta.keywords_covered,
                line_delta=line_delta(path, before, after),
                confidence=meta.confidence,
                evidence_level=meta.evidence_level,
            )
        )

    push_replace("metadata.subtitle", base.metadata.subtitle, tuned.metadata.subtitle)
    push_replace("metadata.summary", base.metadata.summary, tuned.metadata.summary)

    for section in ("experience", "projects"):
        tuned_by_id = {entry.id: entry for entry in getattr(tuned, section)}
        for i, entry in enumerate(getattr(base, section)):
            match = tuned_by_id.get(entry.id)
            if match is None:
                continue
            for j, before in enumerate(entry.bullets):
                after = match.bullets[j] if j < len(match.bullets) else before
                push_replace(f"{section}[{i}].bullets[{j}]", before, after)

    for attr, path in (
        ("body", "coverLetter.body"),
        ("hiring_manager", "coverLetter.hiringManager"),
        ("company_address", "coverLetter.companyAddress"),
        ("sendoff", "coverLetter.sendoff"),
        ("date", "coverLetter.date"),
    ):
        push_replace(path, getattr(base.cover_letter, attr), getattr(tuned.cover_letter, attr))

    base_index = _skill_index(base.skills)
    tuned_index = _skill_index(tuned.skills)

    if allow_deletions:
        # Highest index first.
        for i in range(len(base.skills) - 1, -1, -1):
            key = sanitize(base.skills[i].name).lower()
            if not key or key in tuned_index:
                continue
            outputs.json_patch.append({"op": "remove", "path": f"/skills/{i}"})
            outputs.diffs.append(
                TuneDiff(
                    op="delete",
                    path=f"skills[{i}]",
                    patch_path=f"/skills/{i}",
                    before=base.skills[i].name,
                    line_delta=-1,
                    confidence=0.65,
                    manual_approval_required=True,
                )
            )

    for skill in tuned.skills:
        key = sanitize(skill.name).lower()
        if not key:
            continue
        index = base_index.get(key)
        if index is None:
            meta = meta_by_path.get("skills") or default_meta(
                match_keywords(skill.name, keyword_hints)
            )
            outputs.json_patch.append(
                {"op": "add", "path": "/skills/-", "value": skill.model_dump(by_alias=True)}
            )
            outputs.diffs.append(
                TuneDiff(
                    op="insert",
                    path="skills",
                    patch_path="/skills/-",
                    after=f"{skill.name} ({skill.category})" if skill.category else skill.name,
                    keywords_covered=meta.keywords_covered,
                    line_delta=1,
                    confidence=meta.confidence,
                    evidence_level=meta.evidence_level,
                )
            )
            continue

        before = base.skills[index]
        if sanitize(before.category) != sanitize(skill.category):
            patch_path = f"/skills/{index}/category"
            meta = meta_by_path.get(f"skills[{index}]") or default_meta(
                match_keywords(f"{skill.name} {skill.category}", keyword_hints)
            )
            outputs.json_patch.append({"op": "replace", "path": patch_path, "value": skill.category})
            outputs.diffs.append(
                TuneDiff(
                    op="replace",
                    path=f"skills[{index}].category",
                    patch_path=patch_path,
                    before=before.category,
                    after=skill.category,
                    keywords_covered=meta.keywords_covered,
                    confidence=meta.confidence,
                    evidence_level=meta.evidence_level,
                )
            )

    return outputs
