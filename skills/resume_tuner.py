"""Resume Tuner Skill - rewrites a whole resume and cover letter for one job, within page limits."""

import json
import logging
from dataclasses import dataclass, field
from datetime import date

from pydantic import Field

from claude_client import is_transient_error
from tuning.claims import Claim, claim_ids, claims_for_prompt
from tuning.draft import (
    AppliedDraft,
    OptimizedDraft,
    TuneDraft,
    apply_draft,
    collect_evidence_ids,
)
from tuning.layout import PageEstimate, estimate_pages
from tuning.models import CamelModel, ResumeData
from tuning.repair_loop import BoundedRepairLoop, RepairAttempt, RepairState, Verdict
from tuning.validators import find_invalid_evidence_ids

from .base_skill import BaseSkill, SkillContext, SkillResult

logger = logging.getLogger(__name__)

FIT_ERROR = "Could not fit content within page limits. Showing best-effort tune for manual review."
NO_DRAFT_ERROR = "Could not generate a tuned draft."

RESUME_TUNE_PROMPT = """You are a senior resume editor tuning an existing resume and cover letter for ONE specific job.

Your goal is to improve alignment with the job description while staying strictly truthful to the candidate's source claims and fitting the page limits.

CONSTRAINTS & RULES
- Every rewritten summary, bullet, skill and cover letter paragraph MUST cite at least one evidence id from the provided claims list. Never cite ids that are not in the list.
- Do NOT invent experience, employers, titles, dates, metrics, tools or credentials.
- Keep every number from the source text verbatim.
- Only name tools or technologies that already appear in the resume or in allowedAdditions.
- Rewrite existing experience and project bullets in place. Keep bullet counts and entry ids unchanged.
- Do not drop skills unless allowDeletions is true.
- Prefer compression over expansion when the page estimate is at or above the limit.
- The cover letter is at most one page: 3 to 4 short paragraphs grounded in the claims.

OUTPUT
Return an object with an "optimized" key containing metadata (subtitle, summary), experience and projects (id plus rewritten bullets), skills, and coverLetter (date, hiringManager, companyAddress, paragraphs, sendoff). Each rewrite carries text, evidenceIds, keywordsCovered and a confidence between 0 and 1."""


class PageCount(CamelModel):
    resume_pages: int
    cover_letter_pages: int


class AttemptRecord(CamelModel):
    """Diagnostics for one tuning attempt."""

    attempt: int
    invalid_evidence_ids: list[str] = Field(default_factory=list)
    estimation: PageCount | None = None
    within_limit: bool | None = None
    draft: OptimizedDraft | None = None
    error: str | None = None


@dataclass
class TuneCandidate:
    applied: AppliedDraft
    estimate: PageEstimate
    draft: OptimizedDraft


@dataclass
class TuneOutcome:
    """Selected tuning result: accepted within limits, or best effort."""

    candidate: TuneCandidate
    within_limit: bool
    selected_attempt: int
    attempts: list[AttemptRecord] = field(default_factory=list)
    fit_error: str | None = None


class ResumeTunerSkill(BaseSkill):
    """Skill that runs the whole-document generate-validate-repair loop."""

    purpose = "tune"

    def execute(
        self,
        context: SkillContext,
        resume: ResumeData,
        job_description: str,
        claims: list[Claim],
        keyword_hints: list[str],
        allowed_tools: set[str],
        max_resume_pages: int = 1,
        allow_deletions: bool = False,
        allowed_additions: list[str] | None = None,
        company_name: str = "",
        job_title: str = "",
        job_source: str = "manual",
        today: date | None = None,
    ) -> SkillResult:
        """Tune ``resume`` for a job.

        Args:
            context: Execution context with config.
            resume: Original document snapshot.
            job_description: Resolved job text.
            claims: Claim catalogue the draft may cite.
            keyword_hints: Frequent job description terms.
            allowed_tools: Vocabulary allow-list for rewritten text.
            max_resume_pages: Resume page limit.
            allow_deletions: Whether skills may be dropped.
            allowed_additions: Extra terms the user explicitly permits.
            company_name: Target company, for the prompt.
            job_title: Target title, for the prompt.
            job_source: "url", "manual" or "url+manual".
            today: Reference date for the cover letter.

        Returns:
            SkillResult with a TuneOutcome, or a failure carrying the attempt
            records when no attempt produced a usable draft.
        """
        max_cover_pages = self.limit("cover_letter_max_pages")
        valid_ids = claim_ids(claims)
        records: list[AttemptRecord] = []
        base_prompt = self._build_prompt(
            resume,
            job_description,
            claims,
            keyword_hints,
            max_resume_pages,
            max_cover_pages,
            allow_deletions,
            allowed_additions or [],
            company_name,
            job_title,
            job_source,
        )

        def generate(attempt: RepairAttempt) -> OptimizedDraft:
            parts = [base_prompt]
            if attempt.previous is not None:
                previous = attempt.previous.model_dump(by_alias=True, mode="json")
                parts.append(f"Previous draft:\n{json.dumps(previous, indent=2)}")
            if attempt.feedback:
                parts.append(attempt.feedback)
            try:
                result = self.client.generate(
                    system=RESUME_TUNE_PROMPT,
                    prompt="\n\n".join(parts),
                    schema=TuneDraft,
                    model=self.model,
                )
            except Exception as e:
                records.append(AttemptRecord(attempt=attempt.number, error=str(e)))
                raise
            return result.optimized

        def validate(draft: OptimizedDraft, number: int) -> Verdict:
            invalid = find_invalid_evidence_ids(collect_evidence_ids(draft), valid_ids)
            if invalid:
                records.append(
                    AttemptRecord(attempt=number, invalid_evidence_ids=invalid, draft=draft)
                )
                return Verdict.repair(
                    f"Unsupported evidence IDs were used: {', '.join(invalid)}. "
                    "Use only provided claim IDs.",
                    previous=draft,
                )

            applied = apply_draft(
                resume,
                draft,
                valid_ids,
                allowed_tools,
                keyword_hints,
                allow_deletions=allow_deletions,
                today=today,
            )
            estimate = estimate_pages(applied.resume)
            within = (
                estimate.resume_pages <= max_resume_pages
                and estimate.cover_letter_pages <= max_cover_pages
            )
            records.append(
                AttemptRecord(
                    attempt=number,
                    estimation=PageCount(
                        resume_pages=estimate.resume_pages,
                        cover_letter_pages=estimate.cover_letter_pages,
                    ),
                    within_limit=within,
                    draft=draft,
                )
            )
            candidate = TuneCandidate(applied=applied, estimate=estimate, draft=draft)
            if within:
                return Verdict.accept(candidate)
            return Verdict.repair(
                f"Page limits exceeded. Resume pages: {estimate.resume_pages}/{max_resume_pages}. "
                f"Cover letter pages: {estimate.cover_letter_pages}/{max_cover_pages}. "
                "Compress wording, keep bullet counts unchanged, "
                "and avoid deleting unless allowDeletions=true.",
                previous=draft,
                fallback=candidate,
                score=estimate.combined_pages,
            )

        loop = BoundedRepairLoop(
            generate=generate,
            validate=validate,
            max_attempts=self.limit("max_tune_attempts"),
            is_transient=is_transient_error,
            name="resume tune",
        )

        try:
            result = loop.run()
        except Exception as e:
            logger.error("Resume tuning aborted: %s", e)
            outcome = SkillResult.from_exception("Resume tuning failed", e)
            outcome.metadata["attempts"] = records
            return outcome

        if result.state == RepairState.FAILED:
            return SkillResult.fail(
                NO_DRAFT_ERROR, transient=result.transient_failure, attempts=records
            )

        within = result.state == RepairState.ACCEPTED
        if not within:
            logger.warning(
                "No attempt fit %d resume page(s); using attempt %d as best effort",
                max_resume_pages,
                result.selected_attempt,
            )
        return SkillResult.ok(
            TuneOutcome(
                candidate=result.value,
                within_limit=within,
                selected_attempt=result.selected_attempt,
                attempts=records,
                fit_error=None if within else FIT_ERROR,
            )
        )

    @staticmethod
    def _build_prompt(
        resume: ResumeData,
        job_description: str,
        claims: list[Claim],
        keyword_hints: list[str],
        max_resume_pages: int,
        max_cover_pages: int,
        allow_deletions: bool,
        allowed_additions: list[str],
        company_name: str,
        job_title: str,
        job_source: str,
    ) -> str:
        current = estimate_pages(resume)
        data = resume.model_dump(by_alias=True, mode="json")
        visible = [name for name, shown in data["sectionVisibility"].items() if shown]
        controls = {
            "allowDeletions": allow_deletions,
            "maxResumePages": max_resume_pages,
            "maxCoverLetterPages": max_cover_pages,
            "inPlaceBulletRule": (
                "Rewrite existing experience/project bullets in place. "
                "Keep bullet counts unchanged."
            ),
            "allowedAdditions": allowed_additions,
        }
        style = {
            "paperSize": data["pageSettings"]["paperSize"],
            "resumeMargins": data["pageSettings"]["resumeMargins"],
            "coverLetterMargins": data["pageSettings"]["coverLetterMargins"],
            "resumeFont": data["layoutPreferences"]["fontPreferences"],
            "coverLetterFont": data["layoutPreferences"]["coverLetterFontPreferences"],
            "sectionVisibility": data["sectionVisibility"],
            "visibleSectionsForPageFit": visible,
            "currentEstimatedPagesUsingVisibleSections": {
                "resumePages": current.resume_pages,
                "coverLetterPages": current.cover_letter_pages,
            },
        }
        snapshot = {
            "metadata": data["metadata"],
            "experience": [
                {
                    "id": e["id"],
                    "company": e["company"],
                    "jobTitle": e["jobTitle"],
                    "bullets": e["bullets"],
                }
                for e in data["experience"]
            ],
            "projects": [
                {
                    "id": p["id"],
                    "name": p["name"],
                    "technologies": p["technologies"],
                    "bullets": p["bullets"],
                }
                for p in data["projects"]
            ],
            "skills": data["skills"],
            "coverLetter": data["coverLetter"],
        }
        return f"""Company: {company_name}
Job Title: {job_title}
Job Source: {job_source}

Job Description:
{job_description}

Controls:
{json.dumps(controls, indent=2)}

Style:
{json.dumps(style, indent=2)}

Keyword hints extracted from JD:
{json.dumps(keyword_hints[:24], indent=2)}

Claims (allowed facts only):
{json.dumps(claims_for_prompt(claims), indent=2)}

Current Resume:
{json.dumps(snapshot, indent=2)}"""
