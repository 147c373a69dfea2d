"""Tune service - whole-document tuning of a resume and cover letter for one job."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date

from skills import ResumeTunerSkill
from skills.resume_tuner import PageCount, TuneOutcome
from tuning.claims import build_claims
from tuning.diff_builder import build_tune_outputs
from tuning.keywords import extract_keyword_hints
from tuning.layout import estimate_pages
from tuning.models import ResumeData
from tuning.text import sanitize
from tuning.validators import build_tool_allowlist

from .base_service import BaseService
from .exceptions import GenerationFailedError, InvalidRequestError, JobDescriptionError
from .models import (
    EstimateResponse,
    JobDescriptionSource,
    PageEstimation,
    TuneConstraints,
    TuneRaw,
    TuneRequest,
    TuneResponse,
)

logger = logging.getLogger(__name__)

JobTextFetcher = Callable[[str], str]


def estimate_document(resume: ResumeData) -> EstimateResponse:
    """Page estimate for a document. No generation involved."""
    estimate = estimate_pages(resume)
    return EstimateResponse(
        resume_pages=estimate.resume_pages,
        cover_letter_pages=estimate.cover_letter_pages,
        resume_chars_per_line=estimate.resume_chars_per_line,
        cover_chars_per_line=estimate.cover_chars_per_line,
    )


@dataclass
class ResolvedJobText:
    text: str
    source: JobDescriptionSource
    scrape_warning: str | None = None


class TuneService(BaseService):
    """Service for job-targeted whole-document tuning.

    Fetching a job posting is delegated to an optional ``job_text_fetcher``
    callable taking a URL and returning plain text.
    """

    def __init__(self, job_text_fetcher: JobTextFetcher | None = None, **kwargs):
        super().__init__(**kwargs)
        self.job_text_fetcher = job_text_fetcher
        self.tuner = ResumeTunerSkill(self.client, self.config)

    # =========================================================================
    # Job text
    # =========================================================================

    def resolve_job_text(self, job_url: str, job_description: str) -> ResolvedJobText:
        """Combine fetched posting text with pasted notes.

        Raises:
            JobDescriptionError: If the URL could not be fetched and nothing was pasted.
            InvalidRequestError: If neither a URL nor a description was given.
        """
        manual = sanitize(job_description)
        url = sanitize(job_url)
        fetched = ""
        warning = None

        if url:
            try:
                if self.job_text_fetcher is None:
                    raise RuntimeError("No job posting fetcher is configured.")
                fetched = sanitize(self.job_text_fetcher(url))
            except Exception as e:
                if not manual:
                    raise JobDescriptionError(f"Job URL scraping failed: {e}", url=url) from e
                logger.warning("Job URL fetch failed, using pasted text: %s", e)
                warning = f"Job URL scraping failed, so only pasted text was used: {e}"

        if fetched and manual:
            source = JobDescriptionSource.URL_AND_MANUAL
            combined = (
                f"Primary job posting text:\n{fetched}\n\nAdditional user notes:\n{manual}"
            )
        elif fetched:
            source = JobDescriptionSource.URL
            combined = fetched
        else:
            source = JobDescriptionSource.MANUAL
            combined = manual

        text = sanitize(combined)[: self._limit("max_job_description_chars")]
        if not text:
            raise InvalidRequestError(
                "Provide a job URL or pasted job description.", field="jobDescription"
            )
        return ResolvedJobText(text=text, source=source, scrape_warning=warning)

    # =========================================================================
    # Tuning
    # =========================================================================

    def tune(self, request: TuneRequest, today: date | None = None) -> TuneResponse:
        """Tune the document for the job, within the page limits when possible.

        Args:
            request: Job details, limits and the document snapshot.
            today: Reference date for the cover letter; defaults to today.

        Returns:
            TuneResponse. When no attempt fit the limits, the best attempt is
            returned with ``fitError`` and ``bestEffortResume`` set.

        Raises:
            InvalidRequestError: If the document has no source claims.
            JobDescriptionError: If the job text could not be resolved.
            GenerationFailedError: If no attempt produced a usable draft.
        """
        job = self.resolve_job_text(request.job_url, request.job_description)
        resume = request.resume_data

        claims = build_claims(resume)
        if not claims:
            raise InvalidRequestError("Resume has no source claims to optimize.")

        keyword_hints = extract_keyword_hints(job.text)
        allowed_tools = build_tool_allowlist(resume, request.allowed_additions)
        max_cover_pages = self._limit("cover_letter_max_pages")

        logger.info(
            "Tuning for %s (%s): %d claims, %d keyword hints",
            request.job_title or "untitled role",
            job.source.value,
            len(claims),
            len(keyword_hints),
        )
        result = self.tuner.execute(
            self._context(),
            resume=resume,
            job_description=job.text,
            claims=claims,
            keyword_hints=keyword_hints,
            allowed_tools=allowed_tools,
            max_resume_pages=request.max_resume_pages,
            allow_deletions=request.allow_deletions,
            allowed_additions=request.allowed_additions,
            company_name=sanitize(request.company_name),
            job_title=sanitize(request.job_title),
            job_source=job.source.value,
            today=today,
        )
        if not result.success:
            attempts = result.metadata.get("attempts", [])
            logger.error("Tuning produced no usable draft after %d attempts", len(attempts))
            error = GenerationFailedError(
                "Resume tuning",
                result.error,
                transient=bool(result.metadata.get("transient")),
            )
            error.details["attempts"] = len(attempts)
            raise error

        outcome: TuneOutcome = result.data
        logger.info(
            "Selected attempt %d (within limit: %s); cumulative token usage: %s",
            outcome.selected_attempt,
            outcome.within_limit,
            self.client.get_token_usage(),
        )
        candidate = outcome.candidate
        tuned = candidate.applied.resume
        outputs = build_tune_outputs(
            resume,
            tuned,
            candidate.applied.meta_by_path,
            keyword_hints,
            request.allow_deletions,
        )
        selected = PageCount(
            resume_pages=candidate.estimate.resume_pages,
            cover_letter_pages=candidate.estimate.cover_letter_pages,
        )
        return TuneResponse(
            optimized_resume=tuned,
            best_effort_resume=None if outcome.within_limit else tuned,
            json_patch=outputs.json_patch,
            diffs=outputs.diffs,
            constraints=TuneConstraints(allow_deletions=request.allow_deletions),
            fit_error=outcome.fit_error,
            job_description=job.text,
            job_description_source=job.source,
            scrape_warning=job.scrape_warning,
            estimation=PageEstimation(
                resume_pages=selected.resume_pages,
                cover_letter_pages=selected.cover_letter_pages,
                max_resume_pages=request.max_resume_pages,
                max_cover_letter_pages=max_cover_pages,
                within_limit=outcome.within_limit,
            ),
            raw=TuneRaw(
                attempts=outcome.attempts,
                selected_attempt=outcome.selected_attempt,
                selected_estimation=selected,
                fit_error=outcome.fit_error,
            ),
        )
