"""Rewrite service - requirement extraction and instruction-driven selection rewrites."""

import logging

from skills import RequirementExtractorSkill, SelectionRewriterSkill
from tuning.models import Requirement
from tuning.text import sanitize

from .base_service import BaseService
from .exceptions import InvalidRequestError, RewriteConstraintError
from .models import SelectionRewriteRequest, SelectionRewriteResponse

logger = logging.getLogger(__name__)


class RewriteService(BaseService):
    """Service for the smaller generation-backed operations."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.extractor = RequirementExtractorSkill(self.client, self.config)
        self.rewriter = SelectionRewriterSkill(self.client, self.config)

    def extract_requirements(self, job_description: str) -> list[Requirement]:
        """Extract weighted requirements from a job description.

        Raises:
            InvalidRequestError: If the description is empty.
            GenerationFailedError: If extraction fails.
        """
        text = sanitize(job_description)[: self._limit("max_extract_chars")]
        if not text:
            raise InvalidRequestError("Provide a job description first.", field="jobDescription")

        result = self.extractor.execute(self._context(), job_description=text)
        self._raise_for(result, "Requirement extraction")
        return result.data

    def rewrite_selection(self, request: SelectionRewriteRequest) -> SelectionRewriteResponse:
        """Apply a free-text instruction to the selected fields.

        Raises:
            RewriteConstraintError: If every attempt overflowed a length limit.
            GenerationFailedError: If the generator never returned valid operations.
        """
        result = self.rewriter.execute(
            self._context(),
            instruction=request.instruction,
            fields=request.fields,
            scope=request.scope,
        )
        if not result.success and result.metadata.get("violations"):
            logger.warning("Selection rewrite exhausted attempts on length limits")
            raise RewriteConstraintError(result.metadata["violations"])
        self._raise_for(result, "Selection rewrite")

        logger.info("Selection rewrite produced %d operations", len(result.data))
        return SelectionRewriteResponse(operations=result.data)
