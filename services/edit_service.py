"""Edit service - resolves weighted requirements one by one with inline edits.

Requirements are processed strictly in order. The resolution budget and the
set of eligible candidates are shared across requirements, so the earliest
requirement gets first pick of each field.
"""

import logging
from collections.abc import Callable

from claude_client import is_transient_error
from skills import RequirementEditorSkill
from tuning.candidates import (
    CandidateElement,
    ResolutionBudget,
    build_candidates,
    eligible_candidates,
)
from tuning.decisions import (
    TEMPORARY_DECISION_REASON,
    Already,
    DecisionOutcome,
    Edit,
    Unresolved,
)
from tuning.matching import find_explicit_mention, is_locked_requirement
from tuning.models import Mention, Requirement, ResumeData
from tuning.paths import set_value_at_path
from tuning.text import normalize_comparable
from tuning.validators import build_tool_allowlist

from .base_service import BaseService
from .exceptions import GenerationFailedError, InvalidRequestError
from .models import (
    EditOperation,
    EditRequest,
    EditResponse,
    ProgressEvent,
    ReportEntry,
    ResolutionStatus,
)

logger = logging.getLogger(__name__)

TEMPORARY_AI_SERVICE_ERROR = "AI provider is temporarily unavailable. Please try AI Edit again."
GENERIC_EDIT_ERROR = "Failed to generate AI edits."
NO_ELIGIBLE_REASON = "No eligible elements available for this requirement."
EXPLICIT_EVIDENCE_REASON = "Explicit resume evidence found."
NO_FEASIBLE_EDIT_REASON = "No feasible inline edit found."

ProgressSink = Callable[[ProgressEvent], None]


def client_facing_error(error: BaseException) -> str:
    """Message safe to show a user for a failure that aborted an edit run."""
    return TEMPORARY_AI_SERVICE_ERROR if is_transient_error(error) else GENERIC_EDIT_ERROR


def apply_operations(resume: ResumeData, operations: list[EditOperation]) -> ResumeData:
    """Return a copy of ``resume`` with every replace operation applied in order."""
    for operation in operations:
        resume = set_value_at_path(resume, operation.path, operation.value)
    return resume


class _EditRun:
    """Mutable state of one edit run: operations, report and progress counter."""

    def __init__(self, total: int, on_progress: ProgressSink | None):
        self.total = total
        self.on_progress = on_progress
        self.operations: list[EditOperation] = []
        self.report: list[ReportEntry] = []
        self.transient_failures = 0

    def record(self, entry: ReportEntry) -> None:
        self.report.append(entry)
        if self.on_progress:
            self.on_progress(
                ProgressEvent(
                    completed=len(self.report),
                    total=self.total,
                    requirement_id=entry.requirement_id,
                    canonical=entry.canonical,
                    status=entry.status,
                )
            )

    def response(self) -> EditResponse:
        error = None
        if not self.operations and self.transient_failures > 0:
            error = TEMPORARY_AI_SERVICE_ERROR
        return EditResponse(operations=self.operations, report=self.report, error=error)


class EditService(BaseService):
    """Service for requirement-driven inline edits."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.editor = RequirementEditorSkill(self.client, self.config)

    def run_edit(
        self, request: EditRequest, on_progress: ProgressSink | None = None
    ) -> EditResponse:
        """Resolve each requirement against the document.

        Args:
            request: Requirements, document snapshot and measured field profiles.
            on_progress: Called after each requirement finishes, in order.

        Returns:
            EditResponse with operations, one report entry per requirement and
            ``error`` set only when nothing was edited and at least one
            requirement failed for a temporary reason.

        Raises:
            InvalidRequestError: If there are more requirements than allowed.
            GenerationFailedError: If generation fails permanently.
        """
        max_requirements = self._limit("max_requirements")
        if len(request.requirements) > max_requirements:
            raise InvalidRequestError(
                f"At most {max_requirements} requirements are allowed per request.",
                field="requirements",
            )

        resume = request.resume_data
        candidates = build_candidates(resume, request.element_profiles)
        budget = ResolutionBudget(self._limit("max_resolutions_per_element"))
        allowed_tools = build_tool_allowlist(resume, request.allowed_additions)
        run = _EditRun(len(request.requirements), on_progress)

        logger.info(
            "Edit run: %d requirements, %d candidates",
            len(request.requirements),
            len(candidates),
        )
        for requirement in request.requirements:
            self._resolve(requirement, candidates, budget, allowed_tools, run)

        logger.info(
            "Edit run finished: %d operations, %d transient failures",
            len(run.operations),
            run.transient_failures,
        )
        logger.debug("Cumulative token usage: %s", self.client.get_token_usage())
        return run.response()

    def _resolve(
        self,
        requirement: Requirement,
        candidates: list[CandidateElement],
        budget: ResolutionBudget,
        allowed_tools: set[str],
        run: _EditRun,
    ) -> None:
        locked = is_locked_requirement(requirement)
        fallback_status = (
            ResolutionStatus.LOCKED_NO_EDIT if locked else ResolutionStatus.UNRESOLVED
        )
        matched_status = (
            ResolutionStatus.LOCKED_NO_EDIT if locked else ResolutionStatus.ALREADY_MENTIONED
        )

        def entry(status, mentioned, reason, matched_path=None, edited_path=None):
            return ReportEntry(
                requirement_id=requirement.id,
                canonical=requirement.canonical,
                status=status,
                mentioned=mentioned,
                matched_path=matched_path,
                edited_path=edited_path,
                reason=reason,
            )

        available = eligible_candidates(candidates, requirement, budget)
        if not available:
            run.record(entry(fallback_status, Mention.NONE, NO_ELIGIBLE_REASON))
            return

        explicit_path = find_explicit_mention(requirement, available)
        if explicit_path:
            budget.record(explicit_path)
            run.record(
                entry(matched_status, Mention.YES, EXPLICIT_EVIDENCE_REASON, explicit_path)
            )
            return

        result = self.editor.execute(
            self._context(),
            requirement=requirement,
            candidates=available,
            locked=locked,
            allowed_tools=allowed_tools,
        )
        if not result.success:
            if not result.metadata.get("transient"):
                raise GenerationFailedError("AI edit", result.error)
            outcome: DecisionOutcome = Unresolved(reason=TEMPORARY_DECISION_REASON)
        else:
            outcome = result.data

        if isinstance(outcome, Unresolved) and outcome.is_temporary:
            run.transient_failures += 1

        if isinstance(outcome, Already):
            budget.record(outcome.path)
            run.record(entry(matched_status, Mention.YES, outcome.reason, outcome.path))
            return

        reason = outcome.reason or NO_FEASIBLE_EDIT_REASON
        if isinstance(outcome, Edit) and not locked:
            candidate = next((c for c in available if c.path == outcome.path), None)
            if candidate is not None and normalize_comparable(
                candidate.text
            ) != normalize_comparable(outcome.replacement):
                run.operations.append(
                    EditOperation(
                        path=outcome.path,
                        value=outcome.replacement,
                        item_type=candidate.item_type,
                        requirement_id=requirement.id,
                        mentioned=outcome.mentioned,
                    )
                )
                budget.record(outcome.path)
                # later requirements build on the edited text, not the original
                candidates[candidates.index(candidate)] = candidate.with_text(outcome.replacement)
                run.record(
                    entry(
                        ResolutionStatus.EDITED,
                        outcome.mentioned,
                        outcome.reason,
                        edited_path=outcome.path,
                    )
                )
                return
            reason = NO_FEASIBLE_EDIT_REASON

        run.record(
            entry(
                fallback_status,
                Mention.NONE if locked else outcome.mentioned,
                reason,
                matched_path=outcome.path if isinstance(outcome, Unresolved) else None,
            )
        )

    @staticmethod
    def apply_operations(resume: ResumeData, operations: list[EditOperation]) -> ResumeData:
        return apply_operations(resume, operations)
