"""Per-requirement decision outcomes and the ordered policy pipeline that judges them.

A generated decision draft passes through ``DECISION_POLICIES`` in order. Each
policy either settles the draft (accept an outcome, or ask for a repair with
feedback) or returns None to defer to the next one. New policies slot into the
list without touching the repair loop.
"""

from collections.abc import Callable
from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from .candidates import CandidateElement
from .models import Mention, Requirement
from .repair_loop import Verdict
from .text import sanitize
from .validators import (
    check_length_fit,
    find_unknown_tools,
    missing_numeric_tokens,
)

TEMPORARY_DECISION_REASON = "Temporary AI service issue prevented evaluating this requirement."
EXHAUSTED_DECISION_REASON = "Failed to generate a valid constrained decision."


class DecisionDraft(BaseModel):
    """Structured decision returned by the generator for one requirement."""

    path: str | None = Field(
        default=None, description="Candidate path that resolves the requirement, or null."
    )
    mentioned: Mention = Field(
        default=Mention.NONE,
        description="Whether the requirement is already stated: yes, implied or none.",
    )
    feasible_edit: bool = Field(
        default=False, description="True when a truthful inline edit can satisfy the requirement."
    )
    edited: bool = Field(default=False, description="True when suggested_edit holds a rewrite.")
    suggested_edit: str = Field(
        default="", description="Full replacement text for the chosen path, or empty."
    )
    reason: str = Field(default="", description="One short sentence explaining the decision.")


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class Already:
    path: str
    reason: str
    mentioned: Mention = Mention.YES
    kind: str = field(default="already", init=False)


@dataclass(frozen=True)
class Edit:
    path: str
    mentioned: Mention
    replacement: str
    reason: str
    kind: str = field(default="edit", init=False)


@dataclass(frozen=True)
class Unresolved:
    reason: str
    mentioned: Mention = Mention.NONE
    path: str | None = None
    kind: str = field(default="unresolved", init=False)

    @property
    def is_temporary(self) -> bool:
        return self.reason == TEMPORARY_DECISION_REASON


DecisionOutcome = Already | Edit | Unresolved


# =============================================================================
# Policy pipeline
# =============================================================================


@dataclass
class DecisionContext:
    """Everything the policies need to judge a draft for one requirement."""

    requirement: Requirement
    candidates: list[CandidateElement]
    locked: bool
    allowed_tools: set[str] = field(default_factory=set)

    def __post_init__(self):
        self.candidates_by_path = {c.path: c for c in self.candidates}

    def candidate_for(self, draft: DecisionDraft) -> CandidateElement | None:
        return self.candidates_by_path.get(draft.path) if draft.path else None


Policy = Callable[[DecisionDraft, DecisionContext], Verdict | None]


def check_path_exists(draft: DecisionDraft, ctx: DecisionContext) -> Verdict | None:
    if draft.path and ctx.candidate_for(draft) is None:
        return Verdict.repair(
            "Selected path is not valid. Choose a path from the provided candidates only."
        )
    return None


def check_locked(draft: DecisionDraft, ctx: DecisionContext) -> Verdict | None:
    """Locked requirements may only be detected, never edited."""
    if not ctx.locked:
        return None
    candidate = ctx.candidate_for(draft)
    if draft.mentioned == Mention.YES:
        if candidate is None:
            return Verdict.repair("If mentioned is yes, provide the matching candidate path.")
        return Verdict.accept(
            Already(path=candidate.path, reason=draft.reason or "Requirement already explicit.")
        )
    return Verdict.accept(
        Unresolved(reason=draft.reason or "Locked requirement cannot be edited.")
    )


def check_already_mentioned(draft: DecisionDraft, ctx: DecisionContext) -> Verdict | None:
    if draft.mentioned != Mention.YES:
        return None
    candidate = ctx.candidate_for(draft)
    if candidate is None:
        return Verdict.repair(
            "If mentioned is yes, path must point to the matching candidate element."
        )
    return Verdict.accept(
        Already(path=candidate.path, reason=draft.reason or "Requirement already explicit.")
    )


def check_edit_shape(draft: DecisionDraft, ctx: DecisionContext) -> Verdict | None:
    if not (draft.edited or draft.feasible_edit):
        return None
    if ctx.candidate_for(draft) is None:
        return Verdict.repair(
            "For an edit, path is required and must target one provided candidate."
        )
    if not draft.suggested_edit:
        return Verdict.repair("For an edit, suggested_edit must be a non-empty string.")
    return None


def check_edit_vocabulary(draft: DecisionDraft, ctx: DecisionContext) -> Verdict | None:
    if not (draft.edited or draft.feasible_edit):
        return None
    candidate = ctx.candidate_for(draft)
    unknown = find_unknown_tools(draft.suggested_edit, ctx.allowed_tools)
    if unknown:
        return Verdict.repair(
            f"Suggested edit for {candidate.path} introduces tools not present in the "
            f"resume: {', '.join(unknown)}. "
            "Use only tools the resume already names.",
            previous=draft.suggested_edit,
        )
    missing = missing_numeric_tokens(candidate.text, draft.suggested_edit)
    if missing:
        return Verdict.repair(
            f"Suggested edit for {candidate.path} dropped numeric facts: {', '.join(missing)}. "
            "Keep every number from the original text verbatim.",
            previous=draft.suggested_edit,
        )
    return None


def check_edit_length(draft: DecisionDraft, ctx: DecisionContext) -> Verdict | None:
    if not (draft.edited or draft.feasible_edit):
        return None
    candidate = ctx.candidate_for(draft)
    violation = check_length_fit(
        draft.suggested_edit,
        candidate.max_lines,
        candidate.max_chars_per_line,
        candidate.max_chars_total,
    )
    if violation is None:
        return Verdict.accept(
            Edit(
                path=candidate.path,
                mentioned=draft.mentioned,
                replacement=draft.suggested_edit,
                reason=draft.reason or "Applied ATS-aligned inline rewrite.",
            )
        )
    return Verdict.repair(
        f"Suggested edit exceeded limits for {candidate.path}: "
        f"chars {violation.char_count}/{candidate.max_chars_total}, "
        f"wrapped lines {violation.wrapped_lines}/{candidate.max_lines}. "
        "Rewrite to fit exactly.",
        previous=draft.suggested_edit,
    )


def settle_unresolved(draft: DecisionDraft, ctx: DecisionContext) -> Verdict:
    candidate = ctx.candidate_for(draft)
    return Verdict.accept(
        Unresolved(
            reason=draft.reason or "No truthful inline edit found.",
            mentioned=draft.mentioned,
            path=candidate.path if candidate else None,
        )
    )


DECISION_POLICIES: list[Policy] = [
    check_path_exists,
    check_locked,
    check_already_mentioned,
    check_edit_shape,
    check_edit_vocabulary,
    check_edit_length,
]


def clean_draft(draft: DecisionDraft) -> DecisionDraft:
    return draft.model_copy(
        update={
            "suggested_edit": sanitize(draft.suggested_edit or ""),
            "reason": sanitize(draft.reason or ""),
        }
    )


def judge_decision(
    draft: DecisionDraft,
    ctx: DecisionContext,
    policies: list[Policy] | None = None,
) -> Verdict:
    """Run a draft through the policy pipeline; the first settling policy wins."""
    draft = clean_draft(draft)
    for policy in policies if policies is not None else DECISION_POLICIES:
        verdict = policy(draft, ctx)
        if verdict is not None:
            return verdict
    return settle_unresolved(draft, ctx)
