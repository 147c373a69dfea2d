"""Resume Tuner core - deterministic layout, validation and repair primitives.

Nothing in this package performs I/O or calls the generator directly.
Skills supply the generation callables; services own the request lifecycle.
"""

from .candidates import (
    CandidateElement,
    ResolutionBudget,
    build_candidates,
    eligible_candidates,
    measure_fields,
)
from .claims import Claim, build_claims
from .decisions import Already, DecisionContext, DecisionDraft, Edit, Unresolved, judge_decision
from .diff_builder import TuneDiff, build_tune_outputs
from .draft import TuneDraft, apply_draft
from .layout import PageEstimate, estimate_pages, estimate_wrapped_lines
from .matching import find_explicit_mention, is_locked_requirement
from .models import ElementProfile, Mention, Requirement, RequirementType, ResumeData
from .repair_loop import BoundedRepairLoop, RepairAttempt, RepairResult, RepairState, Verdict

__all__ = [
    # Models
    "ElementProfile",
    "Mention",
    "Requirement",
    "RequirementType",
    "ResumeData",
    # Layout
    "PageEstimate",
    "estimate_pages",
    "estimate_wrapped_lines",
    # Candidates
    "CandidateElement",
    "ResolutionBudget",
    "build_candidates",
    "eligible_candidates",
    "measure_fields",
    "find_explicit_mention",
    "is_locked_requirement",
    # Repair loop
    "BoundedRepairLoop",
    "RepairAttempt",
    "RepairResult",
    "RepairState",
    "Verdict",
    # Decisions
    "Already",
    "DecisionContext",
    "DecisionDraft",
    "Edit",
    "Unresolved",
    "judge_decision",
    # Whole-document tuning
    "Claim",
    "TuneDiff",
    "TuneDraft",
    "apply_draft",
    "build_claims",
    "build_tune_outputs",
]
