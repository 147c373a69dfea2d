"""Requirement Editor Skill - decides how one job requirement is satisfied by the resume."""

import json
import logging

from claude_client import GenerationSchemaError, is_transient_error
from tuning.candidates import CandidateElement
from tuning.decisions import (
    EXHAUSTED_DECISION_REASON,
    TEMPORARY_DECISION_REASON,
    DecisionContext,
    DecisionDraft,
    DecisionOutcome,
    Unresolved,
    judge_decision,
)
from tuning.models import Requirement
from tuning.repair_loop import BoundedRepairLoop, RepairAttempt, RepairState

from .base_skill import BaseSkill, SkillContext, SkillResult

logger = logging.getLogger(__name__)

REQUIREMENT_EDIT_PROMPT = """You are an ATS alignment editor. You receive ONE job requirement and an ordered list of resume candidate elements, each with a path, its current text and strict length limits.

Your task is to decide, for this single requirement, which of these holds:
1. The requirement is already stated explicitly in a candidate (mentioned = "yes").
2. A candidate can be rewritten inline, truthfully, so that it states the requirement (an edit).
3. No candidate can truthfully carry the requirement (unresolved).

LOOP RULES
- Walk the candidates in the given order and choose the EARLIEST one that resolves the requirement.
- Only ever return a path copied exactly from the candidates list, or null.
- If lockedNoEdit is true, you may only report an explicit existing mention. Never propose an edit for a locked requirement.
- "implied" means the resume suggests the requirement without naming it; an edit may make it explicit.

EDIT RULES
- Do NOT invent experience, employers, metrics, tools or credentials.
- Keep every number from the original text verbatim.
- Only name tools or technologies the resume already names or the user explicitly allows.
- suggested_edit is the FULL replacement text for the chosen path, not a fragment.
- The replacement must fit the candidate's limits: at most chars.maxTotal characters and at most lines.max wrapped lines at chars.maxPerLine characters per line.
- Preserve the voice and tense of the original bullet.

OUTPUT
- path: candidate path or null
- mentioned: "yes", "implied" or "none"
- feasible_edit: true when a truthful inline edit exists
- edited: true when suggested_edit holds that edit
- suggested_edit: replacement text, or "" when not editing
- reason: one short sentence"""


class RequirementEditorSkill(BaseSkill):
    """Skill that resolves a single requirement against the eligible candidates."""

    purpose = "edit"

    def execute(
        self,
        context: SkillContext,
        requirement: Requirement,
        candidates: list[CandidateElement],
        locked: bool,
        allowed_tools: set[str] | None = None,
    ) -> SkillResult:
        """Run the bounded decide-validate-repair loop for one requirement.

        Args:
            context: Execution context with config.
            requirement: The requirement to resolve.
            candidates: Eligible candidates in traversal order.
            locked: True when the requirement may only be detected, never edited.
            allowed_tools: Tool names an edit may mention.

        Returns:
            SkillResult whose data is a DecisionOutcome. Fails only on a
            permanent generation error.
        """
        ctx = DecisionContext(
            requirement=requirement,
            candidates=candidates,
            locked=locked,
            allowed_tools=allowed_tools or set(),
        )
        base_prompt = self._build_prompt(requirement, candidates, locked)
        last_edit = ""

        def generate(attempt: RepairAttempt) -> DecisionDraft:
            nonlocal last_edit
            if attempt.previous:
                last_edit = attempt.previous
            parts = [base_prompt]
            if last_edit:
                parts.append(f"Previous suggested edit:\n{last_edit}")
            if attempt.feedback:
                parts.append(attempt.feedback)
            return self.client.generate(
                system=REQUIREMENT_EDIT_PROMPT,
                prompt="\n\n".join(parts),
                schema=DecisionDraft,
                model=self.model,
                max_tokens=1024,
            )

        loop = BoundedRepairLoop(
            generate=generate,
            validate=lambda draft, _: judge_decision(draft, ctx),
            max_attempts=self.limit("max_decision_attempts"),
            is_transient=is_transient_error,
            name=f"requirement {requirement.id}",
        )

        try:
            result = loop.run()
        except GenerationSchemaError as e:
            return SkillResult.from_exception("Decision did not match schema", e)
        except Exception as e:
            logger.error("Requirement %s aborted: %s", requirement.id, e)
            return SkillResult.from_exception("Decision generation failed", e)

        outcome: DecisionOutcome
        if result.state == RepairState.ACCEPTED:
            outcome = result.value
        elif result.transient_failure:
            outcome = Unresolved(reason=TEMPORARY_DECISION_REASON)
        else:
            outcome = Unresolved(reason=EXHAUSTED_DECISION_REASON)

        logger.debug(
            "Requirement %s -> %s after %d attempts", requirement.id, outcome.kind, result.attempts
        )
        return SkillResult.ok(outcome, attempts=result.attempts, state=result.state.value)

    @staticmethod
    def _build_prompt(
        requirement: Requirement, candidates: list[CandidateElement], locked: bool
    ) -> str:
        summaries = [c.summary(order) for order, c in enumerate(candidates, start=1)]
        return "\n\n".join(
            [
                "Requirement:\n"
                + json.dumps(requirement.model_dump(by_alias=True, mode="json"), indent=2),
                f"lockedNoEdit: {'true' if locked else 'false'}",
                "Candidates in required traversal order:\n" + json.dumps(summaries, indent=2),
                "Choose the earliest candidate that resolves the requirement under the loop rules.",
                'If no candidate resolves it, return unresolved with path=null and suggested_edit="".',
            ]
        )
