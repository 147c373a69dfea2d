"""Selection Rewriter Skill - applies a free-text instruction to selected resume fields."""

import json
import logging
from typing import Literal

from pydantic import Field

from claude_client import GenerationSchemaError, is_transient_error
from tuning.layout import estimate_wrapped_lines
from tuning.models import CamelModel, FieldLengthConstraint
from tuning.repair_loop import BoundedRepairLoop, RepairAttempt, RepairState, Verdict
from tuning.text import sanitize

from .base_skill import BaseSkill, SkillContext, SkillResult

logger = logging.getLogger(__name__)

INVALID_OPERATIONS_ERROR = "AI returned invalid operations."

SELECTION_REWRITE_PROMPT = """You are a precise resume editor. You receive an instruction from the user and a set of selected resume fields, each identified by a path.

Apply the instruction to the selected fields only and express the result as a list of operations.

OPERATIONS
- replace: set the field at path to value (value is the FULL new text).
- delete: remove the item at path (value is "").
- insert: add value as a new item in the list at path, at position index (-1 appends).
- itemType is one of: text | bullet | technology | experience | project | education | skill | none
- For replace and delete, index is -1.

RULES
- Do NOT invent experience, metrics, employers, tools or credentials.
- Keep numbers from the original text verbatim unless the instruction explicitly asks to change them.
- Never touch paths that were not selected.
- When a path has a length constraint, the replacement must not exceed its maxCharsTotal characters or wrap to more than maxLines lines at maxCharsPerLine characters per line."""


class RewriteField(CamelModel):
    path: str = Field(min_length=1)
    text: str = ""
    length_constraint: FieldLengthConstraint | None = None


class RewriteScope(CamelModel):
    type: Literal["selection", "section"] = "selection"
    section: str | None = None


class RewriteOperation(CamelModel):
    op: Literal["replace", "delete", "insert"]
    path: str
    value: str = ""
    index: int = -1
    item_type: Literal[
        "text", "bullet", "technology", "experience", "project", "education", "skill", "none"
    ] = "text"


class RewriteOperationsDraft(CamelModel):
    operations: list[RewriteOperation] = Field(default_factory=list)


def find_length_violations(
    operations: list[RewriteOperation], constraints: dict[str, FieldLengthConstraint]
) -> list[dict]:
    """Replace operations whose value overflows the constraint on their path."""
    violations = []
    for operation in operations:
        if operation.op != "replace":
            continue
        constraint = constraints.get(operation.path)
        if constraint is None:
            continue
        value = sanitize(operation.value)
        wrapped = estimate_wrapped_lines(value, constraint.max_chars_per_line)
        if len(value) > constraint.max_chars_total or wrapped > constraint.max_lines:
            violations.append(
                {
                    "path": operation.path,
                    "maxLines": constraint.max_lines,
                    "maxCharsPerLine": constraint.max_chars_per_line,
                    "maxCharsTotal": constraint.max_chars_total,
                    "wrappedLines": wrapped,
                    "charCount": len(value),
                }
            )
    return violations


def format_violation_feedback(violations: list[dict]) -> str:
    lines = [
        f"- {v['path']}: chars {v['charCount']}/{v['maxCharsTotal']}; "
        f"wrapped lines {v['wrappedLines']}/{v['maxLines']}; "
        f"maxCharsPerLine={v['maxCharsPerLine']}"
        for v in violations
    ]
    return (
        "Your previous draft violated length constraints on these paths:\n"
        + "\n".join(lines)
        + "\nReturn a full operations array again. Keep all operations valid, but aggressively "
        "shorten only the violating replace values until every limit is satisfied."
    )


class SelectionRewriterSkill(BaseSkill):
    """Skill that rewrites selected fields under optional length constraints."""

    purpose = "rewrite"

    def execute(
        self,
        context: SkillContext,
        instruction: str,
        fields: list[RewriteField],
        scope: RewriteScope,
    ) -> SkillResult:
        """Generate operations for ``instruction``, repairing length overflows.

        Returns:
            SkillResult with a list of RewriteOperation. On exhaustion the
            failure metadata carries ``violations`` (constraint failures) or
            ``invalid_output`` (the generator never produced valid operations).
        """
        constraints = {f.path: f.length_constraint for f in fields if f.length_constraint}
        base_prompt = self._build_prompt(instruction, fields, scope, constraints)
        last_violations: list[dict] = []

        def generate(attempt: RepairAttempt) -> RewriteOperationsDraft | None:
            parts = [base_prompt]
            if attempt.previous:
                previous = {
                    "operations": [op.model_dump(by_alias=True) for op in attempt.previous]
                }
                parts.append(
                    "Previous draft operations to revise:\n" + json.dumps(previous, indent=2)
                )
            if attempt.feedback:
                parts.append(attempt.feedback)
            try:
                return self.client.generate(
                    system=SELECTION_REWRITE_PROMPT,
                    prompt="\n\n".join(parts),
                    schema=RewriteOperationsDraft,
                    model=self.model,
                    max_tokens=2048,
                )
            except GenerationSchemaError as e:
                logger.warning(
                    "Rewrite attempt %d returned invalid operations: %s", attempt.number, e
                )
                return None

        def validate(draft: RewriteOperationsDraft | None, _: int) -> Verdict:
            nonlocal last_violations
            if draft is None:
                last_violations = []
                return Verdict.repair(
                    "Your previous output did not match the required JSON schema. "
                    "Return only valid operations JSON."
                )
            operations = [
                op.model_copy(update={"value": sanitize(op.value)}) for op in draft.operations
            ]
            violations = find_length_violations(operations, constraints)
            if not violations:
                return Verdict.accept(operations)
            last_violations = violations
            return Verdict.repair(format_violation_feedback(violations), previous=operations)

        loop = BoundedRepairLoop(
            generate=generate,
            validate=validate,
            max_attempts=self.limit("max_rewrite_attempts"),
            is_transient=is_transient_error,
            name="selection rewrite",
        )

        try:
            result = loop.run()
        except Exception as e:
            return SkillResult.from_exception("Failed to rewrite selection", e)

        if result.state == RepairState.ACCEPTED:
            return SkillResult.ok(result.value, attempts=result.attempts)
        if last_violations:
            return SkillResult.fail(
                "AI exceeded the selected max-lines limit. "
                "Try regenerating or increase the line limit.",
                violations=last_violations,
            )
        if result.transient_failure:
            return SkillResult.fail(
                f"Failed to rewrite selection: {result.last_error}", transient=True
            )
        return SkillResult.fail(INVALID_OPERATIONS_ERROR, invalid_output=True)

    @staticmethod
    def _build_prompt(
        instruction: str,
        fields: list[RewriteField],
        scope: RewriteScope,
        constraints: dict[str, FieldLengthConstraint],
    ) -> str:
        if constraints:
            constrained = [
                {"path": path, "constraint": c.model_dump(by_alias=True)}
                for path, c in constraints.items()
            ]
            constraint_message = (
                f"Length constraints:\n{json.dumps(constrained, indent=2)}\n\n"
                "For every replace operation on a constrained path, strictly satisfy "
                "that path's maxLines and maxCharsTotal limits."
            )
        else:
            constraint_message = "Length constraints: none."

        selected = [{"path": f.path, "text": f.text} for f in fields]
        return (
            f"Instruction:\n{sanitize(instruction)}\n\n"
            f"Scope:\n{json.dumps(scope.model_dump(by_alias=True, exclude_none=True), indent=2)}\n\n"
            f"Selected fields:\n{json.dumps(selected, indent=2)}\n\n"
            f"{constraint_message}"
        )
