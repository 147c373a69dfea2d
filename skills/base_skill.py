"""Shared plumbing for generation-backed skills: context in, result out."""

from dataclasses import dataclass, field
from typing import Any

from claude_client import ClaudeClient, is_transient_error
from config_loader import get_limit, get_model


@dataclass
class SkillContext:
    """Per-call inputs that are not specific to one skill.

    A skill keeps nothing between calls; limits and models are read from
    ``config`` on every execution.
    """

    config: dict
    """Merged configuration (see config_loader)."""

    extra: dict = field(default_factory=dict)
    """Caller-supplied values a particular skill may look for."""


@dataclass
class SkillResult:
    """Outcome of one skill execution."""

    success: bool
    """False only when the skill could not produce its output at all."""

    data: Any = None
    """Skill output: a decision outcome, a tune outcome, requirements or operations."""

    error: str | None = None
    """Human-readable failure summary."""

    metadata: dict = field(default_factory=dict)
    """Diagnostics such as ``attempts``, ``transient`` or ``violations``."""

    @classmethod
    def ok(cls, data: Any, **metadata) -> "SkillResult":
        return cls(success=True, data=data, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata) -> "SkillResult":
        return cls(success=False, error=error, metadata=metadata)

    @classmethod
    def from_exception(cls, prefix: str, exc: Exception) -> "SkillResult":
        """Failed result that records whether ``exc`` is worth retrying later."""
        return cls.fail(f"{prefix}: {exc}", transient=is_transient_error(exc), exception=exc)


class BaseSkill:
    """Base class for the tuning skills.

    A skill owns one generation schema and one system prompt, and usually
    drives a BoundedRepairLoop around them. It never:
    - keeps state across executions
    - decides the order requirements are processed in
    - writes to the console; it logs and returns a SkillResult
    """

    purpose = "edit"
    """Key under ``models`` in the config naming this skill's model."""

    def __init__(self, client: ClaudeClient, config: dict):
        self.client = client
        self.config = config

    @property
    def model(self) -> str:
        return get_model(self.config, self.purpose)

    def limit(self, name: str) -> int:
        return get_limit(self.config, name)

    def execute(self, context: SkillContext, **kwargs) -> SkillResult:
        """Run the skill once.

        Args:
            context: Shared per-call context.
            **kwargs: Skill-specific inputs.
        """
        raise NotImplementedError("Subclasses must implement execute()")
