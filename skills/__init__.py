"""Resume Tuner skills - stateless generation-backed operations."""

from .base_skill import BaseSkill, SkillContext, SkillResult
from .requirement_editor import RequirementEditorSkill
from .requirement_extractor import RequirementExtractorSkill
from .resume_tuner import ResumeTunerSkill
from .selection_rewriter import SelectionRewriterSkill

__all__ = [
    # Base
    "BaseSkill",
    "SkillContext",
    "SkillResult",
    # Skills
    "RequirementEditorSkill",
    "RequirementExtractorSkill",
    "ResumeTunerSkill",
    "SelectionRewriterSkill",
]
