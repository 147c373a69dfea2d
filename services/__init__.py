"""Resume Tuner services - framework-agnostic orchestration layer.

Services drive skills and return structured data (Pydantic models).
No Rich imports, no console output. Callers handle presentation.
"""

from .base_service import BaseService
from .edit_service import EditService, apply_operations, client_facing_error
from .exceptions import (
    ResumeTunerError,
    InvalidRequestError,
    JobDescriptionError,
    RewriteConstraintError,
    GenerationFailedError,
)
from .rewrite_service import RewriteService
from .tune_service import TuneService, estimate_document

__all__ = [
    # Base
    "BaseService",
    # Services
    "EditService",
    "TuneService",
    "RewriteService",
    # Helpers
    "apply_operations",
    "client_facing_error",
    "estimate_document",
    # Exceptions
    "ResumeTunerError",
    "InvalidRequestError",
    "JobDescriptionError",
    "RewriteConstraintError",
    "GenerationFailedError",
]
