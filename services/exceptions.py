"""Typed exception hierarchy for Resume Tuner services.

Services raise these exceptions instead of printing to console.
Callers (CLI, API) catch and present them appropriately. Expected outcomes
of a tuning run (locked requirement, over-length draft, no-op edit) are never
raised; they come back as report entries.
"""


class ResumeTunerError(Exception):
    """Base exception for all Resume Tuner service errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidRequestError(ResumeTunerError):
    """Raised when a request is well-formed but cannot be processed."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, {"field": field})
        self.field = field


class JobDescriptionError(ResumeTunerError):
    """Raised when no usable job description text could be resolved."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, {"url": url})
        self.url = url


class RewriteConstraintError(ResumeTunerError):
    """Raised when no rewrite attempt satisfied the field length limits."""

    def __init__(self, violations: list[dict]):
        paths = ", ".join(v.get("path", "?") for v in violations)
        super().__init__(
            f"Rewrite could not satisfy length limits for: {paths}",
            {"violations": violations},
        )
        self.violations = violations


class GenerationFailedError(ResumeTunerError):
    """Raised when AI generation fails.

    ``transient`` marks failures worth retrying later (provider unavailable),
    as opposed to permanent ones (schema mismatch, bad request).
    """

    def __init__(self, operation: str, reason: str | None = None, transient: bool = False):
        msg = f"{operation} failed"
        if reason:
            msg += f": {reason}"
        super().__init__(
            msg, {"operation": operation, "reason": reason, "transient": transient}
        )
        self.operation = operation
        self.reason = reason
        self.transient = transient
