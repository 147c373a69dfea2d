"""Text normalization shared by the validators, matchers and diff builder."""

import re

_WHITESPACE = re.compile(r"\s+")


def sanitize(value: str | None) -> str:
    """Strip NUL characters, normalize line endings and trim."""
    if not value:
        return ""
    return value.replace("\x00", "").replace("\r\n", "\n").strip()


def normalize_comparable(value: str | None) -> str:
    """Collapse whitespace and lowercase, for no-op edit detection."""
    return _WHITESPACE.sub(" ", value or "").strip().lower()


def collapse_whitespace(value: str | None) -> str:
    return _WHITESPACE.sub(" ", sanitize(value))
