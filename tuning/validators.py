"""Deterministic predicates over generated text.

Each check compares a proposed replacement against its source text or the
caller's allow-lists. Checks return values, never raise, so callers decide
whether a failure means repair feedback or a silent revert.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from .layout import estimate_wrapped_lines
from .models import ResumeData
from .text import sanitize

KNOWN_TECH_TERMS = frozenset(
    {
        "python", "sql", "postgresql", "mysql", "sqlite", "mongodb", "redis",
        "snowflake", "spark", "hadoop", "airflow", "dbt", "tableau", "powerbi",
        "excel", "xgboost", "pytorch", "tensorflow", "scikit-learn", "sklearn",
        "llm", "openai", "langchain", "javascript", "typescript", "node",
        "nodejs", "react", "nextjs", "next", "tailwind", "docker", "kubernetes",
        "aws", "gcp", "azure", "git", "linux", "ci/cd", "etl", "api", "apis",
        "erp", "rf", "nlp",
    }
)

_NUMERIC_TOKEN = re.compile(r"\b\d(?:[\d.,]*\d)?(?:%|\+)?")
_TECH_TOKEN = re.compile(r"[a-z0-9][a-z0-9+.#/-]*")


@dataclass(frozen=True)
class LengthViolation:
    """How far a replacement overflows its field."""

    wrapped_lines: int
    char_count: int


def check_length_fit(
    replacement: str, max_lines: int, max_chars_per_line: int, max_chars_total: int
) -> LengthViolation | None:
    """None when the replacement fits both the line and character budgets."""
    wrapped_lines = estimate_wrapped_lines(replacement, max_chars_per_line)
    char_count = len(replacement)
    if wrapped_lines <= max_lines and char_count <= max_chars_total:
        return None
    return LengthViolation(wrapped_lines=wrapped_lines, char_count=char_count)


def extract_numeric_tokens(text: str) -> list[str]:
    """Numbers such as ``40%``, ``1,200``, ``3.5`` or ``10+`` in first-seen order."""
    return list(dict.fromkeys(_NUMERIC_TOKEN.findall(text)))


def _contains_token(text: str, token: str) -> bool:
    return re.search(rf"(?<![\w.,]){re.escape(token)}(?!\w|[.,]\d)", text) is not None


def missing_numeric_tokens(source: str, candidate: str) -> list[str]:
    return [t for t in extract_numeric_tokens(source) if not _contains_token(candidate, t)]


def preserves_numeric_facts(source: str, candidate: str) -> bool:
    return not missing_numeric_tokens(source, candidate)


def extract_tools(text: str) -> set[str]:
    """Known tool/technology names mentioned in ``text``."""
    tokens = (t.rstrip(".-/") for t in _TECH_TOKEN.findall(text.lower()))
    return {t for t in tokens if t in KNOWN_TECH_TERMS}


def find_unknown_tools(candidate: str, allowed_tools: set[str]) -> list[str]:
    return sorted(extract_tools(candidate) - allowed_tools)


def has_no_new_tools(candidate: str, allowed_tools: set[str]) -> bool:
    return not find_unknown_tools(candidate, allowed_tools)


def build_tool_allowlist(resume: ResumeData, allowed_additions: Iterable[str] = ()) -> set[str]:
    """Tools the document already names, plus explicitly permitted additions."""
    chunks = [resume.metadata.summary, resume.metadata.subtitle]
    for entry in resume.experience:
        chunks.extend(entry.bullets)
    for project in resume.projects:
        chunks.append(project.name)
        chunks.extend(project.technologies)
        chunks.extend(project.bullets)
    for skill in resume.skills:
        chunks.extend([skill.name, skill.category])
    chunks.extend(allowed_additions)
    return extract_tools("\n".join(chunks))


def has_grounded_evidence(evidence_ids: Iterable[str], allowed_ids: set[str]) -> bool:
    """True when at least one cited id is a known source claim."""
    return any(evidence_id in allowed_ids for evidence_id in evidence_ids)


def find_invalid_evidence_ids(evidence_ids: Iterable[str], allowed_ids: set[str]) -> list[str]:
    return list(dict.fromkeys(i for i in evidence_ids if i not in allowed_ids))


def safe_rewrite(source: str, candidate: str, allowed_tools: set[str]) -> str:
    """Return the cleaned candidate, or ``source`` when the candidate fails a check."""
    cleaned = sanitize(candidate)
    if not cleaned:
        return source
    if not preserves_numeric_facts(source, cleaned):
        return source
    if not has_no_new_tools(cleaned, allowed_tools):
        return source
    return cleaned
