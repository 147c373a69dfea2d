"""Deterministic detection of requirements a document already states explicitly.

Runs before any generation call, so a requirement that is plainly present
(a phrase, a stated number of years, a degree level) resolves without
asking the generator.
"""

import re

from .candidates import CandidateElement, is_education_path, is_subtitle_path
from .models import Requirement, RequirementType
from .text import sanitize

YEARS_OF_EXPERIENCE = re.compile(
    r"\b(\d+\+?\s*(years?|yrs?)|years?\s+of\s+experience"
    r"|minimum\s+\d+\s*(years?|yrs?)|at\s+least\s+\d+\s*(years?|yrs?))\b",
    re.IGNORECASE,
)

_MENTIONED_YEARS = re.compile(r"(\d{1,2})\+?\s*(?:years?|yrs?)\b", re.IGNORECASE)
_REQUIRED_YEARS = [
    re.compile(r"at\s+least\s+(\d{1,2})\+?\s*(?:years?|yrs?)\b", re.IGNORECASE),
    re.compile(r"minimum\s+(\d{1,2})\+?\s*(?:years?|yrs?)\b", re.IGNORECASE),
    re.compile(r"(\d{1,2})\+?\s*(?:years?|yrs?)\b", re.IGNORECASE),
]

NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
}
_NUMBER_WORD = re.compile(r"\b(" + "|".join(NUMBER_WORDS) + r")\b", re.IGNORECASE)

STOP_WORDS = {
    "a", "an", "and", "as", "at", "be", "by", "for", "in",
    "of", "on", "or", "the", "to", "with", "within",
}

DEGREE_LEVELS = {
    "associate": 1,
    "bachelor": 2,
    "master": 3,
    "doctorate": 4,
}

# (pattern, replacement) applied in order before tokenizing.
_MATCH_REWRITES = [
    (re.compile(r"[’']"), ""),
    (re.compile(r"&"), " and "),
    (re.compile(r"[/|]"), " "),
    (re.compile(r"\bmgmt\b"), "management"),
    (re.compile(r"\bmgr\b"), "manager"),
    (re.compile(r"\byrs?\b"), "years"),
    (re.compile(r"\bbachelors?\b"), "bachelor"),
    (re.compile(r"\bmasters?\b"), "master"),
    (re.compile(r"\bph\.?d\.?"), "doctorate"),
    (re.compile(r"\bdoctoral\b"), "doctorate"),
    (re.compile(r"\bgenai\b"), "generative ai"),
]


def normalize_match_text(value: str) -> str:
    normalized = value.lower()
    for pattern, replacement in _MATCH_REWRITES:
        normalized = pattern.sub(replacement, normalized)
    normalized = re.sub(r"[^a-z0-9+\s]", " ", normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def normalize_token(token: str) -> str:
    """Light plural stemming: ``libraries`` -> ``library``, ``tools`` -> ``tool``."""
    if len(token) > 4 and token.endswith("ies"):
        return token[:-3] + "y"
    if len(token) > 3 and token.endswith("s"):
        return token[:-1]
    return token


def tokenize_for_match(value: str) -> list[str]:
    tokens = (normalize_token(t) for t in normalize_match_text(value).split(" "))
    return [t for t in tokens if t and t not in STOP_WORDS]


def is_years_of_experience_requirement(requirement: Requirement) -> bool:
    samples = [requirement.canonical, *requirement.aliases, *requirement.jd_evidence]
    return any(YEARS_OF_EXPERIENCE.search(sample) for sample in samples)


def is_locked_requirement(requirement: Requirement) -> bool:
    """Education facts and stated years of experience may only be detected, never written."""
    return (
        requirement.type == RequirementType.EDUCATION
        or is_years_of_experience_requirement(requirement)
    )


def _numeric_words(text: str) -> str:
    return _NUMBER_WORD.sub(lambda m: str(NUMBER_WORDS[m.group(1).lower()]), text)


def extract_minimum_years(text: str) -> int | None:
    normalized = _numeric_words(text.lower())
    required = None
    for pattern in _REQUIRED_YEARS:
        for match in pattern.finditer(normalized):
            years = int(match.group(1))
            required = years if required is None else max(required, years)
    return required


def extract_mentioned_years(text: str) -> int | None:
    found = [int(m.group(1)) for m in _MENTIONED_YEARS.finditer(text)]
    return max(found) if found else None


def get_degree_level(text: str) -> int | None:
    """Degree level named in ``text``; 0 for a bare "degree", None when absent."""
    normalized = normalize_match_text(text)
    if not normalized:
        return None
    if re.search(r"\b(phd|doctorate)\b", normalized):
        return DEGREE_LEVELS["doctorate"]
    if re.search(r"\bmaster\b", normalized):
        return DEGREE_LEVELS["master"]
    if re.search(r"\bbachelor\b", normalized):
        return DEGREE_LEVELS["bachelor"]
    if re.search(r"\bassociate\b", normalized):
        return DEGREE_LEVELS["associate"]
    if re.search(r"\bdegree\b", normalized):
        return 0
    return None


def is_phrase_explicitly_mentioned(phrase: str, text: str) -> bool:
    normalized_phrase = normalize_match_text(phrase)
    normalized_text = normalize_match_text(text)
    if not normalized_phrase or not normalized_text:
        return False
    if normalized_phrase in normalized_text:
        return True

    phrase_tokens = tokenize_for_match(normalized_phrase)
    if not phrase_tokens:
        return False
    text_tokens = set(tokenize_for_match(normalized_text))
    return all(token in text_tokens for token in phrase_tokens)


def _max_or_none(values) -> int | None:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def find_explicit_mention(
    requirement: Requirement, candidates: list[CandidateElement]
) -> str | None:
    """Path of the earliest candidate that already states ``requirement``."""
    texts = [
        text
        for text in (
            sanitize(t)
            for t in (requirement.canonical, *requirement.aliases, *requirement.jd_evidence)
        )
        if text
    ]

    if is_years_of_experience_requirement(requirement):
        required_years = _max_or_none(extract_minimum_years(t) for t in texts)
        if required_years is not None:
            for candidate in candidates:
                mentioned = extract_mentioned_years(candidate.text)
                if mentioned is not None and mentioned >= required_years:
                    return candidate.path

    if requirement.type == RequirementType.EDUCATION:
        required_level = _max_or_none(get_degree_level(t) for t in texts)
        for candidate in candidates:
            if not (is_education_path(candidate.path) or is_subtitle_path(candidate.path)):
                continue
            level = get_degree_level(candidate.text)
            if level is None:
                continue
            if not required_level or level >= required_level:
                return candidate.path

    phrases = list(
        dict.fromkeys(
            p for p in (sanitize(t) for t in (requirement.canonical, *requirement.aliases)) if p
        )
    )
    for candidate in candidates:
        for phrase in phrases:
            if is_phrase_explicitly_mentioned(phrase, candidate.text):
                return candidate.path

    return None
