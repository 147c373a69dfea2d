"""Keyword hints extracted from a job description."""

import re
from collections import Counter

from .text import sanitize

MAX_KEYWORD_HINTS = 36
MAX_MATCHED_KEYWORDS = 6

STOP_WORDS = {
    "and", "the", "for", "with", "from", "that", "this", "have", "has", "are",
    "you", "your", "our", "their", "will", "into", "within", "about", "work",
    "role", "team", "using", "across", "plus", "years", "year", "experience",
    "required", "preferred", "minimum",
}

_KEYWORD = re.compile(r"[a-z][a-z0-9+#/-]{2,}")


def extract_keyword_hints(job_description: str, limit: int = MAX_KEYWORD_HINTS) -> list[str]:
    """Most frequent non-stopword tokens; ties keep first-seen order."""
    tokens = [
        token
        for token in _KEYWORD.findall(sanitize(job_description).lower())
        if token not in STOP_WORDS
    ]
    return [token for token, _ in Counter(tokens).most_common(limit)]


def match_keywords(text: str, keyword_hints: list[str]) -> list[str]:
    normalized = sanitize(text).lower()
    if not normalized:
        return []
    return [token for token in keyword_hints if token in normalized][:MAX_MATCHED_KEYWORDS]
