"""Bracket-index field paths such as ``experience[2].bullets[0]`` or ``metadata.summary``."""

import re
from typing import Any

from .models import ResumeData

_SEGMENT = re.compile(r"([^[.\]]+)|\[(\d+)\]")

PathSegment = str | int


def parse_field_path(path: str) -> list[PathSegment]:
    """Split a path into keys and list indexes."""
    segments: list[PathSegment] = []
    for match in _SEGMENT.finditer(path):
        if match.group(1):
            segments.append(match.group(1))
        elif match.group(2):
            segments.append(int(match.group(2)))
    return segments


def to_patch_path(path: str) -> str:
    """Convert a field path to a JSON Pointer (``/experience/2/bullets/0``)."""
    return "/" + "/".join(str(segment) for segment in parse_field_path(path))


def _walk(data: Any, segments: list[PathSegment]) -> Any:
    cursor = data
    for segment in segments:
        if isinstance(segment, int):
            if not isinstance(cursor, list) or segment >= len(cursor):
                return None
        elif not isinstance(cursor, dict) or segment not in cursor:
            return None
        cursor = cursor[segment]
    return cursor


def get_value_at_path(resume: ResumeData, path: str) -> Any:
    """Read a value by field path; None when the path does not resolve."""
    segments = parse_field_path(path)
    if not segments:
        return None
    return _walk(resume.model_dump(by_alias=True), segments)


def set_value_at_path(resume: ResumeData, path: str, value: Any) -> ResumeData:
    """Return a copy of ``resume`` with the value at ``path`` replaced.

    Unresolvable paths leave the document unchanged.
    """
    segments = parse_field_path(path)
    if not segments:
        return resume

    data = resume.model_dump(by_alias=True)
    parent = _walk(data, segments[:-1])
    last = segments[-1]
    if isinstance(last, int):
        if not isinstance(parent, list) or last >= len(parent):
            return resume
    elif not isinstance(parent, dict) or last not in parent:
        return resume

    parent[last] = value
    return ResumeData.model_validate(data)
