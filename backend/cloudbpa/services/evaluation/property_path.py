"""
Property path resolution for resource configurations.

Paths use dot notation with optional array indexes, both bracketed and
dotted forms are accepted:

    versioning.status
    rules[0].protocol
    rules.0.protocol
"""

import re
from functools import lru_cache
from typing import Any, Mapping, Sequence, Tuple, Union

PathSegment = Union[str, int]

_TOKEN_PATTERN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


class _Absent:
    """Sentinel for a property path that does not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


@lru_cache(maxsize=1024)
def parse_path(path: str) -> Tuple[PathSegment, ...]:
    """
    Split a property path into key and index segments.

    Bracketed indexes become ints; dotted numeric segments stay strings
    and are interpreted as indexes only when applied to a list.

    Raises:
        ValueError: If the path is empty or malformed
    """
    if not path or not path.strip():
        raise ValueError("Property path must not be empty")

    segments = []
    position = 0
    for match in _TOKEN_PATTERN.finditer(path):
        gap = path[position : match.start()]
        if gap not in ("", "."):
            raise ValueError(f"Malformed property path: {path!r}")
        key, index = match.groups()
        segments.append(int(index) if index is not None else key)
        position = match.end()

    if position != len(path) or not segments:
        raise ValueError(f"Malformed property path: {path!r}")
    return tuple(segments)


def resolve_path(configuration: Mapping[str, Any], path: str) -> Any:
    """
    Resolve a property path against a configuration document.

    Returns:
        The resolved value, or ABSENT if any segment is missing
    """
    current: Any = configuration
    for segment in parse_path(path):
        if isinstance(current, Mapping):
            key = str(segment)
            if key not in current:
                return ABSENT
            current = current[key]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            index = _as_index(segment)
            if index is None or index >= len(current):
                return ABSENT
            current = current[index]
        else:
            return ABSENT
    return current


def _as_index(segment: PathSegment):
    if isinstance(segment, int):
        return segment
    if segment.isdigit():
        return int(segment)
    return None
