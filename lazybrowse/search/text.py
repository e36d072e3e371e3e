"""Line matching for searching inside a text preview."""

from __future__ import annotations

from collections.abc import Sequence

from .fuzzy import is_case_sensitive_query


def matching_lines(lines: Sequence[str], query: str) -> tuple[int, ...]:
    """Indices of lines containing ``query``.

    Smart case, as in the explorer filter: an all-lowercase query matches
    case-insensitively, any uppercase character makes it exact.
    """
    if not query:
        return ()
    if is_case_sensitive_query(query):
        return tuple(index for index, line in enumerate(lines) if query in line)
    return tuple(index for index, line in enumerate(lines) if query in line.lower())


def match_from(matches: Sequence[int], line: int) -> int | None:
    """First match at or after ``line``, wrapping to the first match."""
    if not matches:
        return None
    for match in matches:
        if match >= line:
            return match
    return matches[0]


def step_match(matches: Sequence[int], line: int, forward: bool = True) -> int | None:
    """Next (or previous) match strictly past ``line``, wrapping around."""
    if not matches:
        return None
    if forward:
        return next((match for match in matches if match > line), matches[0])
    return next((match for match in reversed(matches) if match < line), matches[-1])


def match_position(matches: Sequence[int], line: int) -> int | None:
    """1-based position of ``line`` among ``matches``."""
    try:
        return list(matches).index(line) + 1
    except ValueError:
        return None


__all__ = ["match_from", "match_position", "matching_lines", "step_match"]
