"""Smart-case subsequence scoring for listing filters."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Generic, TypeVar

T = TypeVar("T")

BOUNDARY_CHARS = "/_- ."


def is_case_sensitive_query(query: str) -> bool:
    """Smart case: any uppercase character makes the match case-sensitive."""
    return any(ch.isupper() for ch in query)


def fuzzy_score(query: str, candidate: str, case_sensitive: bool | None = None) -> int | None:
    """Score ``candidate`` as a subsequence match of ``query``.

    Returns ``None`` when ``query`` is not a subsequence. Contiguous runs and
    matches at word boundaries score higher; gaps and long candidates cost.
    ``case_sensitive`` defaults to smart case.
    """
    if not query:
        return 0
    if case_sensitive is None:
        case_sensitive = is_case_sensitive_query(query)
    if not case_sensitive:
        query = query.casefold()
        candidate = candidate.casefold()

    score = 0
    prev_idx = -1
    run = 0
    for needle in query:
        idx = candidate.find(needle, prev_idx + 1)
        if idx < 0:
            return None
        if idx == prev_idx + 1:
            run += 1
            score += 20 + min(16, run * 4)
        else:
            gap = idx - prev_idx - 1
            run = 0
            score -= min(40, gap * 2)
        if idx == 0 or candidate[idx - 1] in BOUNDARY_CHARS:
            score += 35
        prev_idx = idx

    score -= len(candidate) // 5
    return score


class FuzzyFilter(Generic[T]):
    """Filter and rank items by the fuzzy score of their label.

    Non-matching items are excluded. Matches are ordered by descending score;
    equal scores keep their original relative order.
    """

    def __init__(self, label: Callable[[T], str] = str) -> None:
        self._label = label

    def match_indices(self, query: str, items: Sequence[T]) -> list[int]:
        if not query:
            return list(range(len(items)))
        case_sensitive = is_case_sensitive_query(query)
        scored: list[tuple[int, int]] = []
        for idx, item in enumerate(items):
            score = fuzzy_score(query, self._label(item), case_sensitive)
            if score is None:
                continue
            scored.append((score, idx))
        scored.sort(key=lambda pair: (-pair[0], pair[1]))
        return [idx for _score, idx in scored]

    def filter(self, query: str, items: Sequence[T]) -> list[T]:
        return [items[idx] for idx in self.match_indices(query, items)]


def fuzzy_filter(query: str, labels: Iterable[str]) -> list[str]:
    """Return ``labels`` matching ``query``, best first."""
    return FuzzyFilter[str]().filter(query, list(labels))


__all__ = [
    "BOUNDARY_CHARS",
    "FuzzyFilter",
    "fuzzy_filter",
    "fuzzy_score",
    "is_case_sensitive_query",
]
