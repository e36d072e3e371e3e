"""Search helpers for filtering listings and searching previews."""

from .fuzzy import FuzzyFilter, fuzzy_filter, fuzzy_score, is_case_sensitive_query
from .text import match_from, match_position, matching_lines, step_match

__all__ = [
    "FuzzyFilter",
    "fuzzy_filter",
    "fuzzy_score",
    "is_case_sensitive_query",
    "match_from",
    "match_position",
    "matching_lines",
    "step_match",
]
