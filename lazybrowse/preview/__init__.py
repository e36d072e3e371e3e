"""Preview cache and syntax highlighting."""

from .cache import PREVIEW_JOB, PreviewCache
from .highlight import highlight_preview, highlight_spans, sanitize_terminal_text

__all__ = [
    "PREVIEW_JOB",
    "PreviewCache",
    "highlight_preview",
    "highlight_spans",
    "sanitize_terminal_text",
]
