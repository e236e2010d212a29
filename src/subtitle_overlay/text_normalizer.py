"""Text normalization shared by the differ, artifact filter and text window.

Two flavours:
1. normalize_display(): what the viewer sees (whitespace collapsed)
2. normalize_compare(): aggressive form used only for equality checks
"""

from __future__ import annotations

import re

_RE_WHITESPACE = re.compile(r"\s+")


def normalize_display(text: str | None) -> str:
    """Trim and collapse whitespace runs to a single space."""
    if not text:
        return ""
    return _RE_WHITESPACE.sub(" ", text.strip())


def _is_significant(c: str) -> bool:
    # Unicode letters (L*) and numbers (N*)
    return c.isalpha() or c.isnumeric()


def normalize_compare(text: str | None) -> str:
    """Normalize text for comparison: case-folded, letters and digits only.

    Never used for output, only for prefix checks against text that was
    already shown. casefold() rather than lower() so that folding a single
    character gives the same result as folding it inside a word (Greek
    final sigma).
    """
    if not text:
        return ""
    return "".join(c for c in text.casefold() if _is_significant(c))


def split_words(text: str | None) -> list[str]:
    """Split display-normalized text into words, dropping empty tokens."""
    normalized = normalize_display(text)
    return [w for w in normalized.split(" ") if w]
