"""Clip displayed text to a word or character budget.

Applied only to the text about to be drawn. The lifecycle keeps working on
the full text so history matching is never affected by the window.
"""

from __future__ import annotations

from subtitle_overlay.settings import RenderSettings
from subtitle_overlay.text_normalizer import normalize_display, split_words


def apply_window(text: str, settings: RenderSettings) -> str:
    normalized = normalize_display(text)
    if not settings.text_trim_enabled:
        return normalized

    if settings.trim_mode == "words":
        limit = settings.max_words
        if limit <= 0:
            return normalized
        words = split_words(normalized)
        if len(words) <= limit:
            return normalized
        kept = words[-limit:] if settings.trim_from_start else words[:limit]
        return " ".join(kept)

    if settings.trim_mode == "characters":
        limit = settings.max_characters
        if limit <= 0 or len(normalized) <= limit:
            return normalized
        return normalized[-limit:] if settings.trim_from_start else normalized[:limit]

    return normalized
