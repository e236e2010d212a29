"""Incremental diffing of a revising transcript against what was already shown.

The transcription source restates the whole utterance on every update, and
keeps changing its mind about punctuation and casing while doing so::

    history:  "Hello world"
    update:   "Hello, world. How are"
    new part: " How are"

Matching is done on the compare-normalized form (letters and digits only),
then mapped back onto the raw update so the returned segment keeps the
original punctuation and spacing.
"""

from __future__ import annotations

from subtitle_overlay.text_normalizer import normalize_compare


def _split_point(history_norm: str, raw_text: str) -> int | None:
    """Index in *raw_text* right after the last character that covers history.

    Walks the raw text, consuming only characters that survive
    normalize_compare(). Punctuation and whitespace along the way advance
    the cursor without consuming history. Returns None if the walk runs out
    of text or disagrees with the history.
    """
    matched = 0
    idx = 0
    while matched < len(history_norm) and idx < len(raw_text):
        char_norm = normalize_compare(raw_text[idx])
        if char_norm:
            if not history_norm.startswith(char_norm, matched):
                return None
            matched += len(char_norm)
        idx += 1

    if matched != len(history_norm):
        return None
    return idx


def resolve_new_segment(history: str, raw_text: str) -> str:
    """Return the part of *raw_text* not already represented by *history*.

    - Empty history (or history with no letters/digits): the whole update.
    - Update does not start with the history: an unrelated new utterance,
      returned in full. The caller decides whether to reset its history.
    - Otherwise: the raw suffix after the history, punctuation included.
    """
    if not raw_text:
        return ""

    history_norm = normalize_compare(history)
    if not history_norm:
        return raw_text

    if not normalize_compare(raw_text).startswith(history_norm):
        return raw_text

    idx = _split_point(history_norm, raw_text)
    if idx is None:
        return raw_text
    return raw_text[idx:]
