"""Detect transcription artifacts before they reach the screen.

Speech models emit text on background noise too. The most common forms:
1. Characters from a script nobody is speaking (Ol Chiki on the realtime model)
2. Unicode replacement characters from a decoding failure
3. One word repeated over and over ("bang bang bang bang ...")

Also holds the punctuation helpers used by the lifecycle to avoid opening a
subtitle for a bare "." right after the previous one closed.
"""

from __future__ import annotations

import logging
import re

from subtitle_overlay.text_normalizer import normalize_compare, split_words

logger = logging.getLogger(__name__)


# Ol Chiki block: U+1C50..U+1C7F
NOISE_SCRIPT_RANGES: tuple[tuple[int, int], ...] = (
    (0x1C50, 0x1C7F),
)

REPLACEMENT_CHAR = "\ufffd"

# Repetition heuristic: only long texts, and only when almost every word
# is a repeat.
REPETITION_MIN_WORDS = 15
REPETITION_MAX_UNIQUE_RATIO = 0.2

_RE_LEADING_PUNCTUATION = re.compile(r"^[\s.,;:!?\-]+")


def _in_noise_script(c: str) -> bool:
    cp = ord(c)
    return any(lo <= cp <= hi for lo, hi in NOISE_SCRIPT_RANGES)


def _has_noise_script(text: str) -> bool:
    return any(_in_noise_script(c) for c in text)


def _is_repetition_spam(text: str) -> bool:
    words = split_words(text)
    if len(words) <= REPETITION_MIN_WORDS:
        return False
    unique = len({w.casefold() for w in words})
    return unique / len(words) < REPETITION_MAX_UNIQUE_RATIO


def is_hallucination(text: str) -> bool:
    """Return True if *text* looks like noise misrecognized as speech."""
    if not text:
        return False

    if _has_noise_script(text):
        logger.debug("Artifact: noise script in %r", text[:80])
        return True

    if REPLACEMENT_CHAR in text:
        logger.debug("Artifact: replacement character in %r", text[:80])
        return True

    if _is_repetition_spam(text):
        logger.debug("Artifact: excessive repetition in %r", text[:80])
        return True

    return False


def is_punctuation_only(text: str) -> bool:
    """True when nothing but punctuation/whitespace remains (empty included)."""
    return not normalize_compare(text)


def strip_leading_punctuation(text: str) -> str:
    """Drop leading whitespace and . , ; : ! ? - characters.

    Interior punctuation is left alone.
    """
    if not text:
        return ""
    return _RE_LEADING_PUNCTUATION.sub("", text)
