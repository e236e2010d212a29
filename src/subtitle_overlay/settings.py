from __future__ import annotations

import dataclasses
import math
import os
from dataclasses import dataclass
from typing import Any, Mapping

ANIMATIONS = ("fade", "slide", "none", "letter-by-letter")
DISPLAY_MODES = ("centered", "sequential", "scrolling")
TRIM_MODES = ("words", "characters")

DEBUG_ENV_VAR = "SUBTITLE_OVERLAY_DEBUG"

# field name -> (min, max)
_NUMERIC_BOUNDS: dict[str, tuple[float, float]] = {
    "opacity": (0.0, 1.0),
    "display_duration": (0.0, 60.0),
    "fade_out_duration": (0.0, 10.0),
    "letter_delay": (10, 500),
    "sequential_word_delay": (50, 2000),
    "scroll_speed": (10.0, 500.0),
    "max_scroll_width": (100, 7680),
    "auto_scroll_min_speed": (10.0, 200.0),
    "auto_scroll_max_speed": (50.0, 500.0),
    "auto_scroll_lerp_speed": (0.01, 1.0),
    "max_words": (0, 500),
    "max_characters": (0, 2000),
}

_CHOICES: dict[str, tuple[str, ...]] = {
    "animation": ANIMATIONS,
    "display_mode": DISPLAY_MODES,
    "trim_mode": TRIM_MODES,
}


def is_debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV_VAR, "0") == "1"


def _camel_to_snake(name: str) -> str:
    out = []
    for c in name:
        if c.isupper():
            out.append("_")
            out.append(c.lower())
        else:
            out.append(c)
    return "".join(out)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes")
    return bool(value)


@dataclass(frozen=True)
class RenderSettings:
    """Presentation settings the lifecycle engine reads.

    Durations are seconds, delays are milliseconds, speeds are px/s.
    Styling (fonts, colours, boxes) is absent: it belongs to
    whatever draws the frame.
    """

    opacity: float = 1.0
    animation: str = "fade"
    display_mode: str = "centered"
    display_duration: float = 5.0
    fade_out_duration: float = 0.5
    letter_by_letter: bool = False
    letter_delay: int = 50
    sequential_word_delay: int = 200
    scroll_speed: float = 50.0
    max_scroll_width: int = 1920
    auto_scroll_enabled: bool = False
    auto_scroll_min_speed: float = 30.0
    auto_scroll_max_speed: float = 150.0
    auto_scroll_lerp_speed: float = 0.1
    text_trim_enabled: bool = True
    max_words: int = 20
    max_characters: int = 0
    trim_mode: str = "words"
    trim_from_start: bool = True

    @property
    def letter_delay_seconds(self) -> float:
        return self.letter_delay / 1000.0

    @property
    def word_delay_seconds(self) -> float:
        return self.sequential_word_delay / 1000.0

    def clamped(self) -> RenderSettings:
        """Return a validated copy: numbers clamped, unknown choices reset."""
        changes: dict[str, Any] = {}
        for name, (lo, hi) in _NUMERIC_BOUNDS.items():
            value = getattr(self, name)
            bounded = max(lo, min(hi, value))
            if bounded != value:
                changes[name] = type(getattr(RenderSettings, name))(bounded)

        for name, choices in _CHOICES.items():
            if getattr(self, name) not in choices:
                changes[name] = getattr(RenderSettings, name)

        display_mode = changes.get("display_mode", self.display_mode)
        animation = changes.get("animation", self.animation)
        if (
            display_mode in ("sequential", "scrolling")
            and self.letter_by_letter
            and animation == "letter-by-letter"
        ):
            # Letter-by-letter reveal only works in centered mode
            changes["letter_by_letter"] = False

        if not changes:
            return self
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RenderSettings:
        """Merge a settings mapping over the defaults.

        Accepts both the camelCase keys of the producer's settings payload
        and snake_case. Keys this engine does not know about (font, colour,
        box styling) are ignored. Raises ValueError on a non-numeric or non-finite
        value for a numeric field.
        """
        fields = {f.name: f for f in dataclasses.fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = key if key in fields else _camel_to_snake(key)
            if name not in fields:
                continue
            default = getattr(cls, name)
            if isinstance(default, bool):
                kwargs[name] = _as_bool(value)
            elif isinstance(default, (int, float)):
                try:
                    number = float(value)
                    if not math.isfinite(number):
                        raise ValueError("not a finite number")
                    kwargs[name] = type(default)(number)
                except (TypeError, ValueError, OverflowError) as e:
                    raise ValueError(f"Invalid value for {key!r}: {value!r}") from e
            else:
                kwargs[name] = str(value)
        return cls(**kwargs).clamped()

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)
