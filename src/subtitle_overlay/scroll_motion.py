"""Horizontal offset for the "ticker" (scrolling) presentation mode.

Driven by the frame clock: each advance() moves the text left by
speed * dt. With adaptive scrolling the speed eases toward a target that
grows with the amount of text on screen, so long captions catch up without
jumping.
"""

from __future__ import annotations

from dataclasses import dataclass

from subtitle_overlay.settings import RenderSettings

# Text length (characters) at which adaptive speed reaches its maximum.
ADAPTIVE_REFERENCE_CHARS = 200


@dataclass
class ScrollState:
    offset: float = 0.0
    current_speed: float = 0.0


def adaptive_target_speed(text: str, settings: RenderSettings) -> float:
    lo = settings.auto_scroll_min_speed
    hi = max(lo, settings.auto_scroll_max_speed)
    ratio = min(1.0, len(text) / ADAPTIVE_REFERENCE_CHARS)
    return lo + (hi - lo) * ratio


class ScrollMotion:
    def __init__(self) -> None:
        self.state = ScrollState()
        self._text: str | None = None
        self._mode: str | None = None
        self._seeded = False

    @property
    def offset(self) -> float:
        return self.state.offset

    def reset(self) -> None:
        self.state = ScrollState()
        self._seeded = False

    def advance(self, delta_seconds: float, text: str, settings: RenderSettings) -> float:
        """Advance one frame and return the new offset (pixels, <= 0)."""
        if text != self._text or settings.display_mode != self._mode:
            self._text = text
            self._mode = settings.display_mode
            self.reset()

        if settings.display_mode != "scrolling" or not text:
            return self.state.offset

        if not self._seeded:
            # First frame after a change only seeds timing
            self._seeded = True
            self.state.current_speed = (
                settings.auto_scroll_min_speed
                if settings.auto_scroll_enabled
                else settings.scroll_speed
            )
            return self.state.offset

        if settings.auto_scroll_enabled:
            target = adaptive_target_speed(text, settings)
            speed = self.state.current_speed
            speed += (target - speed) * settings.auto_scroll_lerp_speed
        else:
            speed = settings.scroll_speed
        self.state.current_speed = speed

        self.state.offset -= speed * max(0.0, delta_seconds)
        return self.state.offset
