"""Subtitle lifecycle: turns a revising transcript stream into stable subtitles.

Phases::

    IDLE -> PRINTING -> WAITING -> FADING -> IDLE
               ^           |          |
               +-----------+----------+   (new text interrupts)

- PRINTING: the reveal animation grows visible_text toward target_text
  (instantly, per character or per word).
- WAITING: fully revealed, display timer running.
- FADING: opacity dropped to 0, fade timer running. New text here is a
  "hard cut": the fading text is folded into history and only the part
  after it is shown.
- IDLE: nothing on screen. Entering IDLE fires on_clear exactly once.

Every incoming update is diffed against the committed history so words that
already faded out are never shown twice. The engine performs no I/O and owns
no threads; timers come from an injected Scheduler and each phase owns at
most one of them. A transition always cancels the timer of the phase being
left before anything else happens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from subtitle_overlay.artifact_filter import (
    is_hallucination,
    is_punctuation_only,
    strip_leading_punctuation,
)
from subtitle_overlay.messages import RawUpdate, UpdateKind
from subtitle_overlay.scheduler import Scheduler, TimerHandle
from subtitle_overlay.settings import RenderSettings
from subtitle_overlay.text_differ import resolve_new_segment
from subtitle_overlay.text_normalizer import split_words

logger = logging.getLogger(__name__)


# Fade timer floor so a 0 s fade still resolves through the timer path.
MIN_FADE_SECONDS = 0.1


class Phase(str, Enum):
    IDLE = "IDLE"
    PRINTING = "PRINTING"
    WAITING = "WAITING"
    FADING = "FADING"


class RevealMode(Enum):
    INSTANT = "instant"
    CHARACTER = "character"
    WORD = "word"


def reveal_mode_for(settings: RenderSettings) -> RevealMode:
    """Sequential presentation reveals by word; letter-by-letter by character."""
    if settings.display_mode == "sequential":
        return RevealMode.WORD
    if settings.letter_by_letter and settings.animation == "letter-by-letter":
        return RevealMode.CHARACTER
    return RevealMode.INSTANT


def _reveal_inputs(settings: RenderSettings) -> tuple:
    return (
        reveal_mode_for(settings),
        settings.display_duration,
        settings.letter_delay,
        settings.sequential_word_delay,
    )


@dataclass(frozen=True)
class LifecycleState:
    phase: Phase
    target_text: str
    visible_text: str
    opacity: float
    animation_cursor: int


@dataclass
class _ActivePhase:
    """Current phase plus the single timer it owns (if any)."""

    phase: Phase
    timer: TimerHandle | None = None


StateCallback = Callable[[LifecycleState], None]
ClearCallback = Callable[[], None]


class SubtitleLifecycle:
    """One instance per logical transcript stream."""

    def __init__(
        self,
        scheduler: Scheduler,
        settings: RenderSettings | None = None,
        on_change: StateCallback | None = None,
        on_clear: ClearCallback | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._settings = (settings or RenderSettings()).clamped()
        self._on_change = on_change
        self._on_clear = on_clear

        self._active = _ActivePhase(Phase.IDLE)
        self._history: str = ""
        self._target: str = ""
        self._visible: str = ""
        self._opacity: float = 0.0
        self._cursor: int = 0
        self._reveal_mode = reveal_mode_for(self._settings)

        self._closed = False
        self._last_notified: tuple[Phase, str, float] = (Phase.IDLE, "", 0.0)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._active.phase

    @property
    def history(self) -> str:
        return self._history

    @property
    def settings(self) -> RenderSettings:
        return self._settings

    @property
    def state(self) -> LifecycleState:
        return LifecycleState(
            phase=self._active.phase,
            target_text=self._target,
            visible_text=self._visible,
            opacity=self._opacity,
            animation_cursor=self._cursor,
        )

    def update_settings(self, settings: RenderSettings) -> None:
        """Use *settings* for every scheduling decision from now on.

        While PRINTING, a change to anything that drives the reveal restarts
        it from the current progress, so a pinned caption picks up a new
        display duration and a reveal switched to instant completes at once.
        WAITING and FADING timers keep their duration.
        """
        old = self._settings
        self._settings = settings.clamped()
        if self._closed or self._active.phase is not Phase.PRINTING:
            return
        if _reveal_inputs(old) == _reveal_inputs(self._settings):
            return
        logger.debug("Reveal settings changed while printing -> restarting reveal")
        self._start_reveal()
        self._notify()

    def handle_update(self, update: RawUpdate) -> bool:
        """Feed one transcript update. Returns True if it changed the subtitle."""
        if self._closed:
            return False

        if update.is_empty:
            if update.kind is UpdateKind.COMMITTED:
                logger.debug("Ignoring empty committed update (VAD artifact)")
            return False

        raw = update.text
        phase = self._active.phase

        segment = resolve_new_segment(self._history, raw)

        if is_hallucination(segment):
            logger.debug("Ignoring artifact update: %r", segment[:80])
            return False

        if phase is Phase.IDLE and is_punctuation_only(segment):
            logger.debug("Ignoring punctuation-only update while idle: %r", segment)
            return False

        if self._history and segment == raw:
            logger.debug("No overlap with history, new utterance -> history reset")
            self._history = ""

        segment = strip_leading_punctuation(segment)
        if not segment:
            return False

        if segment == self._target:
            return False

        if phase is Phase.FADING:
            self._hard_cut(raw)
        elif phase is Phase.WAITING:
            logger.debug("WAITING interrupted -> PRINTING")
            self._transition(Phase.PRINTING)
            self._replace_target(segment)
            self._start_reveal()
        elif phase is Phase.IDLE:
            logger.debug("IDLE -> PRINTING: %r", segment[:80])
            self._transition(Phase.PRINTING)
            self._opacity = self._settings.opacity
            self._cursor = 0
            self._replace_target(segment)
            self._start_reveal()
        else:
            self._replace_target(segment)
            self._start_reveal()

        self._notify()
        return True

    def close(self) -> None:
        """Cancel all timers. No callbacks fire afterwards."""
        self._closed = True
        self._cancel_timer()
        self._on_change = None
        self._on_clear = None

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _transition(self, phase: Phase) -> None:
        old = self._active
        if old.timer is not None:
            old.timer.cancel()
        self._active = _ActivePhase(phase)
        if old.phase is not phase:
            logger.debug("Phase %s -> %s", old.phase.value, phase.value)

    def _install_timer(self, delay: float, callback: Callable[[], None]) -> None:
        self._cancel_timer()
        self._active.timer = self._scheduler.call_later(delay, callback)

    def _cancel_timer(self) -> None:
        timer = self._active.timer
        self._active.timer = None
        if timer is not None:
            timer.cancel()

    def _hard_cut(self, raw: str) -> None:
        """New text arrived while fading: commit the fading text, show the rest."""
        logger.debug("New text during fade -> hard cut")
        self._cancel_timer()
        self._history += self._target

        segment = resolve_new_segment(self._history, raw)
        if self._history and segment == raw:
            self._history = ""
        segment = strip_leading_punctuation(segment)

        if not segment or is_hallucination(segment):
            logger.debug("Nothing new after hard cut -> IDLE")
            self._enter_idle()
            return

        self._transition(Phase.PRINTING)
        self._target = segment
        self._visible = ""
        self._cursor = 0
        self._opacity = self._settings.opacity
        self._start_reveal()

    def _enter_idle(self) -> None:
        self._transition(Phase.IDLE)
        self._target = ""
        self._visible = ""
        self._cursor = 0
        self._opacity = 0.0
        self._notify()
        if self._on_clear is not None:
            self._on_clear()

    # ------------------------------------------------------------------
    # Reveal animation
    # ------------------------------------------------------------------

    def _replace_target(self, text: str) -> None:
        """Swap the reveal target, keeping progress (clamped to the new length)."""
        self._sync_reveal_mode()
        self._target = text
        total = self._unit_count()
        if self._cursor > total:
            self._cursor = total
        self._visible = self._prefix(self._cursor)

    def _sync_reveal_mode(self) -> None:
        """Adopt the reveal mode of the current settings.

        The cursor counts words in WORD mode and characters otherwise, so it
        is re-measured from what is already visible when the unit changes.
        """
        mode = reveal_mode_for(self._settings)
        if mode is self._reveal_mode:
            return
        self._reveal_mode = mode
        if mode is RevealMode.WORD:
            self._cursor = len(split_words(self._visible))
        else:
            self._cursor = len(self._visible)

    def _unit_count(self) -> int:
        if self._reveal_mode is RevealMode.WORD:
            return len(split_words(self._target))
        return len(self._target)

    def _prefix(self, units: int) -> str:
        if self._reveal_mode is RevealMode.WORD:
            return " ".join(split_words(self._target)[:units])
        return self._target[:units]

    def _step_delay(self) -> float:
        if self._reveal_mode is RevealMode.WORD:
            return self._settings.word_delay_seconds
        return self._settings.letter_delay_seconds

    def _start_reveal(self) -> None:
        self._sync_reveal_mode()
        if self._reveal_mode is RevealMode.INSTANT:
            self._visible = self._target
            self._cursor = len(self._target)
            self._finish_reveal()
            return
        self._install_timer(self._step_delay(), self._reveal_step)

    def _reveal_step(self) -> None:
        if self._closed or self._active.phase is not Phase.PRINTING:
            return
        self._active.timer = None

        total = self._unit_count()
        if self._cursor < total:
            self._cursor += 1
        elif self._cursor > total:
            self._cursor = total
        self._visible = self._prefix(self._cursor)

        if self._cursor >= total:
            self._finish_reveal()
        else:
            self._install_timer(self._step_delay(), self._reveal_step)
        self._notify()

    def _finish_reveal(self) -> None:
        duration = self._settings.display_duration
        if duration <= 0:
            # Pinned caption: stays in PRINTING until new text supersedes it
            self._cancel_timer()
            return
        self._transition(Phase.WAITING)
        self._install_timer(duration, self._start_fading)

    # ------------------------------------------------------------------
    # Display / fade timers
    # ------------------------------------------------------------------

    def _start_fading(self) -> None:
        if self._closed or self._active.phase is not Phase.WAITING:
            return
        self._active.timer = None
        self._transition(Phase.FADING)
        self._opacity = 0.0
        fade = self._settings.fade_out_duration
        self._install_timer(fade if fade > 0 else MIN_FADE_SECONDS, self._finish_fade)
        self._notify()

    def _finish_fade(self) -> None:
        if self._closed or self._active.phase is not Phase.FADING:
            return
        self._active.timer = None
        logger.debug("Fade complete, committing %r to history", self._target[:80])
        self._history += self._target
        self._enter_idle()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def _notify(self) -> None:
        current = (self._active.phase, self._visible, self._opacity)
        if current == self._last_notified:
            return
        self._last_notified = current
        if self._on_change is not None:
            self._on_change(self.state)
