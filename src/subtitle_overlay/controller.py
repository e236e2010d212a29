from __future__ import annotations

import logging
from dataclasses import dataclass

from PyQt6.QtCore import QObject, pyqtSignal

from subtitle_overlay.lifecycle import LifecycleState, Phase, SubtitleLifecycle
from subtitle_overlay.messages import RawUpdate, SettingsSnapshot, UpdateKind
from subtitle_overlay.scheduler import QtScheduler
from subtitle_overlay.scroll_motion import ScrollMotion
from subtitle_overlay.settings import RenderSettings
from subtitle_overlay.text_window import apply_window

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderFrame:
    """Everything the overlay needs to draw one frame."""

    text: str
    opacity: float
    phase: Phase
    offset: float
    fade_seconds: float
    display_mode: str
    scroll_width: int = 0  # max width of the ticker band, scrolling mode only


class SubtitleController(QObject):
    """Qt glue between the transport reader, the lifecycle and the overlay.

    Signals:
    - frame_changed(RenderFrame): emitted on every visible change and on
      every scroll tick while scrolling
    - cleared(): the subtitle left the screen (lifecycle entered IDLE)
    """

    frame_changed = pyqtSignal(object)
    cleared = pyqtSignal()

    def __init__(self, settings: RenderSettings | None = None) -> None:
        super().__init__()
        self._settings = (settings or RenderSettings()).clamped()
        self._scheduler = QtScheduler(self)
        self._scroll = ScrollMotion()
        self._last_raw_text: str = ""
        self._lifecycle = SubtitleLifecycle(
            self._scheduler,
            self._settings,
            on_change=self._on_state_changed,
            on_clear=self._on_cleared,
        )

    @property
    def lifecycle(self) -> SubtitleLifecycle:
        return self._lifecycle

    @property
    def settings(self) -> RenderSettings:
        return self._settings

    def current_frame(self) -> RenderFrame:
        state = self._lifecycle.state
        return self._frame_for(state)

    # ------------------------------------------------------------------
    # Slots
    # ------------------------------------------------------------------

    def on_update(self, update: RawUpdate) -> None:
        if update.kind is UpdateKind.COMMITTED and update.is_empty:
            logger.debug("Dropping empty committed transcript")
            return
        if update.kind is UpdateKind.PARTIAL and update.text == self._last_raw_text:
            return
        self._last_raw_text = update.text
        self._lifecycle.handle_update(update)

    def on_settings(self, settings: SettingsSnapshot | RenderSettings) -> None:
        if isinstance(settings, SettingsSnapshot):
            settings = settings.settings
        settings = settings.clamped()
        if settings == self._settings:
            return
        logger.info(
            "Settings updated: mode=%s, display=%.1fs, fade=%.1fs",
            settings.display_mode, settings.display_duration, settings.fade_out_duration,
        )
        self._settings = settings
        self._lifecycle.update_settings(settings)
        self.frame_changed.emit(self.current_frame())

    def tick(self, delta_seconds: float) -> None:
        """Frame clock: advances the ticker offset in scrolling mode."""
        if self._settings.display_mode != "scrolling":
            return
        state = self._lifecycle.state
        if state.phase is Phase.IDLE:
            return
        before = self._scroll.offset
        self._scroll.advance(delta_seconds, apply_window(state.visible_text, self._settings), self._settings)
        if self._scroll.offset != before:
            self.frame_changed.emit(self._frame_for(state))

    def shutdown(self) -> None:
        self._lifecycle.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _frame_for(self, state: LifecycleState) -> RenderFrame:
        return RenderFrame(
            text=apply_window(state.visible_text, self._settings),
            opacity=state.opacity,
            phase=state.phase,
            offset=self._scroll.offset,
            fade_seconds=self._settings.fade_out_duration,
            display_mode=self._settings.display_mode,
            scroll_width=self._settings.max_scroll_width,
        )

    def _on_state_changed(self, state: LifecycleState) -> None:
        self.frame_changed.emit(self._frame_for(state))

    def _on_cleared(self) -> None:
        # The next identical partial must be able to open a new subtitle
        self._last_raw_text = ""
        self._scroll.reset()
        self.cleared.emit()
