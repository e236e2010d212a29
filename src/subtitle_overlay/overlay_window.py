from __future__ import annotations

import time

from PyQt6.QtCore import QPointF, QRectF, Qt, QTimer, pyqtSignal
from PyQt6.QtGui import QColor, QFont, QFontMetricsF, QGuiApplication, QPainter, QPainterPath, QPen
from PyQt6.QtWidgets import QWidget

from subtitle_overlay.controller import RenderFrame

FRAME_INTERVAL_MS = 16
FADE_IN_SECONDS = 0.1

OVERLAY_HEIGHT = 140
OVERLAY_MARGIN_BOTTOM = 40
TEXT_MARGIN_H = 48
FONT_SIZE = 40
OUTLINE_WIDTH = 4


class SubtitleOverlay(QWidget):
    """Transparent click-through window that draws the current subtitle frame.

    Painted opacity eases toward the frame opacity: over the configured fade
    duration when going down, quickly when coming up. In scrolling mode the
    text is shifted by the frame offset inside a centered band no wider than
    the configured max scroll width.
    """

    frame_tick = pyqtSignal(float)  # seconds since previous tick

    def __init__(self) -> None:
        super().__init__()
        self.setWindowFlags(
            Qt.WindowType.FramelessWindowHint
            | Qt.WindowType.WindowStaysOnTopHint
            | Qt.WindowType.Tool
            | Qt.WindowType.X11BypassWindowManagerHint
        )
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)

        self._frame: RenderFrame | None = None
        self._painted_opacity = 0.0
        self._font = QFont("Arial", FONT_SIZE)
        self._font.setBold(True)

        self._last_tick = time.monotonic()
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._on_timer)
        self._timer.start(FRAME_INTERVAL_MS)

        self._place_on_screen()

    def _place_on_screen(self) -> None:
        screen = QGuiApplication.primaryScreen()
        if screen is None:
            self.resize(1280, OVERLAY_HEIGHT)
            return
        geo = screen.availableGeometry()
        self.setGeometry(
            geo.x(),
            geo.y() + geo.height() - OVERLAY_HEIGHT - OVERLAY_MARGIN_BOTTOM,
            geo.width(),
            OVERLAY_HEIGHT,
        )

    # ------------------------------------------------------------------
    # Frame handling
    # ------------------------------------------------------------------

    def show_frame(self, frame: RenderFrame) -> None:
        self._frame = frame
        self.update()

    def clear(self) -> None:
        self._frame = None
        self._painted_opacity = 0.0
        self.update()

    def _on_timer(self) -> None:
        now = time.monotonic()
        dt = now - self._last_tick
        self._last_tick = now
        self.frame_tick.emit(dt)

        target = self._frame.opacity if self._frame else 0.0
        if self._painted_opacity == target:
            return
        if target < self._painted_opacity:
            duration = self._frame.fade_seconds if self._frame else 0.0
        else:
            duration = FADE_IN_SECONDS
        step = dt / duration if duration > 0 else 1.0
        if target < self._painted_opacity:
            self._painted_opacity = max(target, self._painted_opacity - step)
        else:
            self._painted_opacity = min(target, self._painted_opacity + step)
        self.update()

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def paintEvent(self, event) -> None:
        frame = self._frame
        if frame is None or not frame.text or self._painted_opacity <= 0.0:
            return

        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setOpacity(self._painted_opacity)

        metrics = QFontMetricsF(self._font)
        text_width = metrics.horizontalAdvance(frame.text)
        baseline = (self.height() + metrics.ascent() - metrics.descent()) / 2

        if frame.display_mode == "scrolling":
            # Ticker band: full width minus margins, capped, centered
            band = self.width() - 2 * TEXT_MARGIN_H
            if frame.scroll_width > 0:
                band = min(band, frame.scroll_width)
            left = (self.width() - band) / 2
            painter.setClipRect(QRectF(left, 0, band, self.height()))
            x = left + frame.offset
        elif frame.display_mode == "sequential":
            x = TEXT_MARGIN_H
        else:
            x = (self.width() - text_width) / 2

        path = QPainterPath()
        path.addText(QPointF(x, baseline), self._font, frame.text)

        # Outline first, fill on top
        painter.setPen(QPen(QColor(0, 0, 0), OUTLINE_WIDTH))
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(path)
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(QColor(255, 255, 255))
        painter.drawPath(path)
        painter.end()
