"""Cancelable one-shot timers for the lifecycle engine.

The engine never sleeps or spawns threads: it asks a Scheduler to call it
back later and keeps the returned handle so the phase that owns the timer
can cancel it on the way out.
"""

from __future__ import annotations

from typing import Callable, Protocol

from PyQt6.QtCore import QObject, QTimer


class TimerHandle(Protocol):
    """A pending callback that can be cancelled."""

    def cancel(self) -> None:
        ...

    @property
    def active(self) -> bool:
        """True until the callback has fired or been cancelled."""
        ...


class Scheduler(Protocol):
    """Protocol for timer backends."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run *callback* once after *delay* seconds."""
        ...


class QtTimerHandle:
    """Single-shot QTimer wrapper; cancel() guarantees the callback never runs."""

    def __init__(self, parent: QObject, delay: float, callback: Callable[[], None]) -> None:
        self._callback: Callable[[], None] | None = callback
        self._timer = QTimer(parent)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)
        self._timer.start(max(0, int(round(delay * 1000))))

    @property
    def active(self) -> bool:
        return self._callback is not None

    def cancel(self) -> None:
        self._callback = None
        self._timer.stop()
        self._timer.deleteLater()

    def _fire(self) -> None:
        callback = self._callback
        self._callback = None
        self._timer.deleteLater()
        if callback is not None:
            callback()


class QtScheduler(QObject):
    """Scheduler backed by the Qt event loop of the calling thread."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> QtTimerHandle:
        return QtTimerHandle(self, delay, callback)
