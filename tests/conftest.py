"""Shared fixtures: a manual clock that stands in for the Qt event loop."""

from __future__ import annotations

from typing import Callable

import pytest


class FakeTimer:
    def __init__(self, due: float, seq: int, callback: Callable[[], None]) -> None:
        self.due = due
        self.seq = seq
        self._callback: Callable[[], None] | None = callback

    @property
    def active(self) -> bool:
        return self._callback is not None

    def cancel(self) -> None:
        self._callback = None

    def fire(self) -> None:
        callback = self._callback
        self._callback = None
        if callback is not None:
            callback()


class FakeScheduler:
    """Timers only fire when the test calls advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[FakeTimer] = []
        self._seq = 0

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        self._seq += 1
        timer = FakeTimer(self.now + max(0.0, delay), self._seq, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self._timers if t.active]

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in time order."""
        end = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= end + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self.now = max(self.now, timer.due)
            timer.fire()
        self.now = end
        self._timers = self.pending

    def run_all(self, limit: int = 10_000) -> None:
        """Fire everything until no timer is left."""
        for _ in range(limit):
            pending = self.pending
            if not pending:
                return
            timer = min(pending, key=lambda t: (t.due, t.seq))
            self.now = max(self.now, timer.due)
            timer.fire()
        raise AssertionError("timers keep rescheduling")


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
