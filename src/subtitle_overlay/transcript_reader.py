from __future__ import annotations

import codecs
import io
import logging
import os
import select
from typing import Iterator, TextIO

from PyQt6.QtCore import QThread, pyqtSignal

from subtitle_overlay.messages import MessageError, RawUpdate, SettingsSnapshot, parse_line

logger = logging.getLogger(__name__)

POLL_INTERVAL_S = 0.1
READ_CHUNK = 65536
STOP_TIMEOUT_MS = 3000


class TranscriptReader(QThread):
    """Background thread that reads JSON-line messages from a text stream.

    One message per line, in the producer's wire format (see messages.py).
    Signals are queued onto the GUI thread, so the lifecycle only ever sees
    one event at a time, in arrival order.

    Streams backed by a file descriptor (stdin, pipes, files) are polled
    with select(), so stop() ends the loop even while the producer is
    silent. In-memory streams are simply iterated.

    Signals:
    - update_received(RawUpdate): transcript text
    - settings_received(SettingsSnapshot): a full settings snapshot
    - error_occurred(str): a malformed line (reading continues) or a read failure
    - finished_reading(): end of stream or stopped
    """

    update_received = pyqtSignal(object)
    settings_received = pyqtSignal(object)
    error_occurred = pyqtSignal(str)
    finished_reading = pyqtSignal()

    def __init__(self, stream: TextIO, delay_ms: int = 0) -> None:
        super().__init__()
        self._stream = stream
        self._delay_ms = max(0, delay_ms)
        self._running = False
        self._line_count = 0

    def run(self) -> None:
        """Main loop: read line -> parse -> emit."""
        self._running = True
        logger.info("Transcript reader started (delay=%dms)", self._delay_ms)

        try:
            for line in self._lines():
                if not self._running:
                    break
                self._handle_line(line)
                if self._delay_ms:
                    self.msleep(self._delay_ms)
        except OSError as e:
            logger.error("Reading transcript failed: %s", e)
            self.error_occurred.emit(f"read failed: {e}")

        logger.info("Transcript reader finished after %d lines", self._line_count)
        self.finished_reading.emit()

    def stop(self) -> bool:
        """Stop the read loop and wait for the thread to finish.

        Returns False if the thread did not finish within the timeout.
        """
        self._running = False
        if not self.isRunning():
            return True
        finished = self.wait(STOP_TIMEOUT_MS)
        if not finished:
            logger.warning("Transcript reader did not stop within %dms", STOP_TIMEOUT_MS)
        return finished

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _handle_line(self, line: str) -> None:
        self._line_count += 1
        line = line.strip()
        if not line:
            return

        try:
            message = parse_line(line)
        except MessageError as e:
            logger.warning("Skipping line %d: %s", self._line_count, e)
            self.error_occurred.emit(f"line {self._line_count}: {e}")
            return

        if isinstance(message, SettingsSnapshot):
            self.settings_received.emit(message)
        elif isinstance(message, RawUpdate):
            self.update_received.emit(message)

    def _fileno(self) -> int | None:
        try:
            return self._stream.fileno()
        except (AttributeError, OSError, io.UnsupportedOperation):
            return None

    def _lines(self) -> Iterator[str]:
        fd = self._fileno()
        if fd is None:
            yield from self._stream
            return

        encoding = getattr(self._stream, "encoding", None) or "utf-8"
        decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        pending = ""
        while self._running:
            ready, _, _ = select.select([fd], [], [], POLL_INTERVAL_S)
            if not ready:
                continue
            chunk = os.read(fd, READ_CHUNK)
            if not chunk:
                break
            pending += decoder.decode(chunk)
            *lines, pending = pending.split("\n")
            yield from lines

        pending += decoder.decode(b"", final=True)
        if pending and self._running:
            yield pending
