from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import TextIO

from PyQt6.QtWidgets import QApplication

from subtitle_overlay.controller import SubtitleController
from subtitle_overlay.logging_setup import configure_logging
from subtitle_overlay.overlay_window import SubtitleOverlay
from subtitle_overlay.settings import RenderSettings, is_debug_enabled
from subtitle_overlay.transcript_reader import TranscriptReader

logger = logging.getLogger(__name__)


def load_settings(path: str | None) -> RenderSettings:
    if not path:
        return RenderSettings()
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    # Accept both a bare settings object and a {"settings": {...}} message
    if isinstance(data.get("settings"), dict):
        data = data["settings"]
    return RenderSettings.from_dict(data)


class App:
    def __init__(self, stream: TextIO, settings: RenderSettings, replay_delay_ms: int = 0) -> None:
        self._qt_app = QApplication(sys.argv)
        self._qt_app.setApplicationName("SubtitleOverlay")
        self._qt_app.setOrganizationName("SubtitleOverlay")

        self._stream = stream
        self._reader = TranscriptReader(stream, replay_delay_ms)
        self._controller = SubtitleController(settings)
        self._overlay = SubtitleOverlay()

        self._connect_signals()

    def _connect_signals(self) -> None:
        r = self._reader
        c = self._controller
        o = self._overlay

        # Transport -> lifecycle
        r.update_received.connect(c.on_update)
        r.settings_received.connect(c.on_settings)
        r.error_occurred.connect(lambda msg: logger.warning("Transport error: %s", msg))
        r.finished_reading.connect(self._on_finished_reading)

        # Lifecycle -> overlay
        c.frame_changed.connect(o.show_frame)
        c.cleared.connect(o.clear)

        # Frame clock -> scroll motion
        o.frame_tick.connect(c.tick)

    def _on_finished_reading(self) -> None:
        # Keep the last subtitle on screen until it fades out on its own
        logger.info("Input closed; overlay stays up until the window is closed")

    def run(self) -> int:
        self._overlay.show()
        self._overlay.show_frame(self._controller.current_frame())
        self._reader.start()
        exit_code = self._qt_app.exec()

        # Cleanup
        self._reader.stop()
        self._controller.shutdown()
        if self._stream is not sys.stdin:
            self._stream.close()
        return exit_code


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="subtitle-overlay",
        description="Show a live transcript stream (JSON lines) as on-screen subtitles.",
    )
    parser.add_argument(
        "--input", "-i",
        help="JSON-lines file to read instead of stdin",
    )
    parser.add_argument(
        "--settings", "-s",
        help="JSON file with render settings (camelCase or snake_case keys)",
    )
    parser.add_argument(
        "--replay-delay-ms",
        type=int,
        default=0,
        help="pause between input lines, for replaying a recorded session",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="verbose logging (same as SUBTITLE_OVERLAY_DEBUG=1)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    configure_logging(args.debug or is_debug_enabled())

    try:
        settings = load_settings(args.settings)
    except (OSError, ValueError) as e:
        logger.error("Could not load settings: %s", e)
        sys.exit(2)

    if args.input:
        try:
            stream: TextIO = open(args.input, encoding="utf-8")  # noqa: SIM115
        except OSError as e:
            logger.error("Could not open input: %s", e)
            sys.exit(2)
    else:
        stream = sys.stdin

    app = App(stream, settings, args.replay_delay_ms)
    sys.exit(app.run())
