"""Typed messages at the transport boundary.

The producer sends two kinds of JSON payloads on the same channel::

    {"type": "partial", "text": "Hello wor"}
    {"type": "committed", "text": "Hello world."}
    {"type": "settings", "settings": {"displayDuration": 3, ...}}

Only transcript messages become RawUpdate; a settings snapshot (sent again
on every reconnect) must never be mistaken for text.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from subtitle_overlay.settings import RenderSettings


class MessageError(ValueError):
    """Raised for payloads that are neither a transcript nor a settings message."""


class UpdateKind(str, Enum):
    PARTIAL = "partial"
    COMMITTED = "committed"


@dataclass(frozen=True)
class RawUpdate:
    kind: UpdateKind
    text: str

    @property
    def is_empty(self) -> bool:
        return not self.text or not self.text.strip()

    @classmethod
    def partial(cls, text: str) -> RawUpdate:
        return cls(UpdateKind.PARTIAL, text)

    @classmethod
    def committed(cls, text: str) -> RawUpdate:
        return cls(UpdateKind.COMMITTED, text)


@dataclass(frozen=True)
class SettingsSnapshot:
    settings: RenderSettings


Message = Union[RawUpdate, SettingsSnapshot]


def parse_message(payload: Mapping[str, Any]) -> Message:
    """Convert a decoded payload into a RawUpdate or SettingsSnapshot."""
    if not isinstance(payload, Mapping):
        raise MessageError(f"Expected an object, got {type(payload).__name__}")

    msg_type = payload.get("type")
    if msg_type in (UpdateKind.PARTIAL.value, UpdateKind.COMMITTED.value):
        text = payload.get("text", "")
        if text is None:
            text = ""
        if not isinstance(text, str):
            raise MessageError(f"Transcript text must be a string, got {type(text).__name__}")
        return RawUpdate(UpdateKind(msg_type), text)

    if msg_type == "settings":
        data = payload.get("settings")
        if not isinstance(data, Mapping):
            raise MessageError("Settings message without a settings object")
        try:
            return SettingsSnapshot(RenderSettings.from_dict(data))
        except ValueError as e:
            raise MessageError(str(e)) from e

    raise MessageError(f"Unknown message type: {msg_type!r}")


def parse_line(line: str) -> Message:
    """Decode one JSON line from the transport."""
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        raise MessageError(f"Invalid JSON: {e}") from e
    return parse_message(payload)
