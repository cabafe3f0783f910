"""Transcription result model and display-text resolution."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict

NO_TRANSCRIPTION = "(No transcription)"


class TranscriptionResult(BaseModel):
    """Service response plus the measured round trip in milliseconds.

    Fields the service adds beyond ``text`` and ``confidence`` are kept as
    extras and survive ``model_dump``.
    """

    model_config = ConfigDict(extra="allow")

    text: Any = None
    confidence: float | None = None
    duration: float = 0.0

    @property
    def extras(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class TextKind(str, Enum):
    PLAIN = "plain"
    SEGMENTS = "segments"
    RAW = "raw"
    EMPTY = "empty"


@dataclass(frozen=True, slots=True)
class DisplayText:
    kind: TextKind
    value: str


def resolve_text(value: Any) -> DisplayText:
    """Collapse the service's ``text`` field into something printable.

    Strings are shown as-is, lists of ``{"text": ...}`` records are joined
    with single spaces and anything else is JSON-stringified.
    """
    if value is None or value == "" or value == []:
        return DisplayText(TextKind.EMPTY, NO_TRANSCRIPTION)
    if isinstance(value, str):
        return DisplayText(TextKind.PLAIN, value)
    if isinstance(value, list) and all(isinstance(item, dict) and "text" in item for item in value):
        joined = " ".join(str(item["text"]) for item in value)
        return DisplayText(TextKind.SEGMENTS, joined)
    return DisplayText(TextKind.RAW, json.dumps(value, ensure_ascii=False, default=str))


__all__ = ["DisplayText", "NO_TRANSCRIPTION", "TextKind", "TranscriptionResult", "resolve_text"]
