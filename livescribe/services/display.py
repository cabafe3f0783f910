"""Console rendering of transcription results."""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Optional, Protocol, TextIO

from .results import TranscriptionResult, resolve_text


class Display(Protocol):
    def show(self, result: TranscriptionResult) -> None: ...


class ConsoleDisplay:
    def __init__(self, stream: Optional[TextIO] = None, *, show_duration: bool = True) -> None:
        self.stream = stream or sys.stdout
        self.show_duration = show_duration
        self.shown = 0

    def show(self, result: TranscriptionResult) -> None:
        text = resolve_text(result.text)
        line = f"[{datetime.now().strftime('%H:%M:%S')}] {text.value}"
        if self.show_duration:
            line += f"  ({result.duration:.0f} ms)"
        print(line, file=self.stream, flush=True)
        self.shown += 1


__all__ = ["ConsoleDisplay", "Display"]
