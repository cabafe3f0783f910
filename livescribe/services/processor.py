"""Turns a closed window into a transcription."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ..audio.resample import resample
from ..audio.types import Window
from ..audio.wav import WavFormat, encode_wav
from .display import Display
from .inference import Transcriber
from .results import TranscriptionResult
from .storage import AudioWriter, chunk_filename

LOGGER = logging.getLogger("livescribe.processor")

DEFAULT_TARGET_RATE = 16000

ResultHook = Callable[[TranscriptionResult], bool]


class SegmentProcessor:
    """Resample, encode, persist and transcribe one window.

    Failures are logged and reported as ``None``; nothing raised here may end
    the session or reach the next window. ``accept`` lets the session owner
    refuse a result (for instance one from a session that already ended), in
    which case it is not displayed either.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        *,
        target_rate: int = DEFAULT_TARGET_RATE,
        writer: Optional[AudioWriter] = None,
        display: Optional[Display] = None,
    ) -> None:
        self.transcriber = transcriber
        self.target_rate = target_rate
        self.writer = writer
        self.display = display

    async def process(self, window: Window, accept: Optional[ResultHook] = None) -> Optional[TranscriptionResult]:
        samples = window.samples()
        if samples.size == 0:
            LOGGER.debug("Window %d is empty; skipped", window.index)
            return None

        LOGGER.info(
            "Processing %d audio chunk(s) (%.1f s) from window %d",
            len(window.chunks),
            window.duration_seconds,
            window.index,
        )
        try:
            resampled = resample(samples, window.sample_rate, self.target_rate)
            payload = encode_wav(resampled, WavFormat(channels=1, sample_rate=self.target_rate, bit_depth=16))
        except Exception as exc:
            LOGGER.error("Error encoding window %d: %s", window.index, exc)
            return None

        await self._persist(window, payload)

        try:
            result = await self.transcriber.transcribe(payload)
        except Exception as exc:
            LOGGER.error("Error transcribing window %d: %s", window.index, exc)
            return None
        LOGGER.info("Transcription result for window %d: %s", window.index, result.text)

        if accept is not None and not accept(result):
            return None
        if self.display is not None:
            try:
                self.display.show(result)
            except Exception as exc:
                LOGGER.warning("Display failed for window %d: %s", window.index, exc)
        return result

    async def _persist(self, window: Window, payload: bytes) -> None:
        if self.writer is None:
            return
        filename = chunk_filename()
        try:
            path = await self.writer.write(filename, payload)
        except Exception as exc:
            LOGGER.warning("Could not save window %d to %s: %s", window.index, filename, exc)
            return
        LOGGER.info("Saved audio chunk to %s, sending for transcription...", path)


__all__ = ["DEFAULT_TARGET_RATE", "SegmentProcessor"]
