"""Start/stop control of an interval recording session."""

from __future__ import annotations

import logging
from typing import Awaitable, List, Optional, Tuple

from ..audio.capture import CaptureSource
from ..audio.scheduler import DEFAULT_INTERVAL_SECONDS, Clock, WindowScheduler
from ..audio.types import Window
from .processor import SegmentProcessor
from .results import TranscriptionResult

LOGGER = logging.getLogger("livescribe.session")


class SessionController:
    """Owns the run state, the result list and the scheduler.

    Each ``start_session`` bumps a generation number. A window carries the
    generation it was recorded in, and its result is dropped if a newer
    session has started by the time transcription finishes. Results are
    appended in completion order, which need not match window order.
    """

    def __init__(
        self,
        source: CaptureSource,
        processor: SegmentProcessor,
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Optional[Clock] = None,
    ) -> None:
        self.processor = processor
        self.scheduler = WindowScheduler(
            source,
            self._on_window,
            interval=interval,
            on_error=self._on_stream_error,
            clock=clock,
        )
        self.generation = 0
        self.last_error: Optional[BaseException] = None
        self._results: List[TranscriptionResult] = []

    @property
    def is_running(self) -> bool:
        return self.scheduler.running

    @property
    def results(self) -> Tuple[TranscriptionResult, ...]:
        return tuple(self._results)

    def start_session(self) -> bool:
        if self.is_running:
            return False
        self.scheduler.start()
        self.generation += 1
        self._results = []
        self.last_error = None
        LOGGER.info("Starting interval recording (%g second intervals)", self.scheduler.interval)
        return True

    def stop_session(self, *, cancel_pending: bool = False) -> bool:
        if not self.scheduler.stop(cancel_pending=cancel_pending):
            return False
        LOGGER.info("Recording stopped, %d transcription result(s)", len(self._results))
        return True

    async def wait_idle(self) -> None:
        await self.scheduler.drain()

    def _on_window(self, window: Window) -> Awaitable[Optional[TranscriptionResult]]:
        # Called synchronously at tick time, so the window keeps the generation it was recorded in.
        generation = self.generation
        return self.processor.process(window, accept=lambda result: self._accept(generation, result))

    def _accept(self, generation: int, result: TranscriptionResult) -> bool:
        if generation != self.generation:
            LOGGER.info("Discarding result from session %d (current session is %d)", generation, self.generation)
            return False
        self._results.append(result)
        return True

    def _on_stream_error(self, exc: BaseException) -> None:
        self.last_error = exc
        LOGGER.error("Recording stopped after capture failure: %s", exc)


__all__ = ["SessionController"]
