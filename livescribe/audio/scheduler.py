"""Wall-clock windowing of a live chunk stream."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Set

import numpy as np

from .capture import CaptureSource
from .types import SchedulerState, Window

LOGGER = logging.getLogger("livescribe.scheduler")

DEFAULT_INTERVAL_SECONDS = 30.0

WindowHandler = Callable[[Window], Awaitable[Any]]
ErrorHandler = Callable[[BaseException], None]


class Clock(Protocol):
    def monotonic(self) -> float: ...

    async def sleep(self, delay: float) -> None: ...


class LoopClock:
    """Time as seen by the running asyncio loop."""

    def monotonic(self) -> float:
        return asyncio.get_running_loop().time()

    async def sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)


class WindowScheduler:
    """Buffers capture chunks and hands one window to ``on_window`` per tick.

    Chunks are only appended while running; all processing happens in a task
    spawned per tick that the scheduler never awaits, so a slow handler
    cannot hold up accumulation of the next window or the next tick. ``stop``
    drops whatever was buffered since the last tick.
    """

    def __init__(
        self,
        source: CaptureSource,
        on_window: WindowHandler,
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        on_error: Optional[ErrorHandler] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Interval must be positive (got {interval})")
        self.source = source
        self.on_window = on_window
        self.interval = float(interval)
        self.on_error = on_error
        self.clock = clock or LoopClock()
        self.state = SchedulerState.IDLE
        self._buffer: List[np.ndarray] = []
        self._ticks = 0
        self._pump_task: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    @property
    def buffered_chunks(self) -> int:
        return len(self._buffer)

    @property
    def pending(self) -> int:
        return len(self._inflight)

    def start(self) -> bool:
        if self.running:
            return False
        self._buffer = []
        self._ticks = 0
        self.source.open()
        self.state = SchedulerState.RUNNING
        self._pump_task = asyncio.create_task(self._pump(), name="livescribe-capture-pump")
        self._timer_task = asyncio.create_task(self._run_timer(), name="livescribe-interval-timer")
        LOGGER.debug("Scheduler started (%.1f s interval)", self.interval)
        return True

    def stop(self, *, cancel_pending: bool = False) -> bool:
        if not self.running:
            return False
        self.state = SchedulerState.IDLE
        current = asyncio.current_task()
        for task in (self._pump_task, self._timer_task):
            if task is not None and task is not current:
                task.cancel()
        self._pump_task = None
        self._timer_task = None
        discarded = len(self._buffer)
        self._buffer = []
        try:
            self.source.close()
        except Exception as exc:
            LOGGER.warning("Failed to close capture source: %s", exc)
        if cancel_pending:
            for task in list(self._inflight):
                task.cancel()
        if discarded:
            LOGGER.info("Discarded %d buffered chunk(s) of the unfinished window", discarded)
        LOGGER.debug("Scheduler stopped")
        return True

    def tick(self) -> Optional[Window]:
        """Close the current window and hand it off without waiting for it."""
        if not self.running:
            return None
        chunks, self._buffer = self._buffer, []
        self._ticks += 1
        window = Window(
            index=self._ticks,
            chunks=tuple(chunks),
            sample_rate=self.source.sample_rate,
            closed_at=datetime.now(timezone.utc),
        )
        task = asyncio.create_task(self.on_window(window), name=f"livescribe-window-{window.index}")
        self._inflight.add(task)
        task.add_done_callback(self._window_done)
        return window

    async def drain(self) -> None:
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _pump(self) -> None:
        try:
            while True:
                chunk = await self.source.read()
                self._buffer.append(chunk)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOGGER.error("Error in audio capture: %s", exc)
            self.stop()
            if self.on_error is not None:
                self.on_error(exc)

    async def _run_timer(self) -> None:
        deadline = self.clock.monotonic()
        while True:
            deadline += self.interval
            await self.clock.sleep(max(0.0, deadline - self.clock.monotonic()))
            self.tick()

    def _window_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Window handler %s failed: %s", task.get_name(), exc, exc_info=exc)


__all__ = ["Clock", "DEFAULT_INTERVAL_SECONDS", "LoopClock", "WindowScheduler"]
