"""Push-based capture sources feeding the window scheduler."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Protocol

import numpy as np

from ..errors import LiveScribeError

try:  # Optional dependency; microphone capture is unavailable without it.
    import sounddevice as sd
except Exception:  # pragma: no cover - PortAudio missing on the host
    sd = None

LOGGER = logging.getLogger("livescribe.capture")

_END_OF_STREAM = object()


class CaptureError(LiveScribeError):
    pass


class CaptureStreamEnded(CaptureError):
    pass


class CaptureSource(Protocol):
    sample_rate: int

    def open(self) -> None: ...

    def close(self) -> None: ...

    async def read(self) -> np.ndarray: ...


class QueueCaptureSource:
    """Chunk source backed by an asyncio queue.

    Producers call ``push`` from the event loop or ``push_threadsafe`` from
    any other thread. Every ``open`` starts from an empty queue, so chunks
    left over from a previous run never leak into the next one.
    """

    def __init__(self, sample_rate: int) -> None:
        self.sample_rate = sample_rate
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def is_open(self) -> bool:
        return self._queue is not None

    def open(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()

    def close(self) -> None:
        self._queue = None
        self._loop = None

    def push(self, chunk: np.ndarray) -> bool:
        return self._post(self._to_mono(chunk))

    def push_threadsafe(self, chunk: np.ndarray) -> None:
        self._post_threadsafe(self._to_mono(chunk))

    def fail(self, exc: BaseException) -> bool:
        return self._post(exc)

    def end(self) -> bool:
        return self._post(_END_OF_STREAM)

    def end_threadsafe(self) -> None:
        self._post_threadsafe(_END_OF_STREAM)

    async def read(self) -> np.ndarray:
        queue = self._queue
        if queue is None:
            raise CaptureError("Capture source is not open")
        item = await queue.get()
        if item is _END_OF_STREAM:
            raise CaptureStreamEnded("Capture stream ended unexpectedly")
        if isinstance(item, BaseException):
            raise item
        return item

    def _post(self, item: Any) -> bool:
        queue = self._queue
        if queue is None:
            return False
        queue.put_nowait(item)
        return True

    def _post_threadsafe(self, item: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._post, item)
        except RuntimeError:
            # Loop shut down between the check and the call.
            pass

    @staticmethod
    def _to_mono(chunk: np.ndarray) -> np.ndarray:
        data = np.asarray(chunk, dtype=np.float32)
        if data.ndim == 1:
            return data
        return data[:, 0].copy()


class MicrophoneSource(QueueCaptureSource):
    """Default input device (or ``device``) captured through sounddevice."""

    def __init__(
        self,
        sample_rate: int = 44100,
        *,
        device: int | str | None = None,
        block_ms: int = 100,
    ) -> None:
        super().__init__(sample_rate)
        self.device = device
        self.blocksize = max(1, int(sample_rate * block_ms / 1000))
        self._stream = None

    def open(self) -> None:
        if sd is None:
            raise CaptureError("sounddevice is required for microphone capture. Install with: pip install sounddevice")
        super().open()
        try:
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.blocksize,
                device=self.device,
                callback=self._callback,
                finished_callback=self.end_threadsafe,
            )
            self._stream.start()
        except Exception as exc:
            self._stream = None
            super().close()
            raise CaptureError(f"Failed to open microphone: {exc}") from exc
        LOGGER.info("Microphone opened at %d Hz (device=%s)", self.sample_rate, self.device)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        # Detach the queue first so the finished callback of a deliberate stop is ignored.
        super().close()
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as exc:
            LOGGER.warning("Failed to close microphone stream: %s", exc)

    def _callback(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        if status:
            LOGGER.warning("Input stream status: %s", status)
        self.push_threadsafe(indata[:, 0].copy())

    @staticmethod
    def list_devices() -> list[dict]:
        if sd is None:
            return []
        devices = []
        for index, info in enumerate(sd.query_devices()):
            if info.get("max_input_channels", 0) > 0:
                devices.append(
                    {
                        "index": index,
                        "name": info.get("name", "Unknown"),
                        "channels": info.get("max_input_channels", 0),
                        "sample_rate": int(info.get("default_samplerate", 0)),
                    }
                )
        return devices


__all__ = [
    "CaptureError",
    "CaptureSource",
    "CaptureStreamEnded",
    "MicrophoneSource",
    "QueueCaptureSource",
]
