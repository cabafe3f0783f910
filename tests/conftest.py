"""Pytest configuration helpers."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without installing the package."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from livescribe.services.results import TranscriptionResult  # noqa: E402


async def settle(rounds: int = 20) -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class VirtualClock:
    """Millisecond clock that only moves when a test advances it."""

    def __init__(self) -> None:
        self.now_ms = 0
        self._waiters: list[tuple[int, asyncio.Future]] = []

    def monotonic(self) -> float:
        return self.now_ms / 1000.0

    async def sleep(self, delay: float) -> None:
        due = self.now_ms + max(0, round(delay * 1000))
        if due <= self.now_ms:
            await asyncio.sleep(0)
            return
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((due, future))
        await future

    async def advance_to(self, ms: int) -> None:
        while True:
            due = sorted(
                (item for item in self._waiters if item[0] <= ms and not item[1].done()),
                key=lambda item: item[0],
            )
            if not due:
                break
            when, future = due[0]
            self._waiters.remove((when, future))
            self.now_ms = when
            future.set_result(None)
            await settle()
        self._waiters = [item for item in self._waiters if not item[1].done()]
        self.now_ms = ms
        await settle()


class FakeTranscriber:
    def __init__(self, *, error: Exception | None = None, gate: asyncio.Event | None = None) -> None:
        self.payloads: list[bytes] = []
        self.error = error
        self.gate = gate

    async def transcribe(self, payload: bytes) -> TranscriptionResult:
        self.payloads.append(payload)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return TranscriptionResult(text=f"window {len(self.payloads)}", duration=5)

    async def close(self) -> None:
        return None


class RecordingWriter:
    def __init__(self, error: Exception | None = None) -> None:
        self.writes: list[tuple[str, bytes]] = []
        self.error = error

    async def write(self, path, data: bytes):
        if self.error is not None:
            raise self.error
        self.writes.append((str(path), data))
        return Path(path)


class RecordingDisplay:
    def __init__(self) -> None:
        self.shown: list[TranscriptionResult] = []

    def show(self, result: TranscriptionResult) -> None:
        self.shown.append(result)


@pytest.fixture
def virtual_clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def fake_transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def recording_writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def recording_display() -> RecordingDisplay:
    return RecordingDisplay()
