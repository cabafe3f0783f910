"""Best-effort persistence of encoded windows."""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

LOGGER = logging.getLogger("livescribe.storage")

_UNSAFE_TIMESTAMP_CHARS = re.compile(r"[:.]")


class AudioWriter(Protocol):
    async def write(self, path: str | Path, data: bytes) -> Path: ...


def chunk_filename(now: Optional[datetime] = None, *, prefix: str = "chunk", suffix: str = ".wav") -> str:
    """``chunk-2024-01-01T00-00-00-000Z.wav`` style name for a window closed at ``now``."""
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"{prefix}-{_UNSAFE_TIMESTAMP_CHARS.sub('-', stamp)}{suffix}"


class FileWriter:
    """Writes payloads below ``output_dir`` off the event loop."""

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    async def write(self, path: str | Path, data: bytes) -> Path:
        target = self.output_dir / path
        LOGGER.debug("Writing file to %s", target)
        await asyncio.to_thread(self._write, target, data)
        return target

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


__all__ = ["AudioWriter", "FileWriter", "chunk_filename"]
