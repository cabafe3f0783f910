"""Dataclasses shared across audio helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Tuple

import numpy as np


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass(frozen=True, slots=True)
class Window:
    """Chunks accumulated between two interval ticks, in arrival order."""

    index: int
    chunks: Tuple[np.ndarray, ...]
    sample_rate: int
    closed_at: datetime

    @property
    def empty(self) -> bool:
        return not self.chunks

    @property
    def num_samples(self) -> int:
        return sum(len(chunk) for chunk in self.chunks)

    @property
    def duration_seconds(self) -> float:
        return self.num_samples / float(self.sample_rate)

    def samples(self) -> np.ndarray:
        if not self.chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate(self.chunks).astype(np.float32, copy=False)
