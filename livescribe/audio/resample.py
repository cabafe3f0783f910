"""Linear-interpolation resampling between capture and service sample rates."""

from __future__ import annotations

import math

import numpy as np


def output_length(input_length: int, source_rate: int, target_rate: int) -> int:
    """Number of samples ``resample`` produces for ``input_length`` inputs (round half up)."""
    ratio = source_rate / target_rate
    return int(math.floor(input_length / ratio + 0.5))


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Resample ``samples`` from ``source_rate`` to ``target_rate``.

    Equal rates return the input object untouched. Positions past the last
    input sample are clamped to it instead of extrapolating.
    """
    if source_rate <= 0 or target_rate <= 0:
        raise ValueError(f"Sample rates must be positive (got {source_rate} -> {target_rate})")
    if source_rate == target_rate:
        return samples

    data = np.asarray(samples, dtype=np.float32).reshape(-1)
    length = output_length(data.size, source_rate, target_rate)
    if data.size == 0 or length == 0:
        return np.zeros(0, dtype=np.float32)

    ratio = source_rate / target_rate
    positions = np.arange(length, dtype=np.float64) * ratio
    lower = np.floor(positions).astype(np.int64)
    last = data.size - 1
    clamped = lower >= last
    lower = np.minimum(lower, last)
    upper = np.minimum(lower + 1, last)
    weight = positions - lower

    output = data[lower] + (data[upper] - data[lower]) * weight
    output[clamped] = data[last]
    return output.astype(np.float32, copy=False)


__all__ = ["output_length", "resample"]
