"""WAV container encoding for transcription payloads."""

from __future__ import annotations

import io
from dataclasses import dataclass

import numpy as np
import soundfile as sf

from ..errors import LiveScribeError

PCM16_SCALE = 32767
PCM16_MIN = -32768
PCM16_MAX = 32767


class EncodingError(LiveScribeError, ValueError):
    pass


@dataclass(frozen=True, slots=True)
class WavFormat:
    channels: int = 1
    sample_rate: int = 16000
    bit_depth: int = 16


def quantize_pcm16(samples: np.ndarray) -> np.ndarray:
    scaled = np.round(np.asarray(samples, dtype=np.float64) * PCM16_SCALE)
    return np.clip(scaled, PCM16_MIN, PCM16_MAX).astype(np.int16)


def encode_wav(samples: np.ndarray, fmt: WavFormat = WavFormat()) -> bytes:
    """Serialise normalised float samples as a 16-bit PCM WAV file.

    Only 16-bit mono is produced. An empty sequence is rejected; callers
    skip empty windows before encoding.
    """
    data = np.asarray(samples).reshape(-1)
    if data.size == 0:
        raise EncodingError("Cannot encode an empty sample sequence")
    if fmt.bit_depth != 16:
        raise EncodingError(f"Unsupported bit depth: {fmt.bit_depth}")
    if fmt.channels != 1:
        raise EncodingError(f"Unsupported channel count: {fmt.channels}")
    if fmt.sample_rate <= 0:
        raise EncodingError(f"Invalid sample rate: {fmt.sample_rate}")

    pcm = quantize_pcm16(data)
    buffer = io.BytesIO()
    sf.write(buffer, pcm, fmt.sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


__all__ = ["EncodingError", "WavFormat", "encode_wav", "quantize_pcm16"]
