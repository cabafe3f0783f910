"""Capture, windowing, resampling and WAV encoding."""

from .resample import resample
from .scheduler import WindowScheduler
from .types import SchedulerState, Window
from .wav import EncodingError, WavFormat, encode_wav

__all__ = ["EncodingError", "SchedulerState", "WavFormat", "Window", "WindowScheduler", "encode_wav", "resample"]
