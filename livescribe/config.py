"""Runtime settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field


def _env(name: str, default: str) -> str:
    return os.getenv(name, default)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


def _default_settings_path() -> str:
    return str(Path.home() / ".config" / "livescribe" / "connection.json")


class LiveScribeSettings(BaseModel):
    interval_seconds: float = Field(default_factory=lambda: float(_env("LIVESCRIBE_INTERVAL_SECONDS", "30")), gt=0)
    capture_rate: int = Field(default_factory=lambda: int(_env("LIVESCRIBE_CAPTURE_RATE", "44100")), gt=0)
    target_rate: int = Field(default_factory=lambda: int(_env("LIVESCRIBE_TARGET_RATE", "16000")), gt=0)
    block_ms: int = Field(default_factory=lambda: int(_env("LIVESCRIBE_BLOCK_MS", "100")), gt=0)
    input_device: str | None = Field(default_factory=lambda: os.getenv("LIVESCRIBE_INPUT_DEVICE"))
    output_dir: str = Field(default_factory=lambda: _env("LIVESCRIBE_OUTPUT_DIR", "recordings"))
    keep_audio: bool = Field(default_factory=lambda: _env_flag("LIVESCRIBE_KEEP_AUDIO", "true"))
    log_level: str = Field(default_factory=lambda: _env("LIVESCRIBE_LOG_LEVEL", "INFO").upper())
    settings_path: str = Field(
        default_factory=lambda: os.getenv("LIVESCRIBE_SETTINGS_PATH") or _default_settings_path()
    )

    @property
    def device(self) -> int | str | None:
        if self.input_device is None or self.input_device == "":
            return None
        return int(self.input_device) if self.input_device.isdigit() else self.input_device


@lru_cache()
def get_settings() -> LiveScribeSettings:
    return LiveScribeSettings()


__all__ = ["LiveScribeSettings", "get_settings"]
