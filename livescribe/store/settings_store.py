"""Persistent settings storage for the inference connection."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path

BACKENDS = ("sagemaker", "http")


@dataclass(slots=True)
class ConnectionSettings:
    backend: str = "sagemaker"
    endpoint_name: str = "asr-real-time-endpoint"
    region: str = "us-east-1"
    profile: str = "default"
    insecure_tls: bool = False
    server_url: str = ""
    api_key: str = ""
    timeout: float = 60.0


class SettingsStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._settings = self._load()

    def _load(self) -> ConnectionSettings:
        settings = ConnectionSettings()
        if not self.path.exists():
            return settings
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except Exception:
            raw = {}
        if not isinstance(raw, dict):
            raw = {}
        for field in fields(settings):
            if field.name in raw:
                setattr(settings, field.name, _coerce(getattr(settings, field.name), raw[field.name]))
        return settings

    def get(self) -> ConnectionSettings:
        return self._settings

    def update(self, **kwargs) -> ConnectionSettings:
        for key, value in kwargs.items():
            if not hasattr(self._settings, key):
                continue
            setattr(self._settings, key, _coerce(getattr(self._settings, key), value))
        if self._settings.backend not in BACKENDS:
            raise ValueError(f"Unknown inference backend: {self._settings.backend!r}")
        self._persist()
        return self._settings

    def _persist(self) -> None:
        self.path.write_text(json.dumps(asdict(self._settings), indent=2), encoding="utf-8")


def _coerce(current, value):
    # bool before int: bool is an int subclass.
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if isinstance(current, float):
        return float(value)
    if isinstance(current, int):
        return int(value)
    return str(value or "")


__all__ = ["BACKENDS", "ConnectionSettings", "SettingsStore"]
