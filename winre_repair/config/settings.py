"""Settings storage for the repair tool."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


def _program_data_dir() -> Path:
    return Path(os.environ.get("PROGRAMDATA", Path.home())) / "winre-repair"


def default_settings_path() -> Path:
    return Path(
        os.environ.get(
            "WINRE_REPAIR_SETTINGS_PATH",
            _program_data_dir() / "settings.json",
        )
    )


# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_COMMAND_TIMEOUT_SECONDS = 1800

DEFAULT_SETTINGS: dict[str, Any] = {
    "log_dir": None,
    "script_dir": None,
    "reagentc": "reagentc.exe",
    "diskpart": "diskpart.exe",
    "powershell": "powershell.exe",
    "command_timeout_seconds": DEFAULT_COMMAND_TIMEOUT_SECONDS,
}


@dataclass
class Settings:
    values: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_SETTINGS))

    def get(self, key: str, default: Any | None = None) -> Any:
        return self.values.get(key, default)

    @property
    def log_dir(self) -> Path:
        override = os.environ.get("WINRE_REPAIR_LOG_DIR")
        if override:
            return Path(override)
        configured = self.values.get("log_dir")
        if configured:
            return Path(configured)
        return _program_data_dir() / "logs"

    @property
    def script_dir(self) -> Path | None:
        configured = self.values.get("script_dir")
        return Path(configured) if configured else None

    @property
    def command_timeout(self) -> float | None:
        value = self.values.get("command_timeout_seconds")
        if value in (None, 0):
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return float(DEFAULT_COMMAND_TIMEOUT_SECONDS)


def load_settings(path: Path | None = None) -> Settings:
    settings = Settings()
    path = path or default_settings_path()
    if not path.exists():
        return settings
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return settings
    if isinstance(data, dict):
        settings.values.update(data)
    return settings
