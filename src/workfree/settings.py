"""
Settings for the Work/Free timer.

Provides:
- TimerSettings: user-facing targets (minutes + seconds per mode) and the
  "alert when Work target is reached" switch
- EngineConfig: timing knobs of the engine (tick cadence, alert cadence,
  background notification series, history cap)
- SettingsStore: JSON persistence with atomic writes

Data Model (JSON):
{
  "version": 1,
  "work_minutes": 15, "work_seconds": 0,
  "free_minutes": 15, "free_seconds": 0,
  "alert_in_work": true,
  "updated_at": "ISO-8601 timestamp"
}

The engine reads targets only at segment boundaries, so saving new settings
never alters a segment that is already running.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .models import Mode

logger = logging.getLogger(__name__)

MAX_MINUTES = 120
MAX_SECONDS = 59

HOME_ENV = "WORKFREE_HOME"


class SettingsError(ValueError):
    """Raised for out-of-range or malformed settings values."""


def data_dir() -> str:
    """Directory holding settings and history (``$WORKFREE_HOME`` or ~/.workfree)."""
    return os.environ.get(HOME_ENV) or os.path.join(os.path.expanduser("~"), ".workfree")


@dataclass
class TimerSettings:
    work_minutes: int = 15
    work_seconds: int = 0
    free_minutes: int = 15
    free_seconds: int = 0
    alert_in_work: bool = True

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        for name in ("work_minutes", "free_minutes"):
            _check_range(name, getattr(self, name), MAX_MINUTES)
        for name in ("work_seconds", "free_seconds"):
            _check_range(name, getattr(self, name), MAX_SECONDS)

    @property
    def work_target_seconds(self) -> int:
        return self.work_minutes * 60 + self.work_seconds

    @property
    def free_target_seconds(self) -> int:
        return self.free_minutes * 60 + self.free_seconds

    def target_seconds(self, mode: Mode) -> int:
        if mode is Mode.WORK:
            return self.work_target_seconds
        return self.free_target_seconds

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TimerSettings":
        defaults = cls()
        kwargs: Dict[str, Any] = {}
        for key, default in asdict(defaults).items():
            if key not in raw:
                continue
            value = raw[key]
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise SettingsError(f"{key} must be a boolean, got {value!r}")
                kwargs[key] = value
            else:
                if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                    raise SettingsError(f"{key} must be an integer, got {value!r}")
                try:
                    kwargs[key] = int(value)
                except (TypeError, ValueError) as e:
                    raise SettingsError(f"{key} must be an integer, got {value!r}") from e
        return cls(**kwargs)


def _check_range(name: str, value: Any, upper: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise SettingsError(f"{name} must be an integer, got {value!r}")
    if not 0 <= value <= upper:
        raise SettingsError(f"{name} must be within 0..{upper}, got {value}")


@dataclass(frozen=True)
class EngineConfig:
    tick_seconds: float = 1.0          # live tick cadence while running
    alert_interval_s: int = 10         # repeat-alert cadence while Free is over target
    background_series_count: int = 30  # deferred overtime reminders armed on suspend
    max_records: int = 100             # retained session history


class SettingsStore:
    """Loads and saves TimerSettings as JSON with atomic writes."""

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or os.path.join(data_dir(), "settings.json")
        self.settings = TimerSettings()
        if os.path.exists(self.path):
            try:
                self.load(self.path)
            except (OSError, ValueError) as e:
                # Fall back to defaults if the file is unreadable
                logger.warning("Ignoring unreadable settings file %s: %s", self.path, e)
                self.settings = TimerSettings()

    def load(self, path: str) -> TimerSettings:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        if not isinstance(raw, dict):
            raise SettingsError("settings file must contain a JSON object")
        self.settings = TimerSettings.from_dict(raw)
        self.path = path
        return self.settings

    def save(self, path: Optional[str] = None) -> None:
        out_path = path or self.path
        raw: Dict[str, Any] = {"version": 1}
        raw.update(self.settings.to_dict())
        raw["updated_at"] = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
        tmp = out_path + ".tmp"
        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(raw, f, indent=2, ensure_ascii=False)
        os.replace(tmp, out_path)
        self.path = out_path

    def update(self, **changes: Any) -> TimerSettings:
        """Apply *changes*, validate, persist and return the new settings."""
        merged = self.settings.to_dict()
        for key, value in changes.items():
            if key not in merged:
                raise SettingsError(f"unknown setting {key!r}")
            merged[key] = value
        self.settings = TimerSettings(**merged)
        self.save()
        return self.settings


__all__ = [
    "SettingsError",
    "TimerSettings",
    "EngineConfig",
    "SettingsStore",
    "data_dir",
    "MAX_MINUTES",
    "MAX_SECONDS",
]
