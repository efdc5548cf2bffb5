"""JSON-file store for user preferences (durations, cycles, alarm sound)."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Optional

DEFAULT_SETTINGS_FILE = "~/.config/pomodoro-auto-alarm/settings.json"


class SettingsStoreError(Exception):
    """Raised when preferences cannot be written."""


@dataclass(frozen=True)
class UserSettings:
    """Persisted preferences; minutes and cycle count as entered by the user."""
    work_minutes: int = 25
    break_minutes: int = 5
    long_break_minutes: int = 15
    cycles_before_long_break: int = 4
    alarm_uri: str = ""


_INT_FIELDS = (
    "work_minutes",
    "break_minutes",
    "long_break_minutes",
    "cycles_before_long_break",
)


class JsonSettingsStore:
    """Key-value preferences with defaults for missing or malformed entries."""

    def __init__(self, path: str | Path, logger: Optional[logging.Logger] = None):
        self._path = Path(path).expanduser()
        self._logger = logger or logging.getLogger("settings")
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UserSettings:
        with self._lock:
            return self._load_locked()

    def save_times(
        self,
        work_minutes: int,
        break_minutes: int,
        long_break_minutes: int,
        cycles_before_long_break: int,
    ) -> UserSettings:
        with self._lock:
            settings = replace(
                self._load_locked(),
                work_minutes=work_minutes,
                break_minutes=break_minutes,
                long_break_minutes=long_break_minutes,
                cycles_before_long_break=cycles_before_long_break,
            )
            self._write_locked(settings)
            return settings

    def save_alarm_uri(self, uri: str) -> UserSettings:
        with self._lock:
            settings = replace(self._load_locked(), alarm_uri=uri or "")
            self._write_locked(settings)
            return settings

    def _load_locked(self) -> UserSettings:
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return UserSettings()
        except (OSError, ValueError) as error:
            self._logger.warning("Ignoring unreadable settings file %s: %s", self._path, error)
            return UserSettings()

        if not isinstance(raw, dict):
            self._logger.warning("Ignoring malformed settings file %s", self._path)
            return UserSettings()

        defaults = UserSettings()
        values: dict[str, Any] = {}
        for field in _INT_FIELDS:
            value = raw.get(field)
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                values[field] = value
            else:
                values[field] = getattr(defaults, field)
        alarm_uri = raw.get("alarm_uri", "")
        values["alarm_uri"] = alarm_uri if isinstance(alarm_uri, str) else ""
        return UserSettings(**values)

    def _write_locked(self, settings: UserSettings) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                dir=str(self._path.parent),
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(asdict(settings), fh, indent=2)
            os.replace(temp_name, self._path)
        except OSError as error:
            raise SettingsStoreError(
                f"Failed to write settings file {self._path}: {error}"
            ) from error
