"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_STATE_DIR = "~/.local/state/pomodoro-auto-alarm"
DEFAULT_SETTINGS_FILE = "~/.config/pomodoro-auto-alarm/settings.json"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class TimerSettings:
    """Preference storage location from `[timer]`."""
    settings_file: str = DEFAULT_SETTINGS_FILE


@dataclass(frozen=True)
class AlarmSettings:
    """Alarm playback and notification settings from `[alarm]`."""
    ceiling_seconds: float = 30.0
    output_device: Optional[int] = None
    blocksize: int = 2048
    notifications: bool = True


@dataclass(frozen=True)
class SchedulerSettings:
    """Durable deadline settings from `[scheduler]`."""
    enabled: bool = True
    safety_margin_seconds: float = 2.0
    state_dir: str = DEFAULT_STATE_DIR
    unit_prefix: str = "pomodoro-alarm"


@dataclass(frozen=True)
class UIServerSettings:
    """Built-in UI server settings from `[ui_server]`."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8765
    index_file: str = ""


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    timer: TimerSettings
    alarm: AlarmSettings
    scheduler: SchedulerSettings
    ui_server: UIServerSettings
    source_file: str
