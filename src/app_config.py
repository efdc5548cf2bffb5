from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Mapping

from app_config_parser import parse_app_config
from app_config_schema import (
    DEFAULT_CONFIG_FILE,
    AlarmSettings,
    AppConfig,
    AppConfigurationError,
    SchedulerSettings,
    TimerSettings,
    UIServerSettings,
)

__all__ = [
    "AlarmSettings",
    "AppConfig",
    "AppConfigurationError",
    "SchedulerSettings",
    "TimerSettings",
    "UIServerSettings",
    "default_app_config",
    "load_app_config",
    "resolve_config_path",
]


def resolve_config_path(config_path: str | None = None) -> Path:
    env_path = os.getenv("APP_CONFIG_FILE")
    raw = config_path or env_path or DEFAULT_CONFIG_FILE
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    return path


def default_app_config(*, base_dir: Path | None = None) -> AppConfig:
    """Settings used when no config file exists at the default location."""
    return parse_app_config(
        {},
        base_dir=base_dir or Path.cwd(),
        source_file="<defaults>",
    )


def load_app_config(config_path: str | None = None) -> AppConfig:
    explicit = config_path is not None or os.getenv("APP_CONFIG_FILE") is not None
    path = resolve_config_path(config_path)
    if not path.exists():
        if not explicit:
            return default_app_config()
        raise AppConfigurationError(f"Config file not found: {path}")
    if not path.is_file():
        raise AppConfigurationError(f"Config path is not a file: {path}")

    try:
        with open(path, "rb") as fh:
            raw = tomllib.load(fh)
    except Exception as error:
        raise AppConfigurationError(f"Failed to parse config TOML: {error}") from error

    if not isinstance(raw, Mapping):
        raise AppConfigurationError("Root config TOML object must be a table.")

    return parse_app_config(raw, base_dir=path.parent, source_file=str(path))
