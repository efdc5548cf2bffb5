"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from app_config_schema import (
    DEFAULT_SETTINGS_FILE,
    DEFAULT_STATE_DIR,
    AlarmSettings,
    AppConfig,
    AppConfigurationError,
    SchedulerSettings,
    TimerSettings,
    UIServerSettings,
)


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    timer = _parse_timer_settings(_section(raw, "timer"), base_dir=base_dir)
    alarm = _parse_alarm_settings(_section(raw, "alarm"))
    scheduler = _parse_scheduler_settings(_section(raw, "scheduler"), base_dir=base_dir)
    ui_server = _parse_ui_server_settings(_section(raw, "ui_server"), base_dir=base_dir)

    return AppConfig(
        timer=timer,
        alarm=alarm,
        scheduler=scheduler,
        ui_server=ui_server,
        source_file=source_file,
    )


def _parse_timer_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> TimerSettings:
    settings_file = _as_str(
        section.get("settings_file", DEFAULT_SETTINGS_FILE),
        "timer.settings_file",
    )
    return TimerSettings(
        settings_file=_resolve_path(base_dir, settings_file or DEFAULT_SETTINGS_FILE),
    )


def _parse_alarm_settings(section: Mapping[str, Any]) -> AlarmSettings:
    ceiling_seconds = _as_float(section.get("ceiling_seconds", 30.0), "alarm.ceiling_seconds")
    if ceiling_seconds <= 0:
        raise AppConfigurationError("alarm.ceiling_seconds must be greater than zero.")
    blocksize = _as_int(section.get("blocksize", 2048), "alarm.blocksize")
    if blocksize <= 0:
        raise AppConfigurationError("alarm.blocksize must be greater than zero.")
    return AlarmSettings(
        ceiling_seconds=ceiling_seconds,
        output_device=(
            _as_int(section.get("output_device"), "alarm.output_device")
            if "output_device" in section
            else None
        ),
        blocksize=blocksize,
        notifications=_as_bool(section.get("notifications", True), "alarm.notifications"),
    )


def _parse_scheduler_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> SchedulerSettings:
    margin = _as_float(
        section.get("safety_margin_seconds", 2.0),
        "scheduler.safety_margin_seconds",
    )
    if margin < 0:
        raise AppConfigurationError("scheduler.safety_margin_seconds cannot be negative.")
    state_dir = _as_str(section.get("state_dir", DEFAULT_STATE_DIR), "scheduler.state_dir")
    unit_prefix = _as_str(section.get("unit_prefix", "pomodoro-alarm"), "scheduler.unit_prefix")
    return SchedulerSettings(
        enabled=_as_bool(section.get("enabled", True), "scheduler.enabled"),
        safety_margin_seconds=margin,
        state_dir=_resolve_path(base_dir, state_dir or DEFAULT_STATE_DIR),
        unit_prefix=unit_prefix or "pomodoro-alarm",
    )


def _parse_ui_server_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> UIServerSettings:
    index_file = _as_str(section.get("index_file", ""), "ui_server.index_file")
    return UIServerSettings(
        enabled=_as_bool(section.get("enabled", True), "ui_server.enabled"),
        host=_as_str(section.get("host", "127.0.0.1"), "ui_server.host"),
        port=_as_int(section.get("port", 8765), "ui_server.port"),
        index_file=_resolve_path(base_dir, index_file) if index_file else "",
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)
