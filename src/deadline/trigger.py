"""Durable wall-clock triggers backed by transient systemd user timers."""

from __future__ import annotations

import datetime as dt
import logging
import subprocess
import sys
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from .errors import SchedulingPermissionDenied, TriggerError
from .payload import DeadlinePayload

DEFAULT_UNIT_PREFIX = "pomodoro-alarm"
DEFAULT_COMMAND_TIMEOUT_SECONDS = 10.0

_PERMISSION_MARKERS = (
    "access denied",
    "permission denied",
    "failed to connect to bus",
    "interactive authentication required",
)

CommandRunner = Callable[..., subprocess.CompletedProcess]


class DurableTrigger(Protocol):
    """Host facility that runs the alarm entry point at an absolute time."""

    def schedule_at(self, fires_at: dt.datetime, payload: DeadlinePayload) -> str:
        ...

    def cancel(self, token: str) -> None:
        ...


class SystemdTimerTrigger:
    """Registers one transient `systemd-run --user` timer per deadline.

    The timer outlives this process; when it elapses systemd starts the
    standalone alarm entry point with the deadline payload as arguments.
    `schedule_at` returns only after systemd acknowledged the unit.
    """

    def __init__(
        self,
        *,
        state_dir: str | Path,
        entry_script: str | Path,
        unit_prefix: str = DEFAULT_UNIT_PREFIX,
        python_executable: Optional[str] = None,
        config_file: Optional[str] = None,
        command_timeout_seconds: float = DEFAULT_COMMAND_TIMEOUT_SECONDS,
        runner: Optional[CommandRunner] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._state_dir = str(Path(state_dir).expanduser())
        self._entry_script = str(Path(entry_script).resolve())
        self._unit_prefix = unit_prefix.strip() or DEFAULT_UNIT_PREFIX
        self._python_executable = python_executable or sys.executable
        self._config_file = config_file
        self._command_timeout_seconds = command_timeout_seconds
        self._runner = runner or subprocess.run
        self._logger = logger or logging.getLogger("deadline.trigger")

    def unit_name(self, deadline_id: str) -> str:
        return f"{self._unit_prefix}-{deadline_id}"

    def build_command(self, fires_at: dt.datetime, payload: DeadlinePayload) -> list[str]:
        unit = self.unit_name(payload.deadline_id)
        entry_args = [
            self._python_executable,
            self._entry_script,
            *payload.to_args(),
            "--state-dir",
            self._state_dir,
        ]
        if self._config_file:
            entry_args.extend(["--config", self._config_file])
        return [
            "systemd-run",
            "--user",
            "--quiet",
            "--collect",
            f"--unit={unit}",
            f"--on-calendar={format_calendar_time(fires_at)}",
            "--timer-property=AccuracySec=1s",
            "--",
            *entry_args,
        ]

    def schedule_at(self, fires_at: dt.datetime, payload: DeadlinePayload) -> str:
        command = self.build_command(fires_at, payload)
        try:
            result = self._run(command)
        except FileNotFoundError as error:
            raise SchedulingPermissionDenied(
                "systemd-run is not available; durable alarms are disabled"
            ) from error
        except subprocess.TimeoutExpired as error:
            raise SchedulingPermissionDenied(
                f"systemd-run did not answer within {self._command_timeout_seconds:.1f}s"
            ) from error

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            if _looks_like_permission_error(detail):
                raise SchedulingPermissionDenied(
                    f"Host denied exact alarm scheduling: {detail}"
                )
            raise SchedulingPermissionDenied(
                f"systemd-run failed with exit code {result.returncode}: {detail}"
            )

        token = self.unit_name(payload.deadline_id)
        self._logger.debug(
            "Durable trigger armed: unit=%s fires_at=%s",
            token,
            fires_at.isoformat(),
        )
        return token

    def cancel(self, token: str) -> None:
        try:
            result = self._run(["systemctl", "--user", "stop", f"{token}.timer"])
        except (FileNotFoundError, subprocess.TimeoutExpired) as error:
            raise TriggerError(f"Failed to cancel trigger {token}: {error}") from error

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise TriggerError(
                f"systemctl stop {token}.timer exited with {result.returncode}: {detail}"
            )
        self._logger.debug("Durable trigger cancelled: unit=%s", token)

    def _run(self, command: Sequence[str]) -> subprocess.CompletedProcess:
        return self._runner(
            list(command),
            capture_output=True,
            text=True,
            timeout=self._command_timeout_seconds,
            check=False,
        )


def format_calendar_time(fires_at: dt.datetime) -> str:
    """Format an aware datetime as a systemd calendar timestamp in UTC."""
    if fires_at.tzinfo is None:
        raise ValueError("fires_at must be timezone-aware")
    utc = fires_at.astimezone(dt.timezone.utc)
    # Calendar specs have whole-second precision; round up so it never fires early.
    if utc.microsecond:
        utc = utc.replace(microsecond=0) + dt.timedelta(seconds=1)
    return utc.strftime("%Y-%m-%d %H:%M:%S UTC")


def _looks_like_permission_error(detail: str) -> bool:
    lowered = detail.lower()
    return any(marker in lowered for marker in _PERMISSION_MARKERS)
