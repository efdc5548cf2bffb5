"""Desktop notification surface with a single "stop alarm" action."""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import Callable, Optional, Protocol

from .errors import NotificationError
from .messages import STOP_ACTION_LABEL

DEFAULT_APP_NAME = "Pomodoro Auto Alarm"
STOP_ACTION_KEY = "stop"


class NotificationSurface(Protocol):
    """Shows one ongoing alarm notification at a time."""

    def show(self, title: str, text: str, on_stop: Callable[[], None]) -> None:
        ...

    def clear(self) -> None:
        ...


class NotifySendNotification:
    """Critical-urgency `notify-send --wait` notification.

    `notify-send` stays alive while the notification is shown and prints the
    action key when the user presses "Stop alarm"; terminating it closes the
    notification.
    """

    def __init__(
        self,
        *,
        app_name: str = DEFAULT_APP_NAME,
        popen: Optional[Callable[..., subprocess.Popen]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._app_name = app_name
        self._popen = popen or subprocess.Popen
        self._logger = logger or logging.getLogger("alarm.notification")
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None

    def build_command(self, title: str, text: str) -> list[str]:
        return [
            "notify-send",
            f"--app-name={self._app_name}",
            "--urgency=critical",
            "--category=alarm",
            f"--action={STOP_ACTION_KEY}={STOP_ACTION_LABEL}",
            "--wait",
            title,
            text,
        ]

    def show(self, title: str, text: str, on_stop: Callable[[], None]) -> None:
        self.clear()
        try:
            process = self._popen(
                self.build_command(title, text),
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
            )
        except (FileNotFoundError, OSError) as error:
            raise NotificationError(f"notify-send is not available: {error}") from error

        with self._lock:
            self._process = process

        threading.Thread(
            target=self._watch_actions,
            args=(process, on_stop),
            daemon=True,
            name="alarm-notification",
        ).start()
        self._logger.info("Alarm notification shown: %s", title)

    def clear(self) -> None:
        with self._lock:
            process = self._process
            self._process = None
        if process is None or process.poll() is not None:
            return

        process.terminate()
        try:
            process.wait(timeout=2.0)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait(timeout=2.0)
        self._logger.debug("Alarm notification cleared")

    def _watch_actions(
        self,
        process: subprocess.Popen,
        on_stop: Callable[[], None],
    ) -> None:
        stdout = process.stdout
        if stdout is None:
            return
        for line in stdout:
            if line.strip() == STOP_ACTION_KEY:
                self._logger.info("Stop action pressed on alarm notification")
                on_stop()
                return


class SilentNotification:
    """Notification surface used when desktop notifications are disabled."""

    def show(self, title: str, text: str, on_stop: Callable[[], None]) -> None:
        del on_stop

    def clear(self) -> None:
        pass
