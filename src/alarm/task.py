"""Bounded alarm delivery: notification, sound, and guaranteed cleanup."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Literal, Optional, Protocol

from deadline.payload import DEFAULT_SOUND_REF

from .errors import AudioPlaybackError, NotificationError
from .messages import alarm_notification_text
from .notification import NotificationSurface

DEFAULT_CEILING_SECONDS = 30.0

AlarmTaskOutcome = Literal["stopped", "timed_out", "failed"]


class SoundPlayerLike(Protocol):
    def select(self, uri: Optional[str]) -> str:
        ...

    def play(self) -> None:
        ...

    def stop(self) -> None:
        ...


@dataclass(frozen=True)
class AlarmTaskRequest:
    """Unit-of-work request handed to the background alarm task."""
    sound_ref: str = DEFAULT_SOUND_REF
    phase_is_work: bool = False
    deadline_id: Optional[str] = None


class BackgroundAlarmTask:
    """Shows the alarm notification and plays sound for at most `ceiling_seconds`.

    `cancel()` may be called from any thread, before or during `run()`.
    Cleanup (stop sound, clear notification) runs exactly once per task.
    """

    def __init__(
        self,
        request: AlarmTaskRequest,
        *,
        sound_player: SoundPlayerLike,
        notification: NotificationSurface,
        ceiling_seconds: float = DEFAULT_CEILING_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        if ceiling_seconds <= 0:
            raise ValueError("ceiling_seconds must be greater than zero")
        self._request = request
        self._sound_player = sound_player
        self._notification = notification
        self._ceiling_seconds = float(ceiling_seconds)
        self._logger = logger or logging.getLogger("alarm.task")
        self._stop_event = threading.Event()
        self._cleanup_lock = threading.Lock()
        self._cleaned_up = False

    @property
    def request(self) -> AlarmTaskRequest:
        return self._request

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def cancel(self) -> None:
        self._stop_event.set()

    def run(self) -> AlarmTaskOutcome:
        request = self._request
        self._logger.info(
            "Alarm task started: deadline=%s work=%s sound=%s",
            request.deadline_id,
            request.phase_is_work,
            request.sound_ref,
        )
        try:
            title, text = alarm_notification_text(request.phase_is_work)
            try:
                self._notification.show(title, text, self.cancel)
            except NotificationError as error:
                self._logger.warning("Alarm notification unavailable: %s", error)

            self._sound_player.select(request.sound_ref)
            try:
                self._sound_player.play()
            except AudioPlaybackError as error:
                self._logger.error("Alarm sound playback failed: %s", error)

            if self._stop_event.wait(self._ceiling_seconds):
                self._logger.info("Alarm task stopped by user")
                return "stopped"
            self._logger.info(
                "Alarm task reached its %.0fs ceiling",
                self._ceiling_seconds,
            )
            return "timed_out"
        except Exception as error:
            self._logger.error("Alarm task failed: %s", error, exc_info=True)
            return "failed"
        finally:
            self._cleanup()

    def _cleanup(self) -> None:
        with self._cleanup_lock:
            if self._cleaned_up:
                return
            self._cleaned_up = True

        try:
            self._sound_player.stop()
        except Exception as error:
            self._logger.warning("Failed to stop alarm sound: %s", error)
        try:
            self._notification.clear()
        except Exception as error:
            self._logger.warning("Failed to clear alarm notification: %s", error)
        self._logger.debug("Alarm task cleaned up")
