"""Applies UI commands to the cycle timer, sound player, and settings store."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from alarm import ALARM_TASK_TAG, AudioPlaybackError, SoundPlayer
from contracts.ui_protocol import (
    COMMAND_PAUSE,
    COMMAND_PREVIEW_SOUND,
    COMMAND_RESET,
    COMMAND_SELECT_SOUND,
    COMMAND_START,
    COMMAND_STOP_ALARM,
    COMMAND_UPDATE_TIMES,
    EVENT_ERROR,
    STATE_ERROR,
)
from deadline import DEFAULT_SOUND_REF
from pomodoro import CycleActionResult, CycleTimer, InvalidDurationError
from pomodoro.config import minutes_to_seconds
from pomodoro.constants import ACTION_UPDATE_TIMES, REASON_INVALID_DURATION, REASON_SCHEDULING_DENIED
from server.events import UICommandEvent
from settings_store import JsonSettingsStore, SettingsStoreError, UserSettings

from .messages import SCHEDULING_DENIED_WARNING, rejection_text
from .ui import RuntimeUIPublisher

TIME_FIELDS: tuple[str, ...] = (
    "work_minutes",
    "break_minutes",
    "long_break_minutes",
    "cycles_before_long_break",
)


class AlarmCancellerLike(Protocol):
    def cancel_by_tag(self, tag: str = ALARM_TASK_TAG) -> int:
        ...


def parse_positive_int(raw: Any) -> Optional[int]:
    """Parse a user-entered whole number; None unless it is a positive integer."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw > 0 else None
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if not text.isdigit():
        return None
    value = int(text)
    return value if value > 0 else None


class RuntimeCommandDispatcher:
    """Routes UI commands; malformed settings are reverted to the last good values."""
    def __init__(
        self,
        *,
        cycle_timer: CycleTimer,
        sound_player: SoundPlayer,
        alarm_runner: AlarmCancellerLike,
        settings_store: JsonSettingsStore,
        ui: RuntimeUIPublisher,
        logger: Optional[logging.Logger] = None,
    ):
        self._cycle_timer = cycle_timer
        self._sound_player = sound_player
        self._alarm_runner = alarm_runner
        self._settings_store = settings_store
        self._ui = ui
        self._logger = logger or logging.getLogger("runtime.commands")

    def handle(self, command: UICommandEvent) -> None:
        action = command.action
        self._logger.debug("UI command: %s %s", action, command.payload)

        if action == COMMAND_START:
            self._publish_result(self._cycle_timer.run_cycles())
        elif action == COMMAND_PAUSE:
            self._publish_result(self._cycle_timer.stop_timer())
        elif action == COMMAND_RESET:
            self._publish_result(self._cycle_timer.reset_timer())
        elif action == COMMAND_STOP_ALARM:
            self.stop_alarm()
        elif action == COMMAND_SELECT_SOUND:
            self.select_sound(command.payload.get("uri"))
        elif action == COMMAND_PREVIEW_SOUND:
            self.preview_sound(command.payload.get("uri"))
        elif action == COMMAND_UPDATE_TIMES:
            self.update_times(command.payload)
        else:
            self._logger.warning("Ignoring unknown UI command: %s", action)

    def stop_alarm(self) -> None:
        self._sound_player.stop()
        self._alarm_runner.cancel_by_tag(ALARM_TASK_TAG)

    def select_sound(self, uri: Any) -> str:
        """Store the chosen alarm sound; an unusable URI selects the default tone."""
        raw_uri = uri.strip() if isinstance(uri, str) else ""
        selected = self._sound_player.select(raw_uri)
        stored_uri = "" if selected == DEFAULT_SOUND_REF else raw_uri
        settings = self._save(lambda: self._settings_store.save_alarm_uri(stored_uri))
        self._ui.publish_settings(settings, accepted=stored_uri == raw_uri)
        return selected

    def preview_sound(self, uri: Any) -> None:
        self._alarm_runner.cancel_by_tag(ALARM_TASK_TAG)
        try:
            self._sound_player.preview(uri if isinstance(uri, str) else None)
        except AudioPlaybackError as error:
            self._logger.error("Sound preview failed: %s", error)
            self._ui.publish(EVENT_ERROR, state=STATE_ERROR, message=f"Sound preview failed: {error}")

    def update_times(self, payload: dict[str, Any]) -> bool:
        """Apply raw duration fields; on bad input republish the last good values."""
        last_good = self._settings_store.load()
        values = {name: parse_positive_int(payload.get(name)) for name in TIME_FIELDS}
        invalid = [name for name, value in values.items() if value is None]
        if invalid:
            return self._reject_times(last_good, f"Invalid values: {', '.join(invalid)}")

        try:
            result = self._cycle_timer.update_times(
                minutes_to_seconds(values["work_minutes"]),
                minutes_to_seconds(values["break_minutes"]),
                minutes_to_seconds(values["long_break_minutes"]),
                values["cycles_before_long_break"],
            )
        except InvalidDurationError as error:
            return self._reject_times(last_good, str(error))

        settings = self._save(
            lambda: self._settings_store.save_times(
                values["work_minutes"],
                values["break_minutes"],
                values["long_break_minutes"],
                values["cycles_before_long_break"],
            )
        )
        self._ui.publish_settings(settings, accepted=True)
        self._publish_result(result)
        return True

    def _reject_times(self, last_good: UserSettings, detail: str) -> bool:
        self._logger.info("Rejected duration update: %s", detail)
        self._ui.publish_settings(
            last_good,
            accepted=False,
            message=rejection_text(ACTION_UPDATE_TIMES, REASON_INVALID_DURATION),
        )
        return False

    def _save(self, write) -> UserSettings:
        try:
            return write()
        except SettingsStoreError as error:
            self._logger.error("Failed to persist settings: %s", error)
            self._ui.publish(EVENT_ERROR, state=STATE_ERROR, message=str(error))
            return self._settings_store.load()

    def _publish_result(self, result: CycleActionResult) -> None:
        message = None
        if not result.accepted:
            message = rejection_text(result.action, result.reason)
        self._ui.publish_cycle_update(
            result.snapshot,
            action=result.action,
            accepted=result.accepted,
            reason=result.reason,
            message=message,
        )
        self._ui.publish_cycle_state(result.snapshot)
        if result.reason == REASON_SCHEDULING_DENIED:
            self._ui.publish_warning(SCHEDULING_DENIED_WARNING)
