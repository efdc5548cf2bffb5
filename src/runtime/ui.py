from __future__ import annotations

from typing import Any, Optional, Protocol

from contracts.ui_protocol import (
    EVENT_ALARM,
    EVENT_CYCLE,
    EVENT_SETTINGS,
    EVENT_WARNING,
    STATE_IDLE,
    STATE_PAUSED,
    STATE_RUNNING,
)
from pomodoro import CycleSnapshot
from settings_store import UserSettings

from .messages import cycle_status_message


class UIServerLike(Protocol):
    def publish(self, event_type: str, **payload: Any) -> None:
        ...

    def publish_state(
        self,
        state: str,
        *,
        message: Optional[str] = None,
        **payload: Any,
    ) -> None:
        ...


class RuntimeUIPublisher:
    def __init__(self, ui_server: Optional[UIServerLike]):
        self._ui_server = ui_server

    def publish(self, event_type: str, **payload: Any) -> None:
        if self._ui_server:
            self._ui_server.publish(event_type, **payload)

    def publish_state(
        self,
        state: str,
        *,
        message: Optional[str] = None,
        **payload: Any,
    ) -> None:
        if self._ui_server:
            self._ui_server.publish_state(state, message=message, **payload)

    def publish_cycle_update(
        self,
        snapshot: CycleSnapshot,
        *,
        action: str,
        accepted: Optional[bool] = None,
        reason: str = "",
        message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "action": action,
            "phase": snapshot.phase,
            "cycle_count": snapshot.cycle_count,
            "duration_seconds": snapshot.duration_seconds,
            "remaining_seconds": snapshot.remaining_seconds,
            "running": snapshot.running,
            "durable": snapshot.durable,
        }
        if accepted is not None:
            payload["accepted"] = accepted
        if reason:
            payload["reason"] = reason
        if message:
            payload["message"] = message
        self.publish(EVENT_CYCLE, **payload)

    def publish_cycle_state(self, snapshot: CycleSnapshot) -> None:
        if snapshot.is_idle:
            state = STATE_IDLE
        elif snapshot.running:
            state = STATE_RUNNING
        else:
            state = STATE_PAUSED
        self.publish_state(state, message=cycle_status_message(snapshot))

    def publish_settings(
        self,
        settings: UserSettings,
        *,
        accepted: Optional[bool] = None,
        message: Optional[str] = None,
    ) -> None:
        payload: dict[str, Any] = {
            "work_minutes": settings.work_minutes,
            "break_minutes": settings.break_minutes,
            "long_break_minutes": settings.long_break_minutes,
            "cycles_before_long_break": settings.cycles_before_long_break,
            "alarm_uri": settings.alarm_uri,
        }
        if accepted is not None:
            payload["accepted"] = accepted
        if message:
            payload["message"] = message
        self.publish(EVENT_SETTINGS, **payload)

    def publish_alarm(self, *, route: str, phase_is_work: bool) -> None:
        self.publish(EVENT_ALARM, route=route, phase_is_work=phase_is_work)

    def publish_warning(self, message: str) -> None:
        self.publish(EVENT_WARNING, message=message)
