"""Runtime orchestration loop for UI commands, cycle ticks, and alarm delivery."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Callable, Optional

from alarm import AlarmTaskRunner, SoundPlayer
from app_config import AppConfig
from contracts.ui_protocol import EVENT_ERROR, STATE_ERROR
from deadline import DeadlineScheduler
from pomodoro import CycleEvent, CycleTimer, PhaseEndedEvent, TickEvent
from pomodoro.constants import (
    ACTION_PHASE_ENDED,
    ACTION_SYNC,
    ACTION_TICK,
    REASON_STARTUP,
    REASON_TICK,
)
from server import UIServer
from server.events import (
    UIClientConnectedEvent,
    UIClientDisconnectedEvent,
    UICommandEvent,
    UIVisibilityEvent,
)
from settings_store import JsonSettingsStore

from .arbiter import DeliveryArbiter, DeliveryDecision
from .commands import RuntimeCommandDispatcher
from .messages import SCHEDULING_DENIED_WARNING
from .ui import RuntimeUIPublisher
from .visibility import AppVisibility

POLL_TIMEOUT_SECONDS = 0.25


@dataclass(frozen=True)
class RuntimeHooks:
    """Injectable lifecycle hooks used by runtime startup and shutdown flow."""
    setup_signal_handlers: Callable[[Callable[[], None]], None]


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the runtime engine."""
    logger: logging.Logger
    app_config: AppConfig
    cycle_timer: CycleTimer
    sound_player: SoundPlayer
    alarm_runner: AlarmTaskRunner
    settings_store: JsonSettingsStore
    visibility: AppVisibility
    event_queue: Queue[Any]
    scheduler: Optional[DeadlineScheduler]
    ui_server: Optional[UIServer]
    hooks: RuntimeHooks
    durable_unavailable: bool = False


class RuntimeEngine:
    """Main runtime loop: drains UI events and polls the cycle timer."""
    def __init__(self, bootstrap: RuntimeBootstrap):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._stop_requested = threading.Event()
        self._cycle_timer = bootstrap.cycle_timer

        self._ui = RuntimeUIPublisher(bootstrap.ui_server)
        self._dispatcher = RuntimeCommandDispatcher(
            cycle_timer=bootstrap.cycle_timer,
            sound_player=bootstrap.sound_player,
            alarm_runner=bootstrap.alarm_runner,
            settings_store=bootstrap.settings_store,
            ui=self._ui,
            logger=logging.getLogger("runtime.commands"),
        )
        scheduler = bootstrap.scheduler
        self._arbiter = DeliveryArbiter(
            visibility=bootstrap.visibility,
            sound_player=bootstrap.sound_player,
            runner=bootstrap.alarm_runner,
            scheduler=scheduler,
            ledger=scheduler.ledger if scheduler is not None else None,
            sound_ref_provider=lambda: bootstrap.sound_player.selected_ref,
            on_decision=self._publish_decision,
            logger=logging.getLogger("runtime.arbiter"),
        )
        self._registrations = [
            self._cycle_timer.subscribe(self._publish_cycle_event),
            self._cycle_timer.subscribe(self._arbiter),
        ]

    def request_stop(self) -> None:
        self._stop_requested.set()

    def run(self) -> int:
        self._bootstrap.hooks.setup_signal_handlers(self.request_stop)
        self._publish_startup_sync()
        self._logger.info("Ready.")

        try:
            while not self._stop_requested.is_set():
                try:
                    self._emit_cycle_events()
                except Exception as error:
                    self._logger.error("Cycle update failed: %s", error, exc_info=True)

                event = self._poll_event()
                if event is None:
                    continue
                self._handle_event(event)
            return 0
        except KeyboardInterrupt:
            self._logger.info("Shutdown requested by keyboard interrupt.")
            return 0
        except Exception as error:
            self._logger.error("Unexpected error: %s", error, exc_info=True)
            return 1
        finally:
            self._shutdown()

    def _publish_startup_sync(self) -> None:
        self._ui.publish_settings(self._bootstrap.settings_store.load())
        snapshot = self._cycle_timer.snapshot()
        self._ui.publish_cycle_update(
            snapshot,
            action=ACTION_SYNC,
            accepted=True,
            reason=REASON_STARTUP,
        )
        self._ui.publish_cycle_state(snapshot)
        if self._bootstrap.durable_unavailable:
            self._ui.publish_warning(SCHEDULING_DENIED_WARNING)

    def _emit_cycle_events(self) -> None:
        events = self._cycle_timer.poll()
        if not any(isinstance(event, PhaseEndedEvent) for event in events):
            return

        snapshot = self._cycle_timer.snapshot()
        self._ui.publish_cycle_update(
            snapshot,
            action=ACTION_SYNC,
            accepted=True,
            reason=REASON_TICK,
        )
        self._ui.publish_cycle_state(snapshot)
        if not snapshot.durable:
            self._ui.publish_warning(SCHEDULING_DENIED_WARNING)

    def _publish_cycle_event(self, event: CycleEvent) -> None:
        snapshot = self._cycle_timer.snapshot()
        if isinstance(event, TickEvent):
            self._ui.publish_cycle_update(
                snapshot,
                action=ACTION_TICK,
                accepted=True,
                reason=REASON_TICK,
            )
            return
        self._ui.publish_cycle_update(
            snapshot,
            action=ACTION_PHASE_ENDED,
            accepted=True,
            reason=event.phase,
        )

    def _publish_decision(self, decision: DeliveryDecision) -> None:
        self._ui.publish_alarm(route=decision.route, phase_is_work=decision.phase_is_work)

    def _poll_event(self) -> Optional[Any]:
        try:
            return self._bootstrap.event_queue.get(timeout=POLL_TIMEOUT_SECONDS)
        except Empty:
            return None

    def _handle_event(self, event: Any) -> None:
        visibility = self._bootstrap.visibility
        if isinstance(event, UICommandEvent):
            try:
                self._dispatcher.handle(event)
            except Exception as error:
                self._logger.error("UI command %s failed: %s", event.action, error, exc_info=True)
                self._ui.publish(
                    EVENT_ERROR,
                    state=STATE_ERROR,
                    message=f"Command {event.action} failed: {error}",
                )
            return

        if isinstance(event, UIVisibilityEvent):
            visibility.set_visible(event.client_id, event.visible)
            return

        if isinstance(event, UIClientConnectedEvent):
            visibility.client_connected(event.client_id)
            return

        if isinstance(event, UIClientDisconnectedEvent):
            visibility.client_disconnected(event.client_id)
            return

        self._logger.warning("Ignoring unknown event type: %s", type(event).__name__)

    def _shutdown(self) -> None:
        for registration in self._registrations:
            registration.revoke()

        # The durable trigger stays armed so the alarm still fires after exit.
        self._logger.info("Stopping alarm tasks...")
        self._bootstrap.alarm_runner.shutdown()
        self._bootstrap.sound_player.stop()

        ui_server = self._bootstrap.ui_server
        if ui_server is not None:
            self._logger.info("Stopping UI server...")
            try:
                ui_server.stop(timeout_seconds=5.0)
            except Exception as error:
                self._logger.error("Error stopping UI server: %s", error, exc_info=True)
