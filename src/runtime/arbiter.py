"""Decides how an interval end reaches the user: sound now or background task."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Protocol

from alarm import ALARM_TASK_TAG, AlarmTaskRequest, AudioPlaybackError
from deadline import DEFAULT_SOUND_REF, DeliveryLedger, LedgerError
from pomodoro import CycleEvent, PhaseEndedEvent

from .visibility import VisibilityLike

DeliveryRoute = Literal["foreground", "background", "race"]


class SchedulerLike(Protocol):
    def cancel(self, deadline_id: Optional[str] = None) -> bool:
        ...


class PlayerLike(Protocol):
    def play(self) -> None:
        ...


class RunnerLike(Protocol):
    def submit(self, request: AlarmTaskRequest, *, tag: str = ALARM_TASK_TAG):
        ...

    def cancel_by_tag(self, tag: str = ALARM_TASK_TAG) -> int:
        ...


@dataclass(frozen=True)
class DeliveryDecision:
    """What the arbiter did for one ended interval."""
    route: DeliveryRoute
    phase_is_work: bool
    deadline_id: Optional[str] = None


class DeliveryArbiter:
    """Delivers each interval end exactly once.

    The ledger claim is shared with the standalone alarm process, so an
    interval end that the durable trigger already delivered (process
    suspended past the deadline) is skipped here.
    """

    def __init__(
        self,
        *,
        visibility: VisibilityLike,
        sound_player: PlayerLike,
        runner: RunnerLike,
        scheduler: Optional[SchedulerLike] = None,
        ledger: Optional[DeliveryLedger] = None,
        sound_ref_provider: Optional[Callable[[], str]] = None,
        on_decision: Optional[Callable[[DeliveryDecision], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._visibility = visibility
        self._sound_player = sound_player
        self._runner = runner
        self._scheduler = scheduler
        self._ledger = ledger
        self._sound_ref_provider = sound_ref_provider or (lambda: DEFAULT_SOUND_REF)
        self._on_decision = on_decision
        self._logger = logger or logging.getLogger("runtime.arbiter")

    def __call__(self, event: CycleEvent) -> None:
        if isinstance(event, PhaseEndedEvent):
            self.deliver(event)

    def deliver(self, event: PhaseEndedEvent) -> DeliveryDecision:
        deadline_id = event.deadline_id
        if deadline_id and not self._claim(deadline_id):
            self._logger.info(
                "Interval end already delivered by the durable trigger: id=%s",
                deadline_id,
            )
            return self._decided("race", event)

        if self._scheduler is not None:
            self._scheduler.cancel(deadline_id)

        if self._visibility.is_foreground():
            # A standalone alarm process may still be sounding a previous deadline.
            self._runner.cancel_by_tag(ALARM_TASK_TAG)
            try:
                self._sound_player.play()
            except AudioPlaybackError as error:
                self._logger.error("Alarm sound playback failed: %s", error)
            return self._decided("foreground", event)

        self._runner.submit(
            AlarmTaskRequest(
                sound_ref=self._sound_ref_provider() or DEFAULT_SOUND_REF,
                phase_is_work=event.is_work,
                deadline_id=deadline_id,
            ),
            tag=ALARM_TASK_TAG,
        )
        return self._decided("background", event)

    def _claim(self, deadline_id: str) -> bool:
        if self._ledger is None:
            return True
        try:
            return self._ledger.claim(deadline_id)
        except LedgerError as error:
            self._logger.warning("Delivering without a ledger claim: %s", error)
            return True

    def _decided(self, route: DeliveryRoute, event: PhaseEndedEvent) -> DeliveryDecision:
        decision = DeliveryDecision(
            route=route,
            phase_is_work=event.is_work,
            deadline_id=event.deadline_id,
        )
        self._logger.info(
            "Interval end delivered: route=%s phase=%s",
            route,
            event.phase,
        )
        if self._on_decision is not None:
            self._on_decision(decision)
        return decision
