"""Thread-safe work/break/long-break cycle state machine."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, Literal, Optional, Protocol

from deadline.errors import DeadlineError
from deadline.payload import DEFAULT_SOUND_REF, ExpiryPhase, PendingDeadline, expiry_phase_for

from .clock import IntervalClock
from .config import CycleConfig
from .constants import (
    ACTION_RESET,
    ACTION_RUN,
    ACTION_STOP,
    ACTION_UPDATE_TIMES,
    PHASE_BREAK,
    PHASE_IDLE,
    PHASE_LONG_BREAK,
    PHASE_WORK,
    REASON_ALREADY_RUNNING,
    REASON_NOT_RUNNING,
    REASON_RESET,
    REASON_RESUMED,
    REASON_SCHEDULING_DENIED,
    REASON_STARTED,
    REASON_STOPPED,
    REASON_UPDATED,
)
from .events import (
    CycleEvent,
    CycleObserver,
    CyclePhase,
    ObserverRegistration,
    ObserverRegistry,
    PhaseEndedEvent,
    TickEvent,
)

CycleAction = Literal["run", "stop", "reset", "update_times"]


class DeadlineSchedulerLike(Protocol):
    """Subset of `DeadlineScheduler` used by the cycle timer."""

    def arm(
        self,
        duration_seconds: float,
        phase_at_expiry: ExpiryPhase,
        sound_ref: str,
    ) -> PendingDeadline:
        ...

    def cancel(self, deadline_id: Optional[str] = None) -> bool:
        ...


@dataclass(frozen=True)
class CycleSnapshot:
    """Immutable cycle state exposed to runtime and UI publishers."""
    phase: CyclePhase
    cycle_count: int
    duration_seconds: int
    remaining_seconds: int
    running: bool
    cycle_active: bool
    durable: bool = True
    deadline_id: Optional[str] = None

    @property
    def is_idle(self) -> bool:
        return self.phase == PHASE_IDLE


@dataclass(frozen=True)
class CycleActionResult:
    """Result envelope returned after applying a cycle action."""
    action: CycleAction
    accepted: bool
    reason: str
    snapshot: CycleSnapshot


class CycleTimer:
    """Sequences interval clock runs according to Pomodoro rules.

    `cycle_count` counts work/break pairs since the last long break and is
    incremented when a short break begins. Observers receive `TickEvent`
    while an interval runs and a `PhaseEndedEvent` when it expires, always
    before the next interval starts. Observer callbacks run outside the lock.
    """

    def __init__(
        self,
        *,
        config: Optional[CycleConfig] = None,
        deadline_scheduler: Optional[DeadlineSchedulerLike] = None,
        sound_ref_provider: Optional[Callable[[], str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config or CycleConfig()
        self._deadline_scheduler = deadline_scheduler
        self._sound_ref_provider = sound_ref_provider or (lambda: DEFAULT_SOUND_REF)
        self._logger = logger or logging.getLogger("pomodoro")
        self._lock = threading.Lock()
        self._observers = ObserverRegistry(logger=self._logger)
        self._clock = IntervalClock()

        self._phase: CyclePhase = PHASE_IDLE
        self._cycle_count = 0
        self._duration_seconds = self._config.work_seconds
        self._remaining: float = float(self._config.work_seconds)
        self._running = False
        self._cycle_active = False
        self._interval_id = 0
        self._deadline: Optional[PendingDeadline] = None
        self._durable = True

    @property
    def config(self) -> CycleConfig:
        with self._lock:
            return self._config

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def subscribe(self, observer: CycleObserver) -> ObserverRegistration:
        return self._observers.add(observer)

    def snapshot(self) -> CycleSnapshot:
        with self._lock:
            return self._snapshot_locked()

    def run_cycles(self) -> CycleActionResult:
        """Start a new cycle from idle, or resume a paused one."""
        with self._lock:
            if self._running:
                return self._result_locked(ACTION_RUN, False, REASON_ALREADY_RUNNING)

            if self._cycle_active:
                self._clock.start(self._remaining)
                self._running = True
                durable = self._arm_locked(self._remaining)
                self._logger.info(
                    "Cycle resumed: phase=%s remaining=%.1fs",
                    self._phase,
                    self._remaining,
                )
                reason = REASON_RESUMED if durable else REASON_SCHEDULING_DENIED
                return self._result_locked(ACTION_RUN, True, reason)

            self._cycle_active = True
            self._cycle_count = 0
            durable = self._start_interval_locked(PHASE_WORK, self._config.work_seconds)
            reason = REASON_STARTED if durable else REASON_SCHEDULING_DENIED
            return self._result_locked(ACTION_RUN, True, reason)

    def stop_timer(self) -> CycleActionResult:
        """Pause the running interval, keeping phase and remaining time."""
        with self._lock:
            if not self._running:
                return self._result_locked(ACTION_STOP, False, REASON_NOT_RUNNING)

            self._remaining = self._clock.halt()
            self._running = False
            self._cancel_deadline_locked()
            self._logger.info(
                "Cycle paused: phase=%s remaining=%.1fs",
                self._phase,
                self._remaining,
            )
            return self._result_locked(ACTION_STOP, True, REASON_STOPPED)

    def reset_timer(self) -> CycleActionResult:
        """Return to idle from any state."""
        with self._lock:
            self._clock.halt()
            self._cancel_deadline_locked()
            self._phase = PHASE_IDLE
            self._cycle_count = 0
            self._running = False
            self._cycle_active = False
            self._durable = True
            self._duration_seconds = self._config.work_seconds
            self._remaining = float(self._config.work_seconds)
            self._interval_id += 1
            tick = TickEvent(
                phase=PHASE_IDLE,
                remaining_seconds=self._config.work_seconds,
                interval_id=self._interval_id,
            )
            result = self._result_locked(ACTION_RESET, True, REASON_RESET)
            self._logger.info("Cycle reset")

        self._observers.dispatch(tick)
        return result

    def update_times(
        self,
        work_seconds: int,
        break_seconds: int,
        long_break_seconds: int,
        cycles_before_long_break: int,
    ) -> CycleActionResult:
        """Replace the config; raises `InvalidDurationError` and keeps the old one on bad input.

        The interval in flight keeps its length; only later intervals use the new values.
        """
        config = CycleConfig(
            work_seconds=work_seconds,
            break_seconds=break_seconds,
            long_break_seconds=long_break_seconds,
            cycles_before_long_break=cycles_before_long_break,
        )
        with self._lock:
            self._config = config
            if not self._cycle_active:
                self._duration_seconds = config.work_seconds
                self._remaining = float(config.work_seconds)
            self._logger.info(
                "Cycle times updated: work=%ss break=%ss long_break=%ss cycles=%d",
                config.work_seconds,
                config.break_seconds,
                config.long_break_seconds,
                config.cycles_before_long_break,
            )
            return self._result_locked(ACTION_UPDATE_TIMES, True, REASON_UPDATED)

    def poll(self) -> list[CycleEvent]:
        """Advance the live clock and dispatch the resulting events.

        Returns the dispatched events so the caller can log or inspect them.
        """
        with self._lock:
            if not self._running:
                return []
            reading = self._clock.poll()
            if reading is None:
                return []
            if not reading.completed:
                tick = TickEvent(
                    phase=self._phase,
                    remaining_seconds=reading.remaining_seconds,
                    interval_id=self._interval_id,
                )
            else:
                tick = None
                self._remaining = 0.0
                ended = PhaseEndedEvent(
                    phase=self._phase,
                    cycle_count=self._cycle_count,
                    interval_id=self._interval_id,
                    deadline_id=self._deadline.deadline_id if self._deadline else None,
                )
                self._logger.info(
                    "Interval ended: phase=%s cycle_count=%d",
                    ended.phase,
                    ended.cycle_count,
                )

        if tick is not None:
            self._observers.dispatch(tick)
            return [tick]

        try:
            self._observers.dispatch(ended)
        finally:
            with self._lock:
                # A reset issued meanwhile wins over the transition.
                if self._interval_id == ended.interval_id and self._cycle_active:
                    self._advance_locked(start=self._running)
        return [ended]

    def _advance_locked(self, *, start: bool = True) -> None:
        if self._phase == PHASE_WORK:
            if self._cycle_count < self._config.cycles_before_long_break:
                self._cycle_count += 1
                next_phase, duration = PHASE_BREAK, self._config.break_seconds
            else:
                self._cycle_count = 0
                next_phase, duration = PHASE_LONG_BREAK, self._config.long_break_seconds
        else:
            if self._phase == PHASE_LONG_BREAK:
                self._cycle_count = 0
            next_phase, duration = PHASE_WORK, self._config.work_seconds

        if start:
            self._start_interval_locked(next_phase, duration)
            return

        # Paused while the previous interval was ending: queue the next one paused.
        self._phase = next_phase
        self._interval_id += 1
        self._duration_seconds = duration
        self._remaining = float(duration)

    def _start_interval_locked(self, phase: CyclePhase, duration_seconds: int) -> bool:
        self._phase = phase
        self._interval_id += 1
        self._duration_seconds = duration_seconds
        self._remaining = float(duration_seconds)
        self._clock.start(duration_seconds)
        self._running = True
        self._logger.info(
            "Interval started: phase=%s duration=%ss cycle_count=%d",
            phase,
            duration_seconds,
            self._cycle_count,
        )
        return self._arm_locked(duration_seconds)

    def _arm_locked(self, duration_seconds: float) -> bool:
        if self._deadline_scheduler is None:
            self._deadline = None
            return True

        try:
            self._deadline = self._deadline_scheduler.arm(
                duration_seconds,
                expiry_phase_for(self._phase),
                self._sound_ref_provider() or DEFAULT_SOUND_REF,
            )
        except DeadlineError as error:
            self._deadline = None
            self._durable = False
            self._logger.warning(
                "Durable alarm unavailable, relying on the live countdown: %s",
                error,
            )
            return False

        self._durable = True
        return True

    def _cancel_deadline_locked(self) -> None:
        deadline = self._deadline
        self._deadline = None
        if deadline is None or self._deadline_scheduler is None:
            return
        self._deadline_scheduler.cancel(deadline.deadline_id)

    def _result_locked(
        self,
        action: CycleAction,
        accepted: bool,
        reason: str,
    ) -> CycleActionResult:
        return CycleActionResult(
            action=action,
            accepted=accepted,
            reason=reason,
            snapshot=self._snapshot_locked(),
        )

    def _snapshot_locked(self) -> CycleSnapshot:
        if self._phase == PHASE_IDLE:
            remaining = self._config.work_seconds
            duration = self._config.work_seconds
        else:
            live = self._clock.remaining() if self._running else self._remaining
            remaining = int(math.ceil(live))
            duration = self._duration_seconds

        return CycleSnapshot(
            phase=self._phase,
            cycle_count=self._cycle_count,
            duration_seconds=duration,
            remaining_seconds=remaining,
            running=self._running,
            cycle_active=self._cycle_active,
            durable=self._durable,
            deadline_id=self._deadline.deadline_id if self._deadline else None,
        )
