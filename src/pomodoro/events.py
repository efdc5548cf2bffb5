"""Event payloads and observer registrations emitted by the cycle timer."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Literal, Optional

CyclePhase = Literal["idle", "work", "break", "long_break"]


@dataclass(frozen=True)
class TickEvent:
    """Live countdown update for the interval currently running."""
    phase: CyclePhase
    remaining_seconds: int
    interval_id: int


@dataclass(frozen=True)
class PhaseEndedEvent:
    """Emitted when an interval expires naturally, before the next phase starts."""
    phase: CyclePhase
    cycle_count: int
    interval_id: int
    deadline_id: Optional[str] = None

    @property
    def is_work(self) -> bool:
        return self.phase == "work"


CycleEvent = TickEvent | PhaseEndedEvent
CycleObserver = Callable[[CycleEvent], None]


class ObserverRegistration:
    """Revocable handle returned by `CycleTimer.subscribe`."""

    def __init__(self, registry: "ObserverRegistry", observer: CycleObserver):
        self._registry = registry
        self._observer = observer
        self._revoked = False

    @property
    def active(self) -> bool:
        return not self._revoked

    def revoke(self) -> None:
        if self._revoked:
            return
        self._revoked = True
        self._registry.remove(self._observer)


class ObserverRegistry:
    """Thread-safe list of observers; dispatch iterates over a copy.

    A failing observer is logged and does not keep later observers from
    seeing the event.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._observers: list[CycleObserver] = []
        self._logger = logger or logging.getLogger("pomodoro.events")
        self._lock = threading.Lock()

    def add(self, observer: CycleObserver) -> ObserverRegistration:
        with self._lock:
            self._observers.append(observer)
        return ObserverRegistration(self, observer)

    def remove(self, observer: CycleObserver) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def dispatch(self, event: CycleEvent) -> None:
        with self._lock:
            observers = tuple(self._observers)
        for observer in observers:
            try:
                observer(event)
            except Exception as error:
                self._logger.error(
                    "Cycle observer failed on %s: %s",
                    type(event).__name__,
                    error,
                    exc_info=True,
                )

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)
