from .clock import ClockReading, IntervalClock
from .config import CycleConfig, InvalidDurationError
from .events import (
    CycleEvent,
    CycleObserver,
    CyclePhase,
    ObserverRegistration,
    PhaseEndedEvent,
    TickEvent,
)
from .service import CycleActionResult, CycleSnapshot, CycleTimer

__all__ = [
    "ClockReading",
    "CycleActionResult",
    "CycleConfig",
    "CycleEvent",
    "CycleObserver",
    "CyclePhase",
    "CycleSnapshot",
    "CycleTimer",
    "IntervalClock",
    "InvalidDurationError",
    "ObserverRegistration",
    "PhaseEndedEvent",
    "TickEvent",
]
