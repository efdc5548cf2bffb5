"""Countdown that reports whole-second ticks and completion.

Elapsed time is read from `CLOCK_BOOTTIME`, which keeps counting while the
host is suspended, so the live countdown agrees with the wall-clock durable
trigger after a sleep.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Optional


def boot_time() -> float:
    """Seconds since boot, including time spent suspended."""
    return time.clock_gettime(time.CLOCK_BOOTTIME)


@dataclass(frozen=True)
class ClockReading:
    """Result of polling a running clock."""
    remaining_seconds: int
    completed: bool = False


class IntervalClock:
    """Single countdown with no knowledge of phases or cycles.

    The clock is poll-driven: callers invoke `poll()` from their loop and get
    at most one reading per whole second plus a terminal completion reading.
    """

    def __init__(self):
        self._started_at: Optional[float] = None
        self._duration: float = 0.0
        self._halted_remaining: float = 0.0
        self._running = False
        self._completed = False
        self._last_emitted: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self, duration_seconds: float) -> None:
        self._started_at = boot_time()
        self._duration = max(0.0, float(duration_seconds))
        self._halted_remaining = self._duration
        self._running = True
        self._completed = False
        self._last_emitted = None

    def halt(self) -> float:
        """Stop counting and return the exact remaining time."""
        if self._running:
            self._halted_remaining = self._remaining_at(boot_time())
            self._running = False
        return self._halted_remaining

    def remaining(self) -> float:
        if self._running:
            return self._remaining_at(boot_time())
        return self._halted_remaining

    def poll(self) -> Optional[ClockReading]:
        if not self._running or self._completed:
            return None

        remaining = self._remaining_at(boot_time())
        if remaining <= 0:
            self._completed = True
            self._running = False
            self._halted_remaining = 0.0
            self._last_emitted = 0
            return ClockReading(remaining_seconds=0, completed=True)

        whole = int(math.ceil(remaining))
        if whole == self._last_emitted:
            return None
        self._last_emitted = whole
        return ClockReading(remaining_seconds=whole)

    def _remaining_at(self, now: float) -> float:
        if self._started_at is None:
            return self._duration
        elapsed = max(0.0, now - self._started_at)
        return max(0.0, self._duration - elapsed)
