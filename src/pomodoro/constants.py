"""Phase, action, and reason constants used by the cycle state machine."""

from __future__ import annotations

DEFAULT_WORK_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5
DEFAULT_LONG_BREAK_MINUTES = 15
DEFAULT_CYCLES_BEFORE_LONG_BREAK = 4

PHASE_IDLE = "idle"
PHASE_WORK = "work"
PHASE_BREAK = "break"
PHASE_LONG_BREAK = "long_break"

ACTION_RUN = "run"
ACTION_STOP = "stop"
ACTION_RESET = "reset"
ACTION_UPDATE_TIMES = "update_times"

ACTION_SYNC = "sync"
ACTION_TICK = "tick"
ACTION_PHASE_ENDED = "phase_ended"

REASON_STARTED = "started"
REASON_RESUMED = "resumed"
REASON_STOPPED = "stopped"
REASON_RESET = "reset"
REASON_UPDATED = "updated"
REASON_ALREADY_RUNNING = "already_running"
REASON_NOT_RUNNING = "not_running"
REASON_INVALID_DURATION = "invalid_duration"
REASON_SCHEDULING_DENIED = "scheduling_denied"
REASON_TICK = "tick"
REASON_STARTUP = "startup"
