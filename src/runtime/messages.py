"""Status text builders for cycle snapshots and command outcomes."""

from __future__ import annotations

from pomodoro import CycleSnapshot
from pomodoro.constants import (
    PHASE_BREAK,
    PHASE_LONG_BREAK,
    PHASE_WORK,
    REASON_ALREADY_RUNNING,
    REASON_INVALID_DURATION,
    REASON_NOT_RUNNING,
    REASON_SCHEDULING_DENIED,
)

_PHASE_LABELS = {
    PHASE_WORK: "Work",
    PHASE_BREAK: "Break",
    PHASE_LONG_BREAK: "Long break",
}

SCHEDULING_DENIED_WARNING = (
    "Background alarms are unavailable; keep the app running to hear the alarm."
)


def format_duration(seconds: int) -> str:
    """Format a duration in seconds as `MM:SS`."""
    minutes, remainder = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{remainder:02d}"


def phase_label(phase: str) -> str:
    return _PHASE_LABELS.get(phase, "Ready")


def cycle_status_message(snapshot: CycleSnapshot) -> str:
    """Build status text for the current cycle snapshot."""
    if snapshot.is_idle:
        return "Ready"
    remaining = format_duration(snapshot.remaining_seconds)
    label = phase_label(snapshot.phase)
    if snapshot.running:
        return f"{label} ({remaining} remaining)"
    return f"{label} paused ({remaining} remaining)"


def rejection_text(action: str, reason: str) -> str:
    """Return user-facing text for a rejected command."""
    if reason == REASON_ALREADY_RUNNING:
        return "The timer is already running."
    if reason == REASON_NOT_RUNNING:
        return "The timer is not running."
    if reason == REASON_INVALID_DURATION:
        return "Durations and cycles must be positive whole numbers."
    if reason == REASON_SCHEDULING_DENIED:
        return SCHEDULING_DENIED_WARNING
    return f"Cannot {action.replace('_', ' ')} right now."
