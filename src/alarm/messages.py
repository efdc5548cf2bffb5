"""Notification text for alarms raised at the end of an interval."""

from __future__ import annotations

WORK_OVER_TITLE = "Work Session Over!"
WORK_OVER_TEXT = "Work time is over! You can now take a break."
BREAK_OVER_TITLE = "Break Over!"
BREAK_OVER_TEXT = "Break time is over! You need to get back to work."
STOP_ACTION_LABEL = "Stop alarm"


def alarm_notification_text(phase_is_work: bool) -> tuple[str, str]:
    """Return `(title, body)` for the interval kind that just ended."""
    if phase_is_work:
        return WORK_OVER_TITLE, WORK_OVER_TEXT
    return BREAK_OVER_TITLE, BREAK_OVER_TEXT
