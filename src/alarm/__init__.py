"""Alarm playback, notification, and bounded background delivery.

`alarm.output` is not imported here: it loads PortAudio through sounddevice,
so only the process that actually plays audio imports it.
"""

from .errors import (
    AlarmError,
    AudioPlaybackError,
    InvalidSoundResource,
    NotificationError,
)
from .messages import alarm_notification_text
from .notification import NotificationSurface, NotifySendNotification, SilentNotification
from .runner import ALARM_TASK_TAG, AlarmTaskRunner
from .sound import SoundClip, SoundPlayer, default_alarm_clip, load_sound
from .task import (
    DEFAULT_CEILING_SECONDS,
    AlarmTaskOutcome,
    AlarmTaskRequest,
    BackgroundAlarmTask,
)

__all__ = [
    "ALARM_TASK_TAG",
    "AlarmError",
    "AlarmTaskOutcome",
    "AlarmTaskRequest",
    "AlarmTaskRunner",
    "AudioPlaybackError",
    "BackgroundAlarmTask",
    "DEFAULT_CEILING_SECONDS",
    "InvalidSoundResource",
    "NotificationError",
    "NotificationSurface",
    "NotifySendNotification",
    "SilentNotification",
    "SoundClip",
    "SoundPlayer",
    "alarm_notification_text",
    "default_alarm_clip",
    "load_sound",
]
