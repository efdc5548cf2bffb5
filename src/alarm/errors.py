"""Error types raised by alarm playback and notification components."""


class AlarmError(Exception):
    """Base error for alarm delivery."""


class AudioPlaybackError(AlarmError):
    """Raised when the audio device cannot play a clip."""


class InvalidSoundResource(AlarmError):
    """Raised when a sound reference cannot be decoded.

    `SoundPlayer` recovers from this by substituting the default tone, so it
    never reaches callers of `select` or `play`.
    """


class NotificationError(AlarmError):
    """Raised when the desktop notification cannot be shown."""
