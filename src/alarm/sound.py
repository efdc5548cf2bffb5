"""Alarm sound selection, decoding, and single-stream playback."""

from __future__ import annotations

import logging
import threading
import wave
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol
from urllib.parse import unquote, urlsplit

import numpy as np

from deadline.payload import DEFAULT_SOUND_REF

from .errors import InvalidSoundResource

DEFAULT_SAMPLE_RATE_HZ = 44100
_DEFAULT_TONE_PATTERN = ((880.0, 0.25), (0.0, 0.1), (660.0, 0.25), (0.0, 0.4))
_DEFAULT_TONE_REPEATS = 6
_PCM_SCALE = {1: 128.0, 2: 32768.0, 4: 2147483648.0}


class PlaybackStream(Protocol):
    def stop(self) -> None:
        ...

    def close(self) -> None:
        ...


class AudioOutputLike(Protocol):
    """Subset of `SoundDeviceOutput` used by the sound player."""

    def open_stream(
        self,
        wav: np.ndarray,
        sample_rate_hz: int,
        on_finished: Callable[[], None],
    ) -> PlaybackStream:
        ...


@dataclass(frozen=True)
class SoundClip:
    """Decoded mono float32 samples plus the reference they came from."""
    ref: str
    samples: np.ndarray
    sample_rate_hz: int

    @property
    def duration_seconds(self) -> float:
        return len(self.samples) / self.sample_rate_hz


def default_alarm_clip(sample_rate_hz: int = DEFAULT_SAMPLE_RATE_HZ) -> SoundClip:
    """Build the built-in two-tone alarm used when no valid sound is selected."""
    segments: list[np.ndarray] = []
    for frequency_hz, duration_seconds in _DEFAULT_TONE_PATTERN:
        count = int(sample_rate_hz * duration_seconds)
        if frequency_hz <= 0:
            segments.append(np.zeros(count, dtype=np.float32))
            continue
        t = np.arange(count, dtype=np.float32) / sample_rate_hz
        tone = 0.4 * np.sin(2 * np.pi * frequency_hz * t)
        # Short fade in/out avoids clicks at segment edges.
        ramp = min(count // 2, int(sample_rate_hz * 0.01))
        if ramp:
            envelope = np.ones(count, dtype=np.float32)
            envelope[:ramp] = np.linspace(0.0, 1.0, ramp, dtype=np.float32)
            envelope[-ramp:] = np.linspace(1.0, 0.0, ramp, dtype=np.float32)
            tone = tone * envelope
        segments.append(tone.astype(np.float32))

    pattern = np.concatenate(segments)
    samples = np.tile(pattern, _DEFAULT_TONE_REPEATS).astype(np.float32)
    return SoundClip(ref=DEFAULT_SOUND_REF, samples=samples, sample_rate_hz=sample_rate_hz)


def resolve_sound_path(uri: str) -> Path:
    """Map a plain path or `file://` URI to a filesystem path."""
    text = (uri or "").strip()
    if not text:
        raise InvalidSoundResource("Sound reference is empty")

    parts = urlsplit(text)
    if parts.scheme == "file":
        if parts.netloc not in ("", "localhost"):
            raise InvalidSoundResource(f"Remote file URIs are not supported: {uri}")
        return Path(unquote(parts.path))
    if parts.scheme and len(parts.scheme) > 1:
        raise InvalidSoundResource(f"Unsupported sound URI scheme: {parts.scheme}")
    return Path(text).expanduser()


def load_sound(uri: str) -> SoundClip:
    """Decode a PCM WAV file into mono float32 samples."""
    path = resolve_sound_path(uri)
    if not path.is_file():
        raise InvalidSoundResource(f"Sound file not found: {path}")

    try:
        with wave.open(str(path), "rb") as wav_file:
            channels = wav_file.getnchannels()
            sample_width = wav_file.getsampwidth()
            sample_rate_hz = wav_file.getframerate()
            frames = wav_file.readframes(wav_file.getnframes())
    except (wave.Error, EOFError, OSError) as error:
        raise InvalidSoundResource(f"Cannot decode sound file {path}: {error}") from error

    if sample_width not in _PCM_SCALE:
        raise InvalidSoundResource(
            f"Unsupported sample width in {path}: {sample_width * 8} bits"
        )
    if not frames or sample_rate_hz <= 0 or channels <= 0:
        raise InvalidSoundResource(f"Sound file has no audio: {path}")

    samples = _pcm_to_float32(frames, sample_width)
    usable = len(samples) - (len(samples) % channels)
    if usable <= 0:
        raise InvalidSoundResource(f"Sound file has no complete frames: {path}")
    samples = samples[:usable].reshape(-1, channels).mean(axis=1).astype(np.float32)
    return SoundClip(ref=uri.strip(), samples=samples, sample_rate_hz=sample_rate_hz)


def _pcm_to_float32(frames: bytes, sample_width: int) -> np.ndarray:
    if sample_width == 1:
        raw = np.frombuffer(frames, dtype=np.uint8).astype(np.float32) - 128.0
    elif sample_width == 2:
        raw = np.frombuffer(frames, dtype="<i2").astype(np.float32)
    else:
        raw = np.frombuffer(frames, dtype="<i4").astype(np.float32)
    return raw / _PCM_SCALE[sample_width]


class SoundPlayer:
    """Plays the selected alarm sound, never more than one stream at a time.

    Invalid selections fall back to the built-in tone without raising.
    `AudioPlaybackError` from the device is the only error `play` raises.
    """

    def __init__(
        self,
        output: AudioOutputLike,
        *,
        loader: Callable[[str], SoundClip] = load_sound,
        logger: Optional[logging.Logger] = None,
    ):
        self._output = output
        self._loader = loader
        self._logger = logger or logging.getLogger("alarm.sound")
        # Serializes play/stop; held while streams stop so the audio thread
        # only ever needs the inner state lock.
        self._playback_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._default_clip = default_alarm_clip()
        self._selected = self._default_clip
        self._stream: Optional[PlaybackStream] = None
        self._generation = 0

    @property
    def selected_ref(self) -> str:
        with self._state_lock:
            return self._selected.ref

    @property
    def is_playing(self) -> bool:
        with self._state_lock:
            return self._stream is not None

    def select(self, uri: Optional[str]) -> str:
        """Validate and store `uri`; returns the reference actually selected."""
        clip = self._resolve(uri)
        with self._state_lock:
            self._selected = clip
        return clip.ref

    def play(self) -> None:
        with self._state_lock:
            clip = self._selected
        self._start(clip)

    def preview(self, uri: Optional[str]) -> str:
        """Play a candidate sound without changing the selection."""
        clip = self._resolve(uri)
        self._start(clip)
        return clip.ref

    def stop(self) -> None:
        with self._playback_lock:
            self._release(self._detach())

    def _resolve(self, uri: Optional[str]) -> SoundClip:
        if not uri or uri.strip() in ("", DEFAULT_SOUND_REF):
            return self._default_clip
        try:
            return self._loader(uri)
        except InvalidSoundResource as error:
            self._logger.info("Using default alarm sound: %s", error)
            return self._default_clip

    def _start(self, clip: SoundClip) -> None:
        with self._playback_lock:
            self._release(self._detach())
            with self._state_lock:
                self._generation += 1
                generation = self._generation

            stream = self._output.open_stream(
                clip.samples,
                clip.sample_rate_hz,
                lambda: self._on_finished(generation),
            )
            with self._state_lock:
                if generation == self._generation:
                    self._stream = stream
                    stream = None
            if stream is not None:
                # Finished before we could record it.
                self._release(stream)
                return
            self._logger.info(
                "Playing alarm sound: %s (%.1fs)",
                clip.ref,
                clip.duration_seconds,
            )

    def _detach(self) -> Optional[PlaybackStream]:
        with self._state_lock:
            stream = self._stream
            self._stream = None
            self._generation += 1
            return stream

    def _release(self, stream: Optional[PlaybackStream]) -> None:
        if stream is not None:
            _release_stream(stream, self._logger)

    def _on_finished(self, generation: int) -> None:
        # Runs on the audio thread; release the stream off that thread.
        with self._state_lock:
            if generation != self._generation:
                return
            stream = self._stream
            self._stream = None
            self._generation += 1
        if stream is None:
            return
        threading.Thread(
            target=_release_stream,
            args=(stream, self._logger),
            daemon=True,
            name="alarm-sound-release",
        ).start()


def _release_stream(stream: Any, logger: logging.Logger) -> None:
    try:
        stream.stop()
        stream.close()
    except Exception as error:
        logger.warning("Failed to release audio stream: %s", error)
