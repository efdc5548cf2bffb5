"""Sounddevice-backed non-blocking playback for alarm clips."""

import logging
from typing import Callable, Optional

import numpy as np
import sounddevice as sd

from .errors import AudioPlaybackError


class SoundDeviceOutput:
    """Plays mono float32 PCM arrays through a selected sounddevice output."""
    def __init__(
        self,
        output_device_index: Optional[int] = None,
        blocksize: int = 2048,
        logger: Optional[logging.Logger] = None,
    ):
        self._output_device_index = output_device_index
        self._blocksize = blocksize
        self._logger = logger or logging.getLogger(__name__)

    def open_stream(
        self,
        wav: np.ndarray,
        sample_rate_hz: int,
        on_finished: Callable[[], None],
    ) -> sd.OutputStream:
        """Start playback and return the running stream without blocking."""
        if wav.ndim != 1:
            raise AudioPlaybackError("Expected mono PCM array for playback")
        if len(wav) == 0:
            raise AudioPlaybackError("Cannot play empty audio buffer")

        pos = 0

        def callback(outdata, frames, time_info, status):
            nonlocal pos
            if status:
                self._logger.warning("Sounddevice status: %s", status)

            end = pos + frames
            chunk = wav[pos:end]

            if len(chunk) < frames:
                outdata[: len(chunk), 0] = chunk
                outdata[len(chunk) :, 0] = 0
                raise sd.CallbackStop()

            outdata[:, 0] = chunk
            pos = end

        try:
            stream = sd.OutputStream(
                channels=1,
                samplerate=sample_rate_hz,
                blocksize=self._blocksize,
                dtype="float32",
                callback=callback,
                finished_callback=on_finished,
                device=self._output_device_index,
            )
            stream.start()
        except Exception as error:
            raise AudioPlaybackError(f"Audio playback failed: {error}") from error

        self._logger.debug(
            "Started playback of %d samples at %d Hz",
            len(wav),
            sample_rate_hz,
        )
        return stream
