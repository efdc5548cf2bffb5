import tempfile
import unittest
import wave
from pathlib import Path

import numpy as np

from alarm import InvalidSoundResource, SoundPlayer, load_sound
from alarm.sound import resolve_sound_path


class FakeStream:
    def __init__(self, samples, on_finished):
        self.samples = samples
        self.on_finished = on_finished
        self.stopped = 0
        self.closed = 0

    def stop(self) -> None:
        self.stopped += 1

    def close(self) -> None:
        self.closed += 1


class FakeOutput:
    def __init__(self):
        self.streams: list[FakeStream] = []

    def open_stream(self, wav, sample_rate_hz, on_finished):
        stream = FakeStream(wav, on_finished)
        self.streams.append(stream)
        return stream

    def open_streams(self) -> list[FakeStream]:
        return [stream for stream in self.streams if not stream.closed]


def _write_wav(path: Path, *, channels: int = 1, frames: int = 800) -> None:
    samples = (np.sin(np.linspace(0, 40, frames * channels)) * 10000).astype("<i2")
    with wave.open(str(path), "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(2)
        wav_file.setframerate(8000)
        wav_file.writeframes(samples.tobytes())


class SoundPlayerTests(unittest.TestCase):
    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.root = Path(temp_dir.name)
        self.output = FakeOutput()
        self.player = SoundPlayer(self.output)

    def test_play_twice_keeps_single_stream(self) -> None:
        self.player.play()
        self.player.play()

        self.assertEqual(2, len(self.output.streams))
        self.assertEqual(1, len(self.output.open_streams()))
        self.assertEqual(1, self.output.streams[0].stopped)
        self.assertTrue(self.player.is_playing)

    def test_preview_replaces_alarm_stream(self) -> None:
        self.player.play()
        self.player.preview(None)

        self.assertEqual(1, len(self.output.open_streams()))

    def test_stop_is_idempotent(self) -> None:
        self.player.stop()
        self.player.play()
        self.player.stop()
        self.player.stop()

        self.assertFalse(self.player.is_playing)
        self.assertEqual(1, self.output.streams[0].closed)

    def test_invalid_uri_falls_back_to_default(self) -> None:
        with self.assertLogs("alarm.sound", level="INFO"):
            selected = self.player.select(str(self.root / "missing.wav"))

        self.assertEqual("default", selected)
        self.assertEqual("default", self.player.selected_ref)

    def test_undecodable_file_falls_back_to_default(self) -> None:
        bogus = self.root / "bogus.wav"
        bogus.write_bytes(b"not a wav file")

        self.assertEqual("default", self.player.select(str(bogus)))

    def test_valid_wav_is_selected_and_played(self) -> None:
        path = self.root / "bell.wav"
        _write_wav(path)

        selected = self.player.select(path.as_uri())
        self.player.play()

        self.assertEqual(path.as_uri(), selected)
        self.assertEqual(800, len(self.output.streams[0].samples))

    def test_finished_callback_releases_stream(self) -> None:
        self.player.play()
        stream = self.output.streams[0]

        stream.on_finished()

        self.assertFalse(self.player.is_playing)

    def test_stale_finished_callback_is_ignored(self) -> None:
        self.player.play()
        first = self.output.streams[0]
        self.player.play()

        first.on_finished()

        self.assertTrue(self.player.is_playing)


class LoadSoundTests(unittest.TestCase):
    def test_stereo_is_downmixed_to_mono_float32(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "stereo.wav"
            _write_wav(path, channels=2, frames=400)

            clip = load_sound(str(path))

        self.assertEqual(np.float32, clip.samples.dtype)
        self.assertEqual(400, len(clip.samples))
        self.assertEqual(8000, clip.sample_rate_hz)
        self.assertLessEqual(float(np.max(np.abs(clip.samples))), 1.0)

    def test_rejects_remote_schemes(self) -> None:
        with self.assertRaises(InvalidSoundResource):
            resolve_sound_path("https://example.com/bell.wav")

    def test_file_uri_is_unquoted(self) -> None:
        self.assertEqual(
            Path("/tmp/my bell.wav"),
            resolve_sound_path("file:///tmp/my%20bell.wav"),
        )


if __name__ == "__main__":
    unittest.main()
