import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from settings_store import JsonSettingsStore, SettingsStoreError, UserSettings


class JsonSettingsStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.path = Path(temp_dir.name) / "nested" / "settings.json"
        self.store = JsonSettingsStore(self.path)

    def test_missing_file_returns_defaults(self) -> None:
        self.assertEqual(UserSettings(), self.store.load())

    def test_save_times_keeps_alarm_uri(self) -> None:
        self.store.save_alarm_uri("file:///tmp/bell.wav")

        saved = self.store.save_times(30, 6, 20, 3)

        self.assertEqual(
            UserSettings(30, 6, 20, 3, "file:///tmp/bell.wav"),
            saved,
        )
        self.assertEqual(saved, JsonSettingsStore(self.path).load())

    def test_malformed_entries_fall_back_per_field(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text(
            json.dumps(
                {
                    "work_minutes": "abc",
                    "break_minutes": 0,
                    "long_break_minutes": 40,
                    "cycles_before_long_break": True,
                    "alarm_uri": 7,
                }
            ),
            encoding="utf-8",
        )

        settings = self.store.load()

        self.assertEqual(25, settings.work_minutes)
        self.assertEqual(5, settings.break_minutes)
        self.assertEqual(40, settings.long_break_minutes)
        self.assertEqual(4, settings.cycles_before_long_break)
        self.assertEqual("", settings.alarm_uri)

    def test_unreadable_json_returns_defaults(self) -> None:
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")

        with self.assertLogs("settings", level="WARNING"):
            self.assertEqual(UserSettings(), self.store.load())

    def test_write_leaves_no_temp_files(self) -> None:
        self.store.save_times(25, 5, 15, 4)

        self.assertEqual(["settings.json"], sorted(p.name for p in self.path.parent.iterdir()))

    def test_write_failure_raises_store_error(self) -> None:
        with patch("settings_store.os.replace", side_effect=OSError("read-only")):
            with self.assertRaises(SettingsStoreError):
                self.store.save_alarm_uri("file:///tmp/bell.wav")


if __name__ == "__main__":
    unittest.main()
