import tempfile
import unittest
from pathlib import Path

from contracts.ui_protocol import (
    COMMAND_PAUSE,
    COMMAND_START,
    COMMAND_STOP_ALARM,
    EVENT_CYCLE,
    EVENT_SETTINGS,
    EVENT_STATE_UPDATE,
    EVENT_WARNING,
)
from deadline import DEFAULT_SOUND_REF
from pomodoro import CycleTimer
from runtime.commands import RuntimeCommandDispatcher, parse_positive_int
from runtime.messages import SCHEDULING_DENIED_WARNING, format_duration
from runtime.ui import RuntimeUIPublisher
from server.events import UICommandEvent
from settings_store import JsonSettingsStore, UserSettings


class FakeUIServer:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def publish(self, event_type, **payload) -> None:
        self.events.append((event_type, payload))

    def publish_state(self, state, *, message=None, **payload) -> None:
        self.events.append((EVENT_STATE_UPDATE, {"state": state, "message": message, **payload}))

    def of_type(self, event_type: str) -> list[dict]:
        return [payload for kind, payload in self.events if kind == event_type]


class FakePlayer:
    def __init__(self, valid_uris=()):
        self.valid_uris = set(valid_uris)
        self.stops = 0
        self.previews: list = []

    def select(self, uri):
        return uri if uri in self.valid_uris else DEFAULT_SOUND_REF

    def preview(self, uri) -> None:
        self.previews.append(uri)

    def stop(self) -> None:
        self.stops += 1


class FakeAlarmRunner:
    def __init__(self):
        self.cancelled_tags: list[str] = []

    def cancel_by_tag(self, tag="pomodoro_alarm") -> int:
        self.cancelled_tags.append(tag)
        return 1


class RuntimeCommandDispatcherTests(unittest.TestCase):
    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.store = JsonSettingsStore(Path(temp_dir.name) / "settings.json")
        self.timer = CycleTimer()
        self.addCleanup(self.timer.reset_timer)
        self.player = FakePlayer(valid_uris={"file:///tmp/bell.wav"})
        self.runner = FakeAlarmRunner()
        self.ui_server = FakeUIServer()
        self.dispatcher = RuntimeCommandDispatcher(
            cycle_timer=self.timer,
            sound_player=self.player,
            alarm_runner=self.runner,
            settings_store=self.store,
            ui=RuntimeUIPublisher(self.ui_server),
        )

    def _times(self, **overrides) -> dict:
        payload = {
            "work_minutes": "50",
            "break_minutes": "10",
            "long_break_minutes": "30",
            "cycles_before_long_break": "3",
        }
        payload.update(overrides)
        return payload

    def test_update_times_applies_and_persists(self) -> None:
        self.assertTrue(self.dispatcher.update_times(self._times()))

        config = self.timer.config
        self.assertEqual(3000, config.work_seconds)
        self.assertEqual(600, config.break_seconds)
        self.assertEqual(1800, config.long_break_seconds)
        self.assertEqual(3, config.cycles_before_long_break)
        self.assertEqual(
            UserSettings(
                work_minutes=50,
                break_minutes=10,
                long_break_minutes=30,
                cycles_before_long_break=3,
            ),
            self.store.load(),
        )
        settings_event = self.ui_server.of_type(EVENT_SETTINGS)[-1]
        self.assertTrue(settings_event["accepted"])
        self.assertEqual(3000, self.timer.snapshot().duration_seconds)

    def test_non_numeric_input_reverts_to_last_good_values(self) -> None:
        self.store.save_times(20, 4, 12, 4)

        self.assertFalse(self.dispatcher.update_times(self._times(work_minutes="abc")))

        self.assertEqual(1500, self.timer.config.work_seconds)
        self.assertEqual(20, self.store.load().work_minutes)
        settings_event = self.ui_server.of_type(EVENT_SETTINGS)[-1]
        self.assertFalse(settings_event["accepted"])
        self.assertEqual(20, settings_event["work_minutes"])
        self.assertIn("message", settings_event)

    def test_zero_and_missing_fields_are_rejected(self) -> None:
        self.assertFalse(self.dispatcher.update_times(self._times(break_minutes="0")))
        self.assertFalse(self.dispatcher.update_times({"work_minutes": "25"}))
        self.assertEqual(UserSettings(), self.store.load())

    def test_select_valid_sound_is_stored(self) -> None:
        selected = self.dispatcher.select_sound("file:///tmp/bell.wav")

        self.assertEqual("file:///tmp/bell.wav", selected)
        self.assertEqual("file:///tmp/bell.wav", self.store.load().alarm_uri)
        self.assertTrue(self.ui_server.of_type(EVENT_SETTINGS)[-1]["accepted"])

    def test_select_invalid_sound_stores_default(self) -> None:
        self.store.save_alarm_uri("file:///tmp/bell.wav")

        selected = self.dispatcher.select_sound("file:///missing.wav")

        self.assertEqual(DEFAULT_SOUND_REF, selected)
        self.assertEqual("", self.store.load().alarm_uri)
        self.assertFalse(self.ui_server.of_type(EVENT_SETTINGS)[-1]["accepted"])

    def test_stop_alarm_stops_sound_and_background_task(self) -> None:
        self.dispatcher.handle(UICommandEvent(action=COMMAND_STOP_ALARM))

        self.assertEqual(1, self.player.stops)
        self.assertEqual(["pomodoro_alarm"], self.runner.cancelled_tags)

    def test_start_and_pause_publish_cycle_updates(self) -> None:
        self.dispatcher.handle(UICommandEvent(action=COMMAND_START))
        self.dispatcher.handle(UICommandEvent(action=COMMAND_PAUSE))
        self.dispatcher.handle(UICommandEvent(action=COMMAND_PAUSE))

        cycle_events = self.ui_server.of_type(EVENT_CYCLE)
        self.assertEqual(["run", "stop", "stop"], [event["action"] for event in cycle_events])
        self.assertEqual([True, True, False], [event["accepted"] for event in cycle_events])
        self.assertEqual("work", cycle_events[0]["phase"])
        self.assertIn("message", cycle_events[2])
        self.assertEqual("paused", self.ui_server.of_type(EVENT_STATE_UPDATE)[-1]["state"])

    def test_preview_forwards_uri(self) -> None:
        self.dispatcher.preview_sound("file:///tmp/bell.wav")
        self.dispatcher.preview_sound(42)

        self.assertEqual(["file:///tmp/bell.wav", None], self.player.previews)

    def test_preview_silences_background_alarm_task_first(self) -> None:
        self.dispatcher.preview_sound("file:///tmp/bell.wav")

        self.assertEqual(["pomodoro_alarm"], self.runner.cancelled_tags)
        self.assertEqual(["file:///tmp/bell.wav"], self.player.previews)


class ParsePositiveIntTests(unittest.TestCase):
    def test_accepts_positive_whole_numbers(self) -> None:
        self.assertEqual(25, parse_positive_int("25"))
        self.assertEqual(7, parse_positive_int(" 7 "))
        self.assertEqual(3, parse_positive_int(3))

    def test_rejects_everything_else(self) -> None:
        for raw in ("abc", "0", "-5", "2.5", "", None, 0, -1, True, 1.5):
            with self.subTest(raw=raw):
                self.assertIsNone(parse_positive_int(raw))


class MessagesTests(unittest.TestCase):
    def test_format_duration(self) -> None:
        self.assertEqual("25:00", format_duration(1500))
        self.assertEqual("00:59", format_duration(59))
        self.assertEqual("00:00", format_duration(-3))

    def test_scheduling_warning_is_user_facing(self) -> None:
        self.assertTrue(SCHEDULING_DENIED_WARNING)


if __name__ == "__main__":
    unittest.main()
