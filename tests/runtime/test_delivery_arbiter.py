import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from alarm import AudioPlaybackError
from deadline import DeliveryLedger, LedgerError
from pomodoro import PhaseEndedEvent, TickEvent
from runtime.arbiter import DeliveryArbiter
from runtime.visibility import AppVisibility


class FakePlayer:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.plays = 0

    def play(self) -> None:
        self.plays += 1
        if self.error is not None:
            raise self.error


class FakeRunner:
    def __init__(self):
        self.submitted: list = []
        self.cancelled_tags: list[str] = []

    def submit(self, request, *, tag="pomodoro_alarm"):
        self.submitted.append((request, tag))

    def cancel_by_tag(self, tag="pomodoro_alarm") -> int:
        self.cancelled_tags.append(tag)
        return 0


class FakeScheduler:
    def __init__(self):
        self.cancelled: list = []

    def cancel(self, deadline_id=None) -> bool:
        self.cancelled.append(deadline_id)
        return True


class DeliveryArbiterTests(unittest.TestCase):
    def setUp(self) -> None:
        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.ledger = DeliveryLedger(Path(temp_dir.name))
        self.visibility = AppVisibility()
        self.player = FakePlayer()
        self.runner = FakeRunner()
        self.scheduler = FakeScheduler()
        self.decisions: list = []

    def _arbiter(self) -> DeliveryArbiter:
        return DeliveryArbiter(
            visibility=self.visibility,
            sound_player=self.player,
            runner=self.runner,
            scheduler=self.scheduler,
            ledger=self.ledger,
            sound_ref_provider=lambda: "file:///tmp/bell.wav",
            on_decision=self.decisions.append,
        )

    def test_foreground_plays_sound_and_cancels_durable_deadline(self) -> None:
        self.visibility.client_connected("tab-1")

        decision = self._arbiter().deliver(
            PhaseEndedEvent(phase="work", cycle_count=0, interval_id=1, deadline_id="d1")
        )

        self.assertEqual("foreground", decision.route)
        self.assertEqual(1, self.player.plays)
        self.assertEqual([], self.runner.submitted)
        self.assertEqual(["d1"], self.scheduler.cancelled)
        self.assertTrue(self.ledger.is_claimed("d1"))
        self.assertEqual(["pomodoro_alarm"], self.runner.cancelled_tags)

    def test_background_hands_off_to_alarm_task(self) -> None:
        self.visibility.client_connected("tab-1")
        self.visibility.set_visible("tab-1", False)

        decision = self._arbiter().deliver(
            PhaseEndedEvent(phase="break", cycle_count=1, interval_id=2, deadline_id="d2")
        )

        self.assertEqual("background", decision.route)
        self.assertEqual(0, self.player.plays)
        request, tag = self.runner.submitted[0]
        self.assertEqual("pomodoro_alarm", tag)
        self.assertFalse(request.phase_is_work)
        self.assertEqual("file:///tmp/bell.wav", request.sound_ref)
        self.assertEqual("d2", request.deadline_id)
        self.assertEqual(["d2"], self.scheduler.cancelled)

    def test_no_clients_counts_as_background(self) -> None:
        decision = self._arbiter().deliver(
            PhaseEndedEvent(phase="work", cycle_count=0, interval_id=1, deadline_id="d3")
        )

        self.assertEqual("background", decision.route)
        self.assertTrue(self.runner.submitted[0][0].phase_is_work)

    def test_deadline_already_delivered_by_trigger_is_noop(self) -> None:
        self.visibility.client_connected("tab-1")
        self.assertTrue(self.ledger.claim("d4"))

        decision = self._arbiter().deliver(
            PhaseEndedEvent(phase="work", cycle_count=0, interval_id=1, deadline_id="d4")
        )

        self.assertEqual("race", decision.route)
        self.assertEqual(0, self.player.plays)
        self.assertEqual([], self.runner.submitted)
        self.assertEqual([], self.scheduler.cancelled)
        self.assertEqual([decision], self.decisions)

    def test_delivers_without_deadline_in_degraded_mode(self) -> None:
        self.visibility.client_connected("tab-1")

        decision = self._arbiter().deliver(
            PhaseEndedEvent(phase="work", cycle_count=0, interval_id=1)
        )

        self.assertEqual("foreground", decision.route)
        self.assertEqual(1, self.player.plays)

    def test_unwritable_ledger_still_delivers(self) -> None:
        self.visibility.client_connected("tab-1")

        with patch.object(self.ledger, "claim", side_effect=LedgerError("read-only")):
            with self.assertLogs("runtime.arbiter", level="WARNING"):
                decision = self._arbiter().deliver(
                    PhaseEndedEvent(phase="work", cycle_count=0, interval_id=1, deadline_id="d6")
                )

        self.assertEqual("foreground", decision.route)
        self.assertEqual(1, self.player.plays)
        self.assertEqual(["d6"], self.scheduler.cancelled)

    def test_background_route_leaves_running_alarm_task(self) -> None:
        self._arbiter().deliver(
            PhaseEndedEvent(phase="work", cycle_count=0, interval_id=1, deadline_id="d7")
        )

        self.assertEqual([], self.runner.cancelled_tags)
        self.assertEqual(1, len(self.runner.submitted))

    def test_playback_failure_is_logged(self) -> None:
        self.visibility.client_connected("tab-1")
        self.player.error = AudioPlaybackError("device busy")

        with self.assertLogs("runtime.arbiter", level="ERROR"):
            decision = self._arbiter().deliver(
                PhaseEndedEvent(phase="work", cycle_count=0, interval_id=1, deadline_id="d5")
            )

        self.assertEqual("foreground", decision.route)

    def test_observer_ignores_ticks(self) -> None:
        arbiter = self._arbiter()

        arbiter(TickEvent(phase="work", remaining_seconds=5, interval_id=1))

        self.assertEqual([], self.decisions)


class AppVisibilityTests(unittest.TestCase):
    def test_foreground_when_any_client_visible(self) -> None:
        visibility = AppVisibility()
        self.assertFalse(visibility.is_foreground())

        visibility.client_connected("a")
        visibility.client_connected("b")
        visibility.set_visible("a", False)
        self.assertTrue(visibility.is_foreground())

        visibility.client_disconnected("b")
        self.assertFalse(visibility.is_foreground())

    def test_unknown_client_visibility_is_ignored(self) -> None:
        visibility = AppVisibility()

        visibility.set_visible("ghost", True)

        self.assertFalse(visibility.is_foreground())


if __name__ == "__main__":
    unittest.main()
