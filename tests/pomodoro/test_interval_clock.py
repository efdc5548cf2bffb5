import time
import unittest
from unittest.mock import patch

from pomodoro import ClockReading, CycleConfig, IntervalClock, InvalidDurationError


class IntervalClockTests(unittest.TestCase):
    def test_poll_emits_each_whole_second_then_completion(self) -> None:
        clock = IntervalClock()
        with patch(
            "pomodoro.clock.boot_time",
            side_effect=[100.0, 100.0, 100.5, 101.0, 102.2, 103.0, 104.0],
        ):
            clock.start(3)
            readings = [clock.poll() for _ in range(6)]

        self.assertEqual(
            [
                ClockReading(3),
                None,
                ClockReading(2),
                ClockReading(1),
                ClockReading(0, completed=True),
                None,
            ],
            readings,
        )
        self.assertFalse(clock.running)

    def test_halt_returns_precise_remaining(self) -> None:
        clock = IntervalClock()
        with patch("pomodoro.clock.boot_time", side_effect=[10.0, 12.25]):
            clock.start(5)
            remaining = clock.halt()

        self.assertAlmostEqual(2.75, remaining)
        self.assertAlmostEqual(2.75, clock.remaining())
        self.assertIsNone(clock.poll())

    def test_time_spent_suspended_counts_toward_interval(self) -> None:
        readings = {"boot": 500.0}

        def clock_gettime(clock_id):
            self.assertEqual(time.CLOCK_BOOTTIME, clock_id)
            return readings["boot"]

        clock = IntervalClock()
        # The monotonic clock stands still across a 20 minute suspend.
        with patch("pomodoro.clock.time.monotonic", return_value=42.0), patch(
            "pomodoro.clock.time.clock_gettime",
            side_effect=clock_gettime,
        ):
            clock.start(60)
            self.assertEqual(ClockReading(60), clock.poll())
            readings["boot"] += 20 * 60
            reading = clock.poll()

        self.assertEqual(ClockReading(0, completed=True), reading)


class CycleConfigTests(unittest.TestCase):
    def test_from_minutes_converts_to_seconds(self) -> None:
        config = CycleConfig.from_minutes(25, 5, 15, 4)

        self.assertEqual(1500, config.work_seconds)
        self.assertEqual(300, config.break_seconds)
        self.assertEqual(900, config.long_break_seconds)
        self.assertEqual(15, config.long_break_minutes)

    def test_rejects_non_positive_values(self) -> None:
        for kwargs in (
            {"work_seconds": 0},
            {"break_seconds": -60},
            {"long_break_seconds": 0},
            {"cycles_before_long_break": 0},
        ):
            with self.subTest(**kwargs):
                with self.assertRaises(InvalidDurationError):
                    CycleConfig(**kwargs)

    def test_rejects_non_integer_values(self) -> None:
        with self.assertRaises(InvalidDurationError):
            CycleConfig(work_seconds=True)
        with self.assertRaises(InvalidDurationError):
            CycleConfig.from_minutes("25", 5, 15, 4)


if __name__ == "__main__":
    unittest.main()
