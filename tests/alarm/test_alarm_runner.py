import os
import subprocess
import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

from alarm import (
    ALARM_TASK_TAG,
    AlarmTaskRequest,
    AlarmTaskRunner,
    NotificationError,
    NotifySendNotification,
)
from alarm.runner import pid_file_path, read_pid_file, remove_pid_file, write_pid_file


class FakeTask:
    def __init__(self, request):
        self.request = request
        self.started = threading.Event()
        self.stop_event = threading.Event()

    def cancel(self) -> None:
        self.stop_event.set()

    def run(self) -> str:
        self.started.set()
        return "stopped" if self.stop_event.wait(5.0) else "timed_out"


class AlarmTaskRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tasks: list[FakeTask] = []

        def factory(request):
            task = FakeTask(request)
            self.tasks.append(task)
            return task

        temp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(temp_dir.cleanup)
        self.state_dir = Path(temp_dir.name)
        self.runner = AlarmTaskRunner(factory, state_dir=self.state_dir)
        self.addCleanup(self.runner.shutdown)

    def test_cancel_by_tag_stops_running_task(self) -> None:
        future = self.runner.submit(AlarmTaskRequest(phase_is_work=True))
        self.assertTrue(self.tasks[0].started.wait(2.0))

        cancelled = self.runner.cancel_by_tag(ALARM_TASK_TAG)

        self.assertEqual(1, cancelled)
        self.assertEqual("stopped", future.result(timeout=2.0))

    def test_submit_supersedes_task_with_same_tag(self) -> None:
        first = self.runner.submit(AlarmTaskRequest())
        self.assertTrue(self.tasks[0].started.wait(2.0))

        self.runner.submit(AlarmTaskRequest(phase_is_work=True))

        self.assertEqual("stopped", first.result(timeout=2.0))
        self.assertEqual(2, len(self.tasks))

    def test_cancel_without_tasks_returns_zero(self) -> None:
        self.assertEqual(0, self.runner.cancel_by_tag("other"))

    def test_cancel_signals_registered_alarm_process(self) -> None:
        pid_path = pid_file_path(self.state_dir, ALARM_TASK_TAG)
        write_pid_file(pid_path, pid=424242)

        with patch("alarm.runner._process_matches", return_value=True):
            with patch("alarm.runner.os.kill") as kill:
                cancelled = self.runner.cancel_by_tag(ALARM_TASK_TAG)

        self.assertEqual(1, cancelled)
        kill.assert_called_once()
        self.assertEqual(424242, kill.call_args.args[0])

    def test_stale_pid_file_is_removed(self) -> None:
        pid_path = pid_file_path(self.state_dir, ALARM_TASK_TAG)
        write_pid_file(pid_path, pid=424242)

        with patch("alarm.runner._process_matches", return_value=False):
            self.assertEqual(0, self.runner.cancel_by_tag(ALARM_TASK_TAG))

        self.assertFalse(pid_path.exists())


class PidFileTests(unittest.TestCase):
    def test_remove_only_own_pid(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "alarm.pid"
            write_pid_file(path, pid=1234)

            remove_pid_file(path)
            self.assertEqual(1234, read_pid_file(path))

            remove_pid_file(path, pid=1234)
            self.assertIsNone(read_pid_file(path))

    def test_defaults_to_current_process(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "alarm.pid"
            write_pid_file(path)

            self.assertEqual(os.getpid(), read_pid_file(path))


class FakeProcess:
    def __init__(self, stdout_lines):
        self.stdout = iter(stdout_lines)
        self.terminated = False

    def poll(self):
        return None if not self.terminated else 0

    def terminate(self) -> None:
        self.terminated = True

    def wait(self, timeout=None):
        return 0


class NotifySendNotificationTests(unittest.TestCase):
    def test_command_requests_critical_notification_with_stop_action(self) -> None:
        command = NotifySendNotification().build_command("Break Over!", "Back to work.")

        self.assertEqual("notify-send", command[0])
        self.assertIn("--urgency=critical", command)
        self.assertIn("--action=stop=Stop alarm", command)
        self.assertIn("--wait", command)
        self.assertEqual(["Break Over!", "Back to work."], command[-2:])

    def test_stop_action_invokes_callback_and_clear_terminates(self) -> None:
        process = FakeProcess(["stop\n"])
        stopped = threading.Event()
        notification = NotifySendNotification(popen=lambda *args, **kwargs: process)

        notification.show("Work Session Over!", "Take a break.", stopped.set)

        self.assertTrue(stopped.wait(2.0))
        notification.clear()
        self.assertTrue(process.terminated)

    def test_missing_binary_raises_notification_error(self) -> None:
        def popen(*args, **kwargs):
            raise FileNotFoundError("notify-send")

        notification = NotifySendNotification(popen=popen)

        with self.assertRaises(NotificationError):
            notification.show("t", "x", lambda: None)

    def test_popen_receives_pipe_for_actions(self) -> None:
        calls = []

        def popen(*args, **kwargs):
            calls.append(kwargs)
            return FakeProcess([])

        NotifySendNotification(popen=popen).show("t", "x", lambda: None)

        self.assertEqual(subprocess.PIPE, calls[0]["stdout"])


if __name__ == "__main__":
    unittest.main()
