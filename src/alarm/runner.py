"""Runs alarm tasks off the caller's thread and cancels them by tag."""

from __future__ import annotations

import concurrent.futures
import logging
import os
import signal
import threading
from pathlib import Path
from typing import Callable, Optional

from .task import AlarmTaskOutcome, AlarmTaskRequest, BackgroundAlarmTask

ALARM_TASK_TAG = "pomodoro_alarm"
PROCESS_MARKER = "alarm_entry"

TaskFactory = Callable[[AlarmTaskRequest], BackgroundAlarmTask]


def pid_file_path(state_dir: str | Path, tag: str = ALARM_TASK_TAG) -> Path:
    return Path(state_dir).expanduser() / f"{tag}.pid"


def write_pid_file(path: Path, pid: Optional[int] = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{pid or os.getpid()}\n", encoding="utf-8")


def remove_pid_file(path: Path, pid: Optional[int] = None) -> None:
    """Remove `path` if it still names `pid` (defaults to this process)."""
    expected = pid or os.getpid()
    if read_pid_file(path) == expected:
        path.unlink(missing_ok=True)


def read_pid_file(path: Path) -> Optional[int]:
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def _process_matches(pid: int) -> bool:
    cmdline = Path("/proc") / str(pid) / "cmdline"
    if not cmdline.parent.exists():
        return False
    try:
        return PROCESS_MARKER in cmdline.read_bytes().decode("utf-8", "replace")
    except OSError:
        # No procfs access: trust the pid file.
        return True


class AlarmTaskRunner:
    """In-process runner for background alarm tasks.

    Tasks submitted here run on a small thread pool. Standalone alarm
    processes started by durable triggers register a pid file under
    `state_dir`, which lets `cancel_by_tag` stop them too.
    """

    def __init__(
        self,
        task_factory: TaskFactory,
        *,
        state_dir: Optional[str | Path] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._task_factory = task_factory
        self._state_dir = Path(state_dir).expanduser() if state_dir else None
        self._logger = logger or logging.getLogger("alarm.runner")
        self._lock = threading.Lock()
        self._tasks: dict[str, set[BackgroundAlarmTask]] = {}
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=2,
            thread_name_prefix="alarm-task",
        )

    def submit(
        self,
        request: AlarmTaskRequest,
        *,
        tag: str = ALARM_TASK_TAG,
    ) -> concurrent.futures.Future[AlarmTaskOutcome]:
        """Start a task, superseding any task already running under `tag`."""
        self.cancel_by_tag(tag)
        task = self._task_factory(request)
        with self._lock:
            self._tasks.setdefault(tag, set()).add(task)

        future = self._executor.submit(task.run)
        future.add_done_callback(lambda done: self._on_done(tag, task, done))
        return future

    def cancel_by_tag(self, tag: str = ALARM_TASK_TAG) -> int:
        """Stop every in-flight task with `tag`; returns how many were signalled."""
        with self._lock:
            tasks = list(self._tasks.get(tag, ()))
        for task in tasks:
            task.cancel()

        cancelled = len(tasks)
        if self._signal_process(tag):
            cancelled += 1
        if cancelled:
            self._logger.info("Cancelled %d alarm task(s) with tag=%s", cancelled, tag)
        return cancelled

    def shutdown(self) -> None:
        with self._lock:
            tags = list(self._tasks)
        for tag in tags:
            self.cancel_by_tag(tag)
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _on_done(
        self,
        tag: str,
        task: BackgroundAlarmTask,
        future: concurrent.futures.Future[AlarmTaskOutcome],
    ) -> None:
        with self._lock:
            tasks = self._tasks.get(tag)
            if tasks is not None:
                tasks.discard(task)
                if not tasks:
                    del self._tasks[tag]

        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.error("Alarm task crashed: %s", error, exc_info=error)
            return
        self._logger.debug("Alarm task finished: %s", future.result())

    def _signal_process(self, tag: str) -> bool:
        if self._state_dir is None:
            return False

        path = pid_file_path(self._state_dir, tag)
        pid = read_pid_file(path)
        if pid is None or pid == os.getpid():
            return False
        if not _process_matches(pid):
            self._logger.debug("Ignoring stale alarm pid file %s (pid=%d)", path, pid)
            path.unlink(missing_ok=True)
            return False

        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            path.unlink(missing_ok=True)
            return False
        except PermissionError as error:
            self._logger.warning("Cannot stop alarm process %d: %s", pid, error)
            return False
        return True
