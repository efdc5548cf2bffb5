"""Standalone alarm process started by the durable trigger when a deadline passes.

It shares nothing with the main process except its arguments and the
delivery ledger in the state directory.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Optional, Sequence

from alarm import (
    ALARM_TASK_TAG,
    BackgroundAlarmTask,
    NotifySendNotification,
    SilentNotification,
    SoundPlayer,
)
from alarm.runner import pid_file_path, remove_pid_file, write_pid_file
from alarm.task import AlarmTaskRequest
from app_config import AppConfig, AppConfigurationError, default_app_config, load_app_config
from deadline import DEFAULT_SOUND_REF, DeadlinePayload, DeliveryLedger, PayloadError

EXIT_OK = 0
EXIT_USAGE = 2


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deliver one Pomodoro interval alarm.")
    parser.add_argument("--deadline-id", required=True)
    parser.add_argument("--sound", default=DEFAULT_SOUND_REF)
    parser.add_argument("--phase", required=True, choices=("work", "break"))
    parser.add_argument("--state-dir", required=True)
    parser.add_argument("--config", default=None)
    return parser


def load_entry_config(config_path: Optional[str], logger: logging.Logger) -> AppConfig:
    """Load alarm settings; a broken config must not stop the alarm."""
    if not config_path:
        return default_app_config()
    try:
        return load_app_config(config_path)
    except AppConfigurationError as error:
        logger.warning("Using default alarm settings: %s", error)
        return default_app_config()


def claim_delivery(ledger: DeliveryLedger, deadline_id: str, logger: logging.Logger) -> bool:
    """True when this process should deliver `deadline_id`."""
    if not ledger.is_armed(deadline_id):
        logger.info("Deadline %s was cancelled or superseded; nothing to do", deadline_id)
        return False
    if not ledger.claim(deadline_id):
        logger.info("Deadline %s was already delivered", deadline_id)
        return False
    ledger.clear_armed(deadline_id)
    return True


def build_task(
    payload: DeadlinePayload,
    app_config: AppConfig,
) -> BackgroundAlarmTask:
    # Imported here so a no-op delivery never loads PortAudio.
    from alarm.output import SoundDeviceOutput

    sound_player = SoundPlayer(
        SoundDeviceOutput(
            output_device_index=app_config.alarm.output_device,
            blocksize=app_config.alarm.blocksize,
            logger=logging.getLogger("alarm.output"),
        ),
        logger=logging.getLogger("alarm.sound"),
    )
    if app_config.alarm.notifications:
        notification = NotifySendNotification(logger=logging.getLogger("alarm.notification"))
    else:
        notification = SilentNotification()
    return BackgroundAlarmTask(
        AlarmTaskRequest(
            sound_ref=payload.sound_ref,
            phase_is_work=payload.phase_is_work,
            deadline_id=payload.deadline_id,
        ),
        sound_player=sound_player,
        notification=notification,
        ceiling_seconds=app_config.alarm.ceiling_seconds,
        logger=logging.getLogger("alarm.task"),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger = logging.getLogger("alarm_entry")
    args = build_arg_parser().parse_args(argv)

    try:
        payload = DeadlinePayload.from_values(
            deadline_id=args.deadline_id,
            sound_ref=args.sound,
            phase=args.phase,
        )
    except PayloadError as error:
        logger.error("Invalid alarm payload: %s", error)
        return EXIT_USAGE

    ledger = DeliveryLedger(args.state_dir, logger=logging.getLogger("deadline.ledger"))
    if not claim_delivery(ledger, payload.deadline_id, logger):
        return EXIT_OK

    app_config = load_entry_config(args.config, logger)
    task = build_task(payload, app_config)

    def signal_handler(signum: int, frame) -> None:
        del frame
        logger.info("%s received, stopping alarm", signal.Signals(signum).name)
        task.cancel()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    pid_path = pid_file_path(ledger.state_dir, ALARM_TASK_TAG)
    write_pid_file(pid_path)
    try:
        outcome = task.run()
    finally:
        remove_pid_file(pid_path)
    logger.info("Alarm finished: %s", outcome)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
