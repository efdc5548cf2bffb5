import logging
import signal
from pathlib import Path
from queue import Queue
from typing import Any, Callable, Optional

from alarm import (
    AlarmTaskRequest,
    AlarmTaskRunner,
    BackgroundAlarmTask,
    NotificationSurface,
    NotifySendNotification,
    SilentNotification,
    SoundPlayer,
)
from alarm.output import SoundDeviceOutput
from app_config import AppConfig, AppConfigurationError, load_app_config, resolve_config_path
from deadline import DeadlineScheduler, DeliveryLedger, LedgerError, SystemdTimerTrigger
from pomodoro import CycleConfig, CycleTimer, InvalidDurationError
from runtime import AppVisibility, RuntimeBootstrap, RuntimeEngine, RuntimeHooks
from server import QueueEventPublisher, ServerConfigurationError, UIServer, UIServerConfig
from settings_store import JsonSettingsStore, UserSettings

ALARM_ENTRY_SCRIPT = Path(__file__).resolve().parent / "alarm_entry.py"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("pomodoro_app")


def setup_signal_handlers(request_stop: Callable[[], None]) -> None:
    """Set up graceful shutdown on SIGTERM and SIGINT."""

    def signal_handler(signum: int, frame) -> None:
        del frame
        logging.getLogger("pomodoro_app").info(
            "%s received, stopping...",
            signal.Signals(signum).name,
        )
        request_stop()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def build_notification(app_config: AppConfig) -> NotificationSurface:
    if not app_config.alarm.notifications:
        return SilentNotification()
    return NotifySendNotification(logger=logging.getLogger("alarm.notification"))


def cycle_config_from_settings(settings: UserSettings, logger: logging.Logger) -> CycleConfig:
    try:
        return CycleConfig.from_minutes(
            settings.work_minutes,
            settings.break_minutes,
            settings.long_break_minutes,
            settings.cycles_before_long_break,
        )
    except InvalidDurationError as error:
        logger.warning("Stored durations rejected, using defaults: %s", error)
        return CycleConfig()


def build_scheduler(
    app_config: AppConfig,
    logger: logging.Logger,
) -> Optional[DeadlineScheduler]:
    scheduler_settings = app_config.scheduler
    if not scheduler_settings.enabled:
        logger.warning("Durable deadlines disabled; alarms need this process to stay alive.")
        return None

    try:
        ledger = DeliveryLedger(
            scheduler_settings.state_dir,
            logger=logging.getLogger("deadline.ledger"),
        )
    except LedgerError as error:
        logger.error("Durable deadlines unavailable: %s", error)
        return None

    config_file = app_config.source_file if Path(app_config.source_file).is_file() else None
    trigger = SystemdTimerTrigger(
        state_dir=scheduler_settings.state_dir,
        entry_script=ALARM_ENTRY_SCRIPT,
        unit_prefix=scheduler_settings.unit_prefix,
        config_file=config_file,
        logger=logging.getLogger("deadline.trigger"),
    )
    return DeadlineScheduler(
        trigger=trigger,
        ledger=ledger,
        safety_margin_seconds=scheduler_settings.safety_margin_seconds,
        logger=logging.getLogger("deadline"),
    )


def main() -> int:
    """Run the Pomodoro timer with its UI server and alarm delivery."""
    logger = setup_logging(level=logging.INFO)

    try:
        config_path = resolve_config_path()
        app_config = load_app_config()
        logger.info("Loaded runtime config: %s", app_config.source_file or config_path)
    except AppConfigurationError as error:
        logger.error("App configuration error: %s", error)
        return 1

    settings_store = JsonSettingsStore(
        app_config.timer.settings_file,
        logger=logging.getLogger("settings"),
    )
    settings = settings_store.load()

    sound_player = SoundPlayer(
        SoundDeviceOutput(
            output_device_index=app_config.alarm.output_device,
            blocksize=app_config.alarm.blocksize,
            logger=logging.getLogger("alarm.output"),
        ),
        logger=logging.getLogger("alarm.sound"),
    )
    sound_player.select(settings.alarm_uri)

    def task_factory(request: AlarmTaskRequest) -> BackgroundAlarmTask:
        return BackgroundAlarmTask(
            request,
            sound_player=sound_player,
            notification=build_notification(app_config),
            ceiling_seconds=app_config.alarm.ceiling_seconds,
            logger=logging.getLogger("alarm.task"),
        )

    alarm_runner = AlarmTaskRunner(
        task_factory,
        state_dir=app_config.scheduler.state_dir,
        logger=logging.getLogger("alarm.runner"),
    )

    scheduler = build_scheduler(app_config, logger)
    cycle_timer = CycleTimer(
        config=cycle_config_from_settings(settings, logger),
        deadline_scheduler=scheduler,
        sound_ref_provider=lambda: sound_player.selected_ref,
        logger=logging.getLogger("pomodoro"),
    )

    event_queue: Queue[Any] = Queue()

    # Optional UI server for static page + websocket commands
    ui_server: Optional[UIServer] = None
    ui_server_config: Optional[UIServerConfig] = None
    try:
        ui_server_config = UIServerConfig.from_settings(app_config.ui_server)
    except ServerConfigurationError as error:
        logger.error("UI server configuration error: %s", error)
        logger.warning("Continuing without UI server.")

    if ui_server_config and ui_server_config.enabled:
        try:
            ui_server = UIServer(
                config=ui_server_config,
                publisher=QueueEventPublisher(event_queue),
                logger=logging.getLogger("ui_server"),
            )
            logger.info("Starting UI server...")
            ui_server.start(timeout_seconds=5.0)
            logger.info(
                "UI server ready at http://%s:%d",
                ui_server.host,
                ui_server.port,
            )
        except Exception as error:
            logger.error("UI server startup failed: %s", error)
            logger.warning("Continuing without UI server.")
            ui_server = None

    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=logger,
            app_config=app_config,
            cycle_timer=cycle_timer,
            sound_player=sound_player,
            alarm_runner=alarm_runner,
            settings_store=settings_store,
            visibility=AppVisibility(logger=logging.getLogger("runtime.visibility")),
            event_queue=event_queue,
            scheduler=scheduler,
            ui_server=ui_server,
            hooks=RuntimeHooks(setup_signal_handlers=setup_signal_handlers),
            durable_unavailable=app_config.scheduler.enabled and scheduler is None,
        )
    )
    return engine.run()


if __name__ == "__main__":
    raise SystemExit(main())
