import logging
import sys
import threading
from datetime import datetime
from typing import Any, Dict, Optional

from .config import Config
from .db import dispose_db, init_db
from .task_manager import TaskManager
from masjid.prayer.constants import REFERENCE_ATHAN
from masjid.prayer.refresh import ScheduleRefreshScheduler
from masjid.prayer.service import location_from_config, parameters_from_config, settings_provider


class MasjidApp:
    def __init__(self, config_path: Optional[str] = None, watch: bool = True):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(config_path=config_path, watch=watch)
        self.config.register_change_callback(self.handle_config_change)

        self._setup_logging()

        # Initialize database (before the scheduler so the settings table exists)
        init_db(self.config.data)

        self.location = location_from_config(self.config.data)
        self.parameters = parameters_from_config(self.config.data)
        self.settings_provider = settings_provider(lambda: self.config.data)

        self.task_manager = TaskManager()
        self.refresh = self._create_refresh_scheduler()
        self._stop_event = threading.Event()

    def clock(self) -> datetime:
        return datetime.now(self.location.zone)

    def _setup_logging(self):
        """Configure logging to write to both file and stdout"""
        logging_config = self.config.get_section("logging")
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.setLevel(getattr(logging, str(logging_config.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        log_file = logging_config.get("file")
        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Masjid prayer times service starting...")

    def _create_refresh_scheduler(self) -> ScheduleRefreshScheduler:
        refresh_config = self.config.get_section("refresh")
        return ScheduleRefreshScheduler(
            self.task_manager,
            settings_provider=self.settings_provider,
            clock=self.clock,
            location=self.location,
            parameters=self.parameters,
            next_prayer_interval=float(refresh_config.get("next_prayer_interval", 60)),
            reference=refresh_config.get("reference", REFERENCE_ATHAN),
            on_update=self._log_update,
        )

    def _log_update(self, schedule, next_prayer) -> None:
        if next_prayer is not None:
            self.logger.debug(f"Next prayer: {next_prayer.name} at {next_prayer.time.isoformat()}")

    def handle_config_change(self, new_config: Dict[str, Any]) -> None:
        """Rebuild location and parameters, then recompute with the new values"""
        self.logger.info("Handling config change")
        try:
            location = location_from_config(new_config)
            parameters = parameters_from_config(new_config)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Ignoring invalid location/calculation config: {e}")
            return

        self.location = location
        self.parameters = parameters
        was_running = self.refresh.running
        if was_running:
            self.refresh.stop()
        self.refresh = self._create_refresh_scheduler()
        if was_running:
            self.refresh.start()
        else:
            self.refresh.refresh_now()

    def start(self) -> None:
        self.refresh.start()

        # Start API server if enabled (api.enabled in config)
        try:
            from masjid.api import run_api_server
            run_api_server(self)
        except Exception as e:
            self.logger.warning(f"API server not started: {e}")

    def run(self):
        """Start the refresh timers and block until interrupted"""
        try:
            self.start()
            while not self._stop_event.wait(1.0):
                pass
        except KeyboardInterrupt:
            self.logger.info("Interrupted, shutting down")
        finally:
            self.cleanup()

    def shutdown(self) -> None:
        self._stop_event.set()

    def cleanup(self) -> None:
        if self.refresh.running:
            self.refresh.stop()
        self.task_manager.stop()
        self.config.cleanup()
        dispose_db()
