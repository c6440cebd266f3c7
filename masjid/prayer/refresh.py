"""
Keeps a long-lived process's view of the prayer schedule current: the full
schedule is recomputed at every local midnight, the next-prayer projection
every minute. Only the timing lives here; the computations are the pure
functions in masjid.prayer.schedule.
"""
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Optional

from masjid.core.task import TaskType, compute_next_run, seconds_until
from masjid.prayer.constants import DEFAULT_LOCATION, DEFAULT_PARAMETERS, REFERENCE_ATHAN
from masjid.prayer.entities import (
    CalculationParameters,
    GeoCoordinate,
    NextPrayerProjection,
    TodaysPrayerTimes,
)
from masjid.prayer.schedule import compute_next_prayer, compute_todays_prayer_times

DAILY_TASK = "prayer_schedule_midnight"
NEXT_PRAYER_TASK = "prayer_next_prayer"
MIDNIGHT = {"time": "00:00"}


class ScheduleRefreshScheduler:
    """
    Owns the two refresh timers and the latest results.

    Args:
        task_manager: object with schedule_task(name, callback, delay, one_time, interval)
            and cancel_task(name), normally masjid.core.task_manager.TaskManager
        settings_provider: returns the current CMS settings snapshot (or None)
        clock: returns the current aware datetime
        on_update: called with (schedule, next_prayer) after each successful refresh
    """

    def __init__(
        self,
        task_manager: Any,
        settings_provider: Optional[Callable[[], Any]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        location: GeoCoordinate = DEFAULT_LOCATION,
        parameters: CalculationParameters = DEFAULT_PARAMETERS,
        next_prayer_interval: float = 60,
        reference: str = REFERENCE_ATHAN,
        on_update: Optional[Callable[[Optional[TodaysPrayerTimes], Optional[NextPrayerProjection]], None]] = None,
    ):
        self.task_manager = task_manager
        self.settings_provider = settings_provider or (lambda: None)
        self.clock = clock or (lambda: datetime.now(location.zone))
        self.location = location
        self.parameters = parameters
        self.next_prayer_interval = next_prayer_interval
        self.reference = reference
        self.on_update = on_update
        self.logger = logging.getLogger(self.__class__.__name__)

        self._lock = threading.Lock()
        self.schedule: Optional[TodaysPrayerTimes] = None
        self.next_prayer: Optional[NextPrayerProjection] = None
        self.last_error: Optional[str] = None
        self.discrepancy = False
        self.running = False

    def start(self) -> None:
        """Compute now, then arm the midnight and per-minute timers."""
        self.refresh_now()
        self.task_manager.schedule_task(
            DAILY_TASK,
            self.refresh_schedule,
            self.seconds_until_midnight(),
            one_time=False,
            interval=self.seconds_until_midnight,
        )
        self.task_manager.schedule_task(
            NEXT_PRAYER_TASK,
            self.refresh_next_prayer,
            self.next_prayer_interval,
            one_time=False,
        )
        self.running = True
        self.logger.info(
            f"Prayer refresh started: schedule at next midnight, next prayer every {self.next_prayer_interval}s"
        )

    def stop(self) -> None:
        self.task_manager.cancel_task(DAILY_TASK)
        self.task_manager.cancel_task(NEXT_PRAYER_TASK)
        self.running = False
        self.logger.info("Prayer refresh stopped")

    def seconds_until_midnight(self) -> float:
        now = self.clock().astimezone(self.location.zone)
        midnight = compute_next_run(TaskType.DAILY, MIDNIGHT, now)
        return seconds_until(midnight, now)

    def refresh_now(self) -> None:
        self.refresh_schedule()
        self.refresh_next_prayer()

    def refresh_schedule(self) -> None:
        """Recompute today's schedule. Never raises: failures are logged and kept in last_error."""
        try:
            now = self.clock()
            schedule = compute_todays_prayer_times(
                now,
                self.settings_provider(),
                location=self.location,
                parameters=self.parameters,
                previous=self.schedule,
            )
        except Exception as e:
            self.logger.exception(f"Prayer schedule refresh failed: {e}")
            with self._lock:
                self.last_error = str(e)
                self.discrepancy = self.schedule is not None
            return

        with self._lock:
            self.schedule = schedule
            self.discrepancy = schedule.stale
            self.last_error = f"Serving schedule of {schedule.date}" if schedule.stale else None
        if schedule.stale:
            self.logger.warning(f"Showing previous schedule for {schedule.date}; today's could not be computed")
        else:
            self.logger.info(f"Prayer schedule refreshed for {schedule.date}")
        self._notify()

    def refresh_next_prayer(self) -> None:
        """Recompute the next-prayer projection. Never raises."""
        try:
            projection = compute_next_prayer(
                self.clock(),
                self.settings_provider(),
                reference=self.reference,
                location=self.location,
                parameters=self.parameters,
            )
        except Exception as e:
            self.logger.exception(f"Next prayer refresh failed: {e}")
            with self._lock:
                self.last_error = str(e)
            return

        with self._lock:
            self.next_prayer = projection
        self.logger.debug(f"Next prayer: {projection.name} at {projection.time:%H:%M} (next day: {projection.is_next_day})")
        self._notify()

    def _notify(self) -> None:
        if not self.on_update:
            return
        try:
            self.on_update(self.schedule, self.next_prayer)
        except Exception as e:
            self.logger.error(f"Error in prayer update callback: {e}")
