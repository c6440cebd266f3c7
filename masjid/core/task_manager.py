"""
Single place for scheduling: named, cancellable in-memory timers.
"""
import logging
import threading
from datetime import datetime, timezone
from threading import Timer
from typing import Any, Callable, Dict, List, Optional, Union

Interval = Union[float, Callable[[], float]]


class TaskManager:
    def __init__(self):
        self.tasks: Dict[str, Timer] = {}
        self.logger = logging.getLogger("TaskManager")
        self._lock = threading.RLock()
        self._stopped = False

    def schedule_task(
        self,
        name: str,
        callback: Callable[[], Any],
        delay: float,
        one_time: bool = True,
        interval: Optional[Interval] = None,
    ) -> None:
        """
        Schedule a task to run after delay seconds. Recurring tasks (one_time=False)
        are re-armed after every run, even a failed one, using interval (seconds or
        a callable returning seconds) or the first delay.
        """
        with self._lock:
            if self._stopped:
                self.logger.warning(f"Task manager stopped, not scheduling {name}")
                return
            if name in self.tasks:
                self.logger.debug(f"Cancelling existing task {name}")
                self.tasks[name].cancel()

            scheduled_time = datetime.now(timezone.utc).timestamp() + delay
            timer = Timer(delay, self._run_task, args=(name, callback, delay, one_time, interval))
            timer.daemon = True
            timer.scheduled_time = scheduled_time
            timer.last_run = None
            self.tasks[name] = timer
            timer.start()
        self.logger.info(
            f"Timer started for {name}, scheduled for {datetime.fromtimestamp(scheduled_time, tz=timezone.utc)}"
        )

    def _run_task(
        self,
        name: str,
        callback: Callable[[], Any],
        delay: float,
        one_time: bool,
        interval: Optional[Interval],
    ) -> None:
        """Run the task and reschedule if needed."""
        current = threading.current_thread()
        try:
            callback()
            current.last_run = datetime.now(timezone.utc).timestamp()
        except Exception as e:
            self.logger.exception(f"Error running task {name}: {e}")
        finally:
            # re-arm under the lock so a concurrent cancel_task wins
            with self._lock:
                still_active = self.tasks.get(name) is current
                if one_time and still_active:
                    del self.tasks[name]
                elif still_active:
                    next_delay = self._next_delay(name, delay, interval)
                    self.schedule_task(name, callback, next_delay, one_time=False, interval=interval)

    def _next_delay(self, name: str, delay: float, interval: Optional[Interval]) -> float:
        if interval is None:
            return delay
        if callable(interval):
            try:
                return max(0.0, float(interval()))
            except Exception as e:
                self.logger.exception(f"Error computing next delay for {name}, reusing {delay}s: {e}")
                return delay
        return interval

    def cancel_task(self, name: str) -> bool:
        """Cancel a pending task. Returns True if one was scheduled."""
        with self._lock:
            timer = self.tasks.pop(name, None)
        if timer is None:
            return False
        timer.cancel()
        self.logger.info(f"Cancelled task {name}")
        return True

    def get_active_timers(self) -> List[Dict[str, Any]]:
        """Return list of active timer names and their next run time (for API)."""
        result = []
        with self._lock:
            items = list(self.tasks.items())
        for name, timer in items:
            if getattr(timer, "scheduled_time", None) is not None:
                next_run = datetime.fromtimestamp(timer.scheduled_time, tz=timezone.utc)
                result.append({"name": name, "next_run_at": next_run})
        return result

    def stop(self) -> None:
        """Stop all scheduled tasks."""
        with self._lock:
            self._stopped = True
            timers = list(self.tasks.values())
            self.tasks.clear()
        for timer in timers:
            timer.cancel()
