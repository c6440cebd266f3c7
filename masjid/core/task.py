"""
Schedule kinds and next-run computation for recurring tasks.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


class TaskType:
    """Schedule kind for tasks."""
    DAILY = "daily"


def _parse_time_of_day(time_str: Any) -> Tuple[int, int]:
    parts = str(time_str).strip().split(":")
    hour = int(parts[0]) if parts and parts[0] else 0
    minute = int(parts[1]) if len(parts) > 1 else 0
    return hour, minute


def compute_next_run(
    schedule_type: str,
    schedule_config: Optional[Dict[str, Any]],
    last_run: Optional[datetime] = None,
) -> datetime:
    """
    Compute next run datetime from schedule_type, schedule_config and last_run.
    DAILY times are wall-clock times in last_run's zone, so an aware last_run
    gives local midnight even on days with a DST change.
    """
    if last_run is None:
        last_run = datetime.now(timezone.utc)

    if schedule_type == TaskType.DAILY and schedule_config:
        hour, minute = _parse_time_of_day(schedule_config.get("time", "00:00"))
        next_run = last_run.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if next_run <= last_run:
            next_run += timedelta(days=1)
        return next_run

    logger.debug(f"Unknown schedule {schedule_type} {schedule_config}, defaulting to one day")
    return last_run + timedelta(days=1)


def seconds_until(target: datetime, now: datetime) -> float:
    """Elapsed seconds between two aware datetimes, measured in UTC."""
    delta = target.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(0.0, delta.total_seconds())
