from .entities import (
    CalculationParameters,
    GeoCoordinate,
    NextPrayerProjection,
    PrayerTime,
    SpecialSchedule,
    TodaysPrayerTimes,
)
from .errors import InvalidInputError, PrayerComputationError, ScheduleOrderError, UnreachableAngleError
from .schedule import compute_next_prayer, compute_todays_prayer_times
from .settings import PrayerSettings

__all__ = [
    "CalculationParameters",
    "GeoCoordinate",
    "NextPrayerProjection",
    "PrayerTime",
    "SpecialSchedule",
    "TodaysPrayerTimes",
    "InvalidInputError",
    "PrayerComputationError",
    "ScheduleOrderError",
    "UnreachableAngleError",
    "compute_next_prayer",
    "compute_todays_prayer_times",
    "PrayerSettings",
]
