"""
Public entry points of the prayer time engine.

Both functions are pure: the settings snapshot, location and parameters are
passed in, nothing is cached between calls and nothing is stored.
"""
import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

from masjid.prayer.constants import DEFAULT_LOCATION, DEFAULT_PARAMETERS, REFERENCE_ATHAN
from masjid.prayer.entities import (
    CalculationParameters,
    GeoCoordinate,
    NextPrayerProjection,
    PrayerTime,
    TodaysPrayerTimes,
)
from masjid.prayer.errors import InvalidInputError, PrayerComputationError
from masjid.prayer.iqamah import merge_iqamah
from masjid.prayer.next_prayer import resolve_next_prayer
from masjid.prayer.settings import PrayerSettings
from masjid.prayer.solver import PrayerTimeSolver
from masjid.prayer.special import resolve_special_schedule

logger = logging.getLogger(__name__)


def _local_date(day: Union[date, datetime], location: GeoCoordinate) -> date:
    if isinstance(day, datetime):
        if day.tzinfo is None:
            raise InvalidInputError(f"Naive datetime {day!r}; pass a date or an aware datetime")
        return day.astimezone(location.zone).date()
    if isinstance(day, date):
        return day
    raise InvalidInputError(f"Expected a date, got {day!r}")


def compute_todays_prayer_times(
    day: Union[date, datetime],
    settings: Any = None,
    *,
    location: GeoCoordinate = DEFAULT_LOCATION,
    parameters: CalculationParameters = DEFAULT_PARAMETERS,
    previous: Optional[TodaysPrayerTimes] = None,
) -> TodaysPrayerTimes:
    """
    Full schedule for one calendar date.

    Args:
        day: calendar date, or an aware datetime whose site-local date is used
        settings: PrayerSettings, a raw CMS document dict, or None for defaults
        previous: last good schedule, served (stale=True) if this one cannot be
            computed or comes out of order

    Raises:
        InvalidInputError: malformed day
        PrayerComputationError: computation failed and no previous schedule given
    """
    local_day = _local_date(day, location)
    snapshot = PrayerSettings.from_document(settings)

    try:
        events = PrayerTimeSolver(location, parameters).solve(local_day)
    except InvalidInputError:
        raise
    except PrayerComputationError as e:
        if previous is None:
            raise
        logger.warning(f"Prayer times for {local_day} unavailable ({e}); keeping schedule of {previous.date}")
        return replace(previous, stale=True)

    zone = location.zone
    return TodaysPrayerTimes(
        date=local_day,
        prayers=merge_iqamah(events, snapshot, zone),
        sunrise=PrayerTime(name="Sunrise", athan=events.sunrise),
        special=resolve_special_schedule(local_day, snapshot, zone),
    )


def compute_next_prayer(
    now: datetime,
    settings: Any = None,
    *,
    reference: str = REFERENCE_ATHAN,
    location: GeoCoordinate = DEFAULT_LOCATION,
    parameters: CalculationParameters = DEFAULT_PARAMETERS,
) -> NextPrayerProjection:
    """Next prayer after `now` (aware datetime) by athan or iqamah time."""
    if not isinstance(now, datetime) or now.tzinfo is None:
        raise InvalidInputError(f"now must be a timezone-aware datetime, got {now!r}")

    snapshot = PrayerSettings.from_document(settings)
    local_now = now.astimezone(location.zone)
    today = compute_todays_prayer_times(
        local_now.date(), snapshot, location=location, parameters=parameters
    )
    try:
        tomorrow = compute_todays_prayer_times(
            local_now.date() + timedelta(days=1), snapshot, location=location, parameters=parameters
        )
    except PrayerComputationError as e:
        logger.warning(f"Could not compute tomorrow's prayer times: {e}")
        tomorrow = None
    return resolve_next_prayer(local_now, today, tomorrow, reference)
