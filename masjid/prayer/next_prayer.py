"""
Next-prayer projection with day rollover.
"""
import logging
from datetime import datetime
from typing import Optional

from masjid.prayer.constants import REFERENCE_ATHAN, REFERENCE_IQAMAH, REFERENCES
from masjid.prayer.entities import NextPrayerProjection, PrayerTime, TodaysPrayerTimes
from masjid.prayer.errors import InvalidInputError

logger = logging.getLogger(__name__)


def reference_time(prayer: PrayerTime, reference: str) -> datetime:
    if reference == REFERENCE_IQAMAH and prayer.iqamah is not None:
        return prayer.iqamah
    return prayer.athan


def resolve_next_prayer(
    now: datetime,
    today: TodaysPrayerTimes,
    tomorrow: Optional[TodaysPrayerTimes],
    reference: str = REFERENCE_ATHAN,
) -> NextPrayerProjection:
    """
    First of today's prayers strictly after `now`; a prayer whose time equals
    `now` has already started. After Isha the answer is tomorrow's Fajr. When
    tomorrow could not be computed, today's Isha is returned flagged stale.
    """
    if reference not in REFERENCES:
        raise InvalidInputError(f"reference must be one of {REFERENCES}, got {reference!r}")
    if now.tzinfo is None:
        raise InvalidInputError("now must be timezone-aware")

    for prayer in today.prayers:
        when = reference_time(prayer, reference)
        if when > now:
            return NextPrayerProjection(
                name=prayer.name,
                time=when,
                is_next_day=False,
                reference=reference,
                prayer=prayer,
                stale=today.stale,
            )

    if tomorrow is None:
        isha = today.isha
        logger.warning(f"Tomorrow's schedule unavailable after {today.date}, holding on Isha")
        return NextPrayerProjection(
            name=isha.name,
            time=reference_time(isha, reference),
            is_next_day=False,
            reference=reference,
            prayer=isha,
            stale=True,
        )

    fajr = tomorrow.fajr
    return NextPrayerProjection(
        name=fajr.name,
        time=reference_time(fajr, reference),
        is_next_day=True,
        reference=reference,
        prayer=fajr,
        stale=tomorrow.stale,
    )
