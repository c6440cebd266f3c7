"""
Iqamah policy: per prayer, either a fixed clock time from the CMS or a delay
after the calculated athan.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from masjid.prayer.constants import DEFAULT_IQAMAH_DELAYS, IQAMAH_MODE_FIXED
from masjid.prayer.entities import PRAYER_ORDER, IqamahOverride, PrayerTime, SolarEvents
from masjid.prayer.settings import PrayerSettings, parse_clock

logger = logging.getLogger(__name__)


def clock_on(day: date, clock: time, zone: ZoneInfo) -> datetime:
    """Wall-clock time on `day` in the site zone."""
    return datetime.combine(day, clock).replace(tzinfo=zone)


def resolve_iqamah(
    name: str,
    day: date,
    athan: datetime,
    override: Optional[IqamahOverride],
    zone: ZoneInfo,
) -> datetime:
    override = override or IqamahOverride()
    if override.mode == IQAMAH_MODE_FIXED:
        clock = parse_clock(override.fixed_time)
        if clock is not None:
            # CMS is authoritative, no check against the athan
            return clock_on(day, clock, zone)
        logger.warning(f"{name}: fixed iqamah mode without a usable time, using delay after athan")

    delay = override.delay
    if delay is None or delay < 0:
        delay = DEFAULT_IQAMAH_DELAYS[name]
    return athan + timedelta(minutes=delay)


def merge_iqamah(
    events: SolarEvents,
    settings: Optional[PrayerSettings],
    zone: ZoneInfo,
) -> Tuple[PrayerTime, ...]:
    """The five congregational prayers with their iqamah resolved."""
    settings = settings or PrayerSettings()
    prayers = []
    for name in PRAYER_ORDER:
        athan = events.get(name)
        iqamah = resolve_iqamah(name, events.date, athan, settings.iqamah_override(name), zone)
        prayers.append(PrayerTime(name=name, athan=athan, iqamah=iqamah))
    return tuple(prayers)
