"""
Jumu'ah, Taraweeh and Eid overlays. These are editorial times from the CMS and
do not depend on the sun; whether it is Ramadan or Eid is decided by the CMS
flags, never computed here.
"""
import logging
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo

from masjid.prayer.constants import (
    DEFAULT_EID_TIME,
    DEFAULT_JUMUAH_ARABIC_TIME,
    DEFAULT_JUMUAH_ENGLISH_TIME,
    DEFAULT_TARAWEEH_TIME,
)
from masjid.prayer.entities import JumuahTimes, SpecialPrayer, SpecialSchedule
from masjid.prayer.iqamah import clock_on
from masjid.prayer.settings import PrayerSettings, parse_clock

logger = logging.getLogger(__name__)

FRIDAY = 4


def _clock(day: date, value: Optional[str], default: str, zone: ZoneInfo) -> datetime:
    clock = parse_clock(value) if value is not None else None
    if clock is None:
        clock = parse_clock(default)
    return clock_on(day, clock, zone)


def _in_ramadan_window(day: date, settings: PrayerSettings) -> bool:
    if settings.ramadan_start and day < settings.ramadan_start:
        return False
    if settings.ramadan_end and day > settings.ramadan_end:
        return False
    return True


def resolve_special_schedule(day: date, settings: Optional[PrayerSettings], zone: ZoneInfo) -> SpecialSchedule:
    settings = settings or PrayerSettings()

    jumuah = None
    if day.weekday() == FRIDAY:
        jumuah = JumuahTimes(
            arabic_khutbah=_clock(day, settings.jumuah_arabic_time, DEFAULT_JUMUAH_ARABIC_TIME, zone),
            english_khutbah=_clock(day, settings.jumuah_english_time, DEFAULT_JUMUAH_ENGLISH_TIME, zone),
        )

    taraweeh = None
    if settings.taraweeh_enabled:
        if _in_ramadan_window(day, settings):
            taraweeh = SpecialPrayer("Taraweeh", _clock(day, settings.taraweeh_time, DEFAULT_TARAWEEH_TIME, zone))
        else:
            logger.debug(f"Taraweeh enabled but {day} is outside the configured Ramadan window")

    eid_fitr = None
    if settings.eid_fitr_active:
        eid_fitr = SpecialPrayer("Eid al-Fitr", _clock(day, settings.eid_fitr_time, DEFAULT_EID_TIME, zone))

    eid_adha = None
    if settings.eid_adha_active:
        eid_adha = SpecialPrayer("Eid al-Adha", _clock(day, settings.eid_adha_time, DEFAULT_EID_TIME, zone))

    return SpecialSchedule(jumuah=jumuah, taraweeh=taraweeh, eid_fitr=eid_fitr, eid_adha=eid_adha)
