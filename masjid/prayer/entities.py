"""
Value types for the prayer schedule. Every type is frozen: a new date or a new
settings snapshot always produces new objects, nothing is updated in place.
"""
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from masjid.prayer.errors import InvalidInputError

PRAYER_ORDER = ("Fajr", "Dhuhr", "Asr", "Maghrib", "Isha")
EVENT_ORDER = ("Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha")


def format_clock(value: Optional[datetime]) -> Optional[str]:
    """Format a time the way the CMS stores it, e.g. '5:15 AM'."""
    if value is None:
        return None
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class GeoCoordinate:
    """Fixed site location. elevation is meters above sea level."""
    latitude: float
    longitude: float
    timezone: str
    elevation: float = 0.0

    def __post_init__(self):
        for label, value in (("latitude", self.latitude), ("longitude", self.longitude), ("elevation", self.elevation)):
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidInputError(f"GeoCoordinate {label} must be a finite number, got {value!r}")
        if abs(self.latitude) > 90:
            raise InvalidInputError(f"Latitude out of range: {self.latitude}")
        if abs(self.longitude) > 180:
            raise InvalidInputError(f"Longitude out of range: {self.longitude}")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
            raise InvalidInputError(f"Unknown time zone {self.timezone!r}") from e

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class CalculationParameters:
    """
    Angle/offset model for the solar events.

    isha_minutes, when set, places Isha a fixed number of minutes after Maghrib
    instead of using isha_angle. fallback_angle substitutes for a twilight
    angle the sun never reaches (high latitudes in summer).
    """
    fajr_angle: float = 18.0
    isha_angle: float = 18.0
    isha_minutes: Optional[float] = None
    asr_factor: float = 1
    dhuhr_margin_minutes: float = 2
    fallback_angle: Optional[float] = None

    def __post_init__(self):
        for label in ("fajr_angle", "isha_angle", "asr_factor", "dhuhr_margin_minutes"):
            value = getattr(self, label)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidInputError(f"{label} must be a finite number, got {value!r}")
        if not 0 < self.fajr_angle < 90 or not 0 < self.isha_angle < 90:
            raise InvalidInputError("Twilight angles must be between 0 and 90 degrees")
        if self.asr_factor <= 0:
            raise InvalidInputError(f"asr_factor must be positive, got {self.asr_factor}")
        if self.dhuhr_margin_minutes < 0:
            raise InvalidInputError("dhuhr_margin_minutes must not be negative")
        if self.isha_minutes is not None and (not math.isfinite(self.isha_minutes) or self.isha_minutes <= 0):
            raise InvalidInputError(f"isha_minutes must be positive, got {self.isha_minutes}")
        if self.fallback_angle is not None and not 0 < self.fallback_angle < 90:
            raise InvalidInputError(f"fallback_angle must be between 0 and 90, got {self.fallback_angle}")


@dataclass(frozen=True)
class SolarEvents:
    """Raw athan times for one date, aware datetimes in the site zone."""
    date: date
    fajr: datetime
    sunrise: datetime
    dhuhr: datetime
    asr: datetime
    maghrib: datetime
    isha: datetime

    def ordered(self) -> Tuple[Tuple[str, datetime], ...]:
        return tuple((name, getattr(self, name.lower())) for name in EVENT_ORDER)

    def get(self, name: str) -> datetime:
        return getattr(self, name.lower())


@dataclass(frozen=True)
class IqamahOverride:
    """Per-prayer view of the CMS document. Every field may be missing."""
    mode: Optional[str] = None
    delay: Optional[int] = None
    fixed_time: Optional[str] = None


@dataclass(frozen=True)
class PrayerTime:
    name: str
    athan: datetime
    iqamah: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "athan": format_clock(self.athan),
            "iqamah": format_clock(self.iqamah),
            "athan_at": _iso(self.athan),
            "iqamah_at": _iso(self.iqamah),
        }


@dataclass(frozen=True)
class JumuahTimes:
    arabic_khutbah: datetime
    english_khutbah: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "arabic_khutbah": format_clock(self.arabic_khutbah),
            "english_khutbah": format_clock(self.english_khutbah),
            "arabic_khutbah_at": _iso(self.arabic_khutbah),
            "english_khutbah_at": _iso(self.english_khutbah),
        }


@dataclass(frozen=True)
class SpecialPrayer:
    """Taraweeh or Eid entry shown next to the daily schedule."""
    name: str
    time: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "time": format_clock(self.time), "at": _iso(self.time)}


@dataclass(frozen=True)
class SpecialSchedule:
    jumuah: Optional[JumuahTimes] = None
    taraweeh: Optional[SpecialPrayer] = None
    eid_fitr: Optional[SpecialPrayer] = None
    eid_adha: Optional[SpecialPrayer] = None

    @property
    def is_empty(self) -> bool:
        return not (self.jumuah or self.taraweeh or self.eid_fitr or self.eid_adha)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "jumuah": self.jumuah.to_dict() if self.jumuah else None,
            "taraweeh": self.taraweeh.to_dict() if self.taraweeh else None,
            "eid_fitr": self.eid_fitr.to_dict() if self.eid_fitr else None,
            "eid_adha": self.eid_adha.to_dict() if self.eid_adha else None,
        }


@dataclass(frozen=True)
class TodaysPrayerTimes:
    """
    The full schedule for exactly one calendar date: the five congregational
    prayers in order, sunrise (no iqamah) and the special overlays. stale is
    set when a previous schedule is served in place of a failed computation.
    """
    date: date
    prayers: Tuple[PrayerTime, ...]
    sunrise: PrayerTime
    special: SpecialSchedule = field(default_factory=SpecialSchedule)
    stale: bool = False

    def get(self, name: str) -> PrayerTime:
        if name.lower() == "sunrise":
            return self.sunrise
        for prayer in self.prayers:
            if prayer.name.lower() == name.lower():
                return prayer
        raise KeyError(name)

    @property
    def fajr(self) -> PrayerTime:
        return self.prayers[0]

    @property
    def isha(self) -> PrayerTime:
        return self.prayers[-1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "prayers": [p.to_dict() for p in self.prayers],
            "sunrise": self.sunrise.to_dict(),
            "special": self.special.to_dict(),
            "stale": self.stale,
        }


@dataclass(frozen=True)
class NextPrayerProjection:
    """Next upcoming prayer. time is the athan or iqamah per reference."""
    name: str
    time: datetime
    is_next_day: bool
    reference: str
    prayer: PrayerTime
    stale: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "time": format_clock(self.time),
            "at": _iso(self.time),
            "is_next_day": self.is_next_day,
            "reference": self.reference,
            "stale": self.stale,
        }
