"""
Sun position and hour-angle geometry.

Low-precision almanac series (U.S. Naval Observatory), good to about a minute
of clock time between 1950 and 2050. Angles are degrees, times are hours.
"""
import math
from dataclasses import dataclass
from datetime import date

from masjid.prayer.errors import InvalidInputError, UnreachableAngleError

J2000 = 2451545.0


def _sin(deg: float) -> float:
    return math.sin(math.radians(deg))


def _cos(deg: float) -> float:
    return math.cos(math.radians(deg))


def fix_angle(a: float) -> float:
    return a - 360.0 * math.floor(a / 360.0)


def fix_hour(h: float) -> float:
    return h - 24.0 * math.floor(h / 24.0)


@dataclass(frozen=True)
class SolarPosition:
    declination: float  # degrees
    equation_of_time: float  # hours, apparent minus mean solar time

    @property
    def eot_minutes(self) -> float:
        return self.equation_of_time * 60.0


def julian_date(day: date) -> float:
    """Julian day number at 0h UT of the given calendar date."""
    if not isinstance(day, date):
        raise InvalidInputError(f"Expected a date, got {type(day).__name__}")
    y, m, d = day.year, day.month, day.day
    if m <= 2:
        y -= 1
        m += 12
    a = math.floor(y / 100)
    b = 2 - a + math.floor(a / 4)
    return math.floor(365.25 * (y + 4716)) + math.floor(30.6001 * (m + 1)) + d + b - 1524.5


def solar_position(jd: float) -> SolarPosition:
    """Declination and equation of time at Julian day jd."""
    if not isinstance(jd, (int, float)) or not math.isfinite(jd):
        raise InvalidInputError(f"Julian day must be a finite number, got {jd!r}")
    d = jd - J2000
    g = fix_angle(357.529 + 0.98560028 * d)
    q = fix_angle(280.459 + 0.98564736 * d)
    ecliptic_longitude = fix_angle(q + 1.915 * _sin(g) + 0.020 * _sin(2 * g))
    obliquity = 23.439 - 0.00000036 * d

    right_ascension = math.degrees(
        math.atan2(_cos(obliquity) * _sin(ecliptic_longitude), _cos(ecliptic_longitude))
    ) / 15.0
    eqt = q / 15.0 - fix_hour(right_ascension)
    # q and RA wrap independently at 360/24h
    eqt = fix_hour(eqt + 12.0) - 12.0
    declination = math.degrees(math.asin(_sin(obliquity) * _sin(ecliptic_longitude)))
    return SolarPosition(declination=declination, equation_of_time=eqt)


def hour_angle(declination: float, latitude: float, altitude: float) -> float:
    """
    Hours between solar noon and the moment the sun is at `altitude`
    (negative below the horizon). Morning event = noon - result, evening
    event = noon + result.

    Raises UnreachableAngleError when the sun never reaches that altitude.
    """
    denominator = _cos(latitude) * _cos(declination)
    if abs(denominator) < 1e-12:
        raise UnreachableAngleError(altitude, latitude, declination)
    cos_h = (_sin(altitude) - _sin(latitude) * _sin(declination)) / denominator
    if cos_h < -1.0 or cos_h > 1.0 or math.isnan(cos_h):
        raise UnreachableAngleError(altitude, latitude, declination)
    return math.degrees(math.acos(cos_h)) / 15.0


def asr_altitude(declination: float, latitude: float, factor: float) -> float:
    """Sun altitude at which shadow length = factor * height + noon shadow."""
    noon_shadow = math.tan(math.radians(abs(latitude - declination)))
    return math.degrees(math.atan(1.0 / (factor + noon_shadow)))


def rise_set_altitude(elevation: float = 0.0) -> float:
    """Apparent sunrise/sunset altitude: refraction plus solar radius, lowered for elevation."""
    return -(0.833 + 0.0347 * math.sqrt(max(elevation, 0.0)))
