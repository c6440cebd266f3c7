"""
Solar event solver: turns the sun geometry into the six athan clock times of
one calendar date at the site.

Times are worked out in UT hours relative to UT midnight of the requested date
and only then converted to the site zone, so whatever UTC offset the zone has
on that date (DST included) is applied exactly.
"""
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional

from masjid.prayer.constants import DEFAULT_LOCATION, DEFAULT_PARAMETERS
from masjid.prayer.entities import CalculationParameters, GeoCoordinate, SolarEvents
from masjid.prayer.errors import (
    InvalidInputError,
    PrayerComputationError,
    ScheduleOrderError,
    UnreachableAngleError,
)
from masjid.prayer.solar import (
    asr_altitude,
    hour_angle,
    julian_date,
    rise_set_altitude,
    solar_position,
)

# Initial guesses in local solar hours, refined by one extra pass
_GUESSES = {
    "fajr": 5.0,
    "sunrise": 6.0,
    "dhuhr": 12.0,
    "asr": 13.0,
    "maghrib": 18.0,
    "isha": 18.0,
}
_PASSES = 2


class PrayerTimeSolver:
    """Computes SolarEvents for one date at a fixed location."""

    def __init__(
        self,
        location: GeoCoordinate = DEFAULT_LOCATION,
        parameters: CalculationParameters = DEFAULT_PARAMETERS,
    ):
        self.location = location
        self.parameters = parameters
        self._lng_hours = location.longitude / 15.0
        self.logger = logging.getLogger(self.__class__.__name__)

    def solve(self, day: date) -> SolarEvents:
        if isinstance(day, datetime) or not isinstance(day, date):
            raise InvalidInputError(f"solve() expects a calendar date, got {day!r}")

        jd = julian_date(day)
        times = {name: guess - self._lng_hours for name, guess in _GUESSES.items()}
        for _ in range(_PASSES):
            times = self._compute(jd, times)

        times["dhuhr"] += self.parameters.dhuhr_margin_minutes / 60.0
        if self.parameters.isha_minutes is not None:
            times["isha"] = times["maghrib"] + self.parameters.isha_minutes / 60.0

        events = SolarEvents(
            date=day,
            fajr=self._to_local(day, times["fajr"]),
            sunrise=self._to_local(day, times["sunrise"]),
            dhuhr=self._to_local(day, times["dhuhr"]),
            asr=self._to_local(day, times["asr"]),
            maghrib=self._to_local(day, times["maghrib"]),
            isha=self._to_local(day, times["isha"]),
        )
        check_order(events)
        return events

    def _compute(self, jd: float, times: Dict[str, float]) -> Dict[str, float]:
        params = self.parameters
        lat = self.location.latitude
        horizon = rise_set_altitude(self.location.elevation)

        try:
            sunrise = self._sun_angle_time(jd, horizon, times["sunrise"], morning=True)
            maghrib = self._sun_angle_time(jd, horizon, times["maghrib"], morning=False)
            asr = self._sun_angle_time(
                jd,
                lambda decl: asr_altitude(decl, lat, params.asr_factor),
                times["asr"],
                morning=False,
            )
        except UnreachableAngleError as e:
            raise PrayerComputationError(f"No sunrise/sunset or Asr on this date: {e}") from e

        night = sunrise + 24.0 - maghrib
        fajr = self._twilight(jd, "Fajr", params.fajr_angle, times["fajr"], True, sunrise, night)
        isha = self._twilight(jd, "Isha", params.isha_angle, times["isha"], False, maghrib, night)
        return {
            "fajr": fajr,
            "sunrise": sunrise,
            "dhuhr": self._noon(jd, times["dhuhr"]),
            "asr": asr,
            "maghrib": maghrib,
            "isha": isha,
        }

    def _twilight(self, jd: float, name: str, angle: float, guess: float, morning: bool, anchor: float, night: float) -> float:
        """Fajr/Isha by angle, with the fallback angle and then the night portion rule."""
        try:
            return self._sun_angle_time(jd, -angle, guess, morning)
        except UnreachableAngleError as e:
            self.logger.warning(f"{name} angle {angle} unreachable, applying fallback: {e}")

        fallback = self.parameters.fallback_angle
        if fallback is not None:
            try:
                return self._sun_angle_time(jd, -fallback, guess, morning)
            except UnreachableAngleError as e:
                self.logger.warning(f"{name} fallback angle {fallback} unreachable too: {e}")

        portion = angle / 60.0 * night
        return anchor - portion if morning else anchor + portion

    def _position(self, jd: float, ut_hours: float):
        return solar_position(jd + ut_hours / 24.0)

    def _noon(self, jd: float, ut_hours: float) -> float:
        return 12.0 - self._lng_hours - self._position(jd, ut_hours).equation_of_time

    def _sun_angle_time(self, jd: float, altitude, ut_hours: float, morning: bool) -> float:
        position = self._position(jd, ut_hours)
        noon = 12.0 - self._lng_hours - position.equation_of_time
        if callable(altitude):
            altitude = altitude(position.declination)
        offset = hour_angle(position.declination, self.location.latitude, altitude)
        return noon - offset if morning else noon + offset

    def _to_local(self, day: date, ut_hours: float) -> datetime:
        midnight_utc = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        instant = midnight_utc + timedelta(minutes=round(ut_hours * 60.0))
        return instant.astimezone(self.location.zone)


def check_order(events: SolarEvents) -> None:
    """Raise ScheduleOrderError unless Fajr < Sunrise < Dhuhr < Asr < Maghrib < Isha."""
    ordered = events.ordered()
    for (prev_name, prev_time), (name, time) in zip(ordered, ordered[1:]):
        if not prev_time < time:
            raise ScheduleOrderError(
                f"{events.date}: {prev_name} ({prev_time:%H:%M}) is not before {name} ({time:%H:%M})"
            )


def solve_solar_events(
    day: date,
    location: Optional[GeoCoordinate] = None,
    parameters: Optional[CalculationParameters] = None,
) -> SolarEvents:
    return PrayerTimeSolver(location or DEFAULT_LOCATION, parameters or DEFAULT_PARAMETERS).solve(day)
