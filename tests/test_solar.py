from datetime import date

import pytest

from masjid.prayer.errors import InvalidInputError, UnreachableAngleError
from masjid.prayer.solar import (
    asr_altitude,
    fix_angle,
    fix_hour,
    hour_angle,
    julian_date,
    rise_set_altitude,
    solar_position,
)


def test_julian_date_known_epochs():
    assert julian_date(date(2000, 1, 1)) == 2451544.5
    assert julian_date(date(1970, 1, 1)) == 2440587.5


def test_julian_date_rejects_non_date():
    with pytest.raises(InvalidInputError):
        julian_date("2025-06-21")


def test_fix_angle_and_hour_wrap():
    assert fix_angle(-30) == 330
    assert fix_angle(725) == 5
    assert fix_hour(-1.5) == 22.5
    assert fix_hour(25) == 1


def test_declination_at_solstices_and_equinox():
    june = solar_position(julian_date(date(2025, 6, 21)))
    december = solar_position(julian_date(date(2025, 12, 21)))
    march = solar_position(julian_date(date(2025, 3, 20)) + 0.5)
    assert june.declination == pytest.approx(23.44, abs=0.05)
    assert december.declination == pytest.approx(-23.44, abs=0.05)
    assert abs(march.declination) < 0.5


def test_equation_of_time_extremes():
    november = solar_position(julian_date(date(2025, 11, 3)))
    february = solar_position(julian_date(date(2025, 2, 11)))
    assert november.eot_minutes == pytest.approx(16.4, abs=0.5)
    assert february.eot_minutes == pytest.approx(-14.2, abs=0.5)


def test_equation_of_time_stays_in_range_all_year():
    start = julian_date(date(2025, 1, 1))
    for offset in range(366):
        eot = solar_position(start + offset).equation_of_time
        assert -12 <= eot < 12
        assert abs(eot * 60) < 17


def test_solar_position_rejects_nan():
    with pytest.raises(InvalidInputError):
        solar_position(float("nan"))


def test_hour_angle_at_equinox_horizon_is_six_hours():
    assert hour_angle(0.0, 0.0, 0.0) == pytest.approx(6.0)
    assert hour_angle(0.0, -37.8, 0.0) == pytest.approx(6.0)


def test_hour_angle_unreachable_raises():
    # midsummer at 60N: the sun never goes 18 degrees below the horizon
    with pytest.raises(UnreachableAngleError) as excinfo:
        hour_angle(23.44, 60.0, -18.0)
    assert excinfo.value.altitude == -18.0
    assert excinfo.value.latitude == 60.0


def test_asr_altitude_shadow_factors():
    assert asr_altitude(10.0, 10.0, 1) == pytest.approx(45.0)
    assert asr_altitude(10.0, 10.0, 2) == pytest.approx(26.565, abs=1e-3)
    # a longer noon shadow lowers the Asr altitude
    assert asr_altitude(-23.0, -37.8, 1) > asr_altitude(23.0, -37.8, 1)


def test_rise_set_altitude_elevation():
    assert rise_set_altitude() == pytest.approx(-0.833)
    assert rise_set_altitude(10) == pytest.approx(-0.9427, abs=1e-4)
    assert rise_set_altitude(-5) == pytest.approx(-0.833)
