from dataclasses import replace
from datetime import date, timedelta

import pytest

from masjid.prayer.errors import InvalidInputError
from masjid.prayer.next_prayer import resolve_next_prayer
from masjid.prayer.schedule import compute_todays_prayer_times

from conftest import local

# 21 June 2025 in Newport: Maghrib 5:09 PM, Isha 6:43 PM
TODAY = date(2025, 6, 21)


@pytest.fixture
def today():
    return compute_todays_prayer_times(TODAY)


@pytest.fixture
def tomorrow():
    return compute_todays_prayer_times(TODAY + timedelta(days=1))


def test_before_fajr_is_fajr(today, tomorrow):
    projection = resolve_next_prayer(local(2025, 6, 21, 1, 0), today, tomorrow)
    assert projection.name == "Fajr"
    assert projection.is_next_day is False
    assert projection.time == today.fajr.athan


def test_one_second_after_maghrib_is_isha(today, tomorrow):
    now = today.get("Maghrib").athan + timedelta(seconds=1)
    projection = resolve_next_prayer(now, today, tomorrow)
    assert projection.name == "Isha"
    assert projection.is_next_day is False


def test_prayer_at_exactly_now_has_started(today, tomorrow):
    maghrib = today.get("Maghrib").athan
    assert resolve_next_prayer(maghrib, today, tomorrow).name == "Isha"
    assert resolve_next_prayer(maghrib - timedelta(seconds=1), today, tomorrow).name == "Maghrib"


def test_after_isha_rolls_over_to_tomorrows_fajr(today, tomorrow):
    now = today.isha.athan + timedelta(seconds=1)
    projection = resolve_next_prayer(now, today, tomorrow)
    assert projection.name == "Fajr"
    assert projection.is_next_day is True
    assert projection.time == tomorrow.fajr.athan
    assert projection.time.date() == TODAY + timedelta(days=1)


def test_iqamah_reference(today, tomorrow):
    maghrib = today.get("Maghrib")
    between = maghrib.athan + timedelta(minutes=1)
    assert between < maghrib.iqamah
    by_athan = resolve_next_prayer(between, today, tomorrow, "athan")
    by_iqamah = resolve_next_prayer(between, today, tomorrow, "iqamah")
    assert by_athan.name == "Isha"
    assert by_iqamah.name == "Maghrib"
    assert by_iqamah.time == maghrib.iqamah


def test_missing_tomorrow_holds_on_stale_isha(today):
    now = today.isha.athan + timedelta(minutes=5)
    projection = resolve_next_prayer(now, today, None)
    assert projection.name == "Isha"
    assert projection.stale is True
    assert projection.is_next_day is False


def test_stale_today_propagates(today, tomorrow):
    stale = replace(today, stale=True)
    assert resolve_next_prayer(local(2025, 6, 21, 9, 0), stale, tomorrow).stale is True


def test_rejects_unknown_reference_and_naive_now(today, tomorrow):
    with pytest.raises(InvalidInputError):
        resolve_next_prayer(local(2025, 6, 21, 9, 0), today, tomorrow, "khutbah")
    with pytest.raises(InvalidInputError):
        resolve_next_prayer(local(2025, 6, 21, 9, 0).replace(tzinfo=None), today, tomorrow)


def test_to_dict_formats_clock(today, tomorrow):
    data = resolve_next_prayer(local(2025, 6, 21, 17, 9, 1), today, tomorrow).to_dict()
    assert data["name"] == "Isha"
    assert data["time"] == "6:43 PM"
    assert data["reference"] == "athan"
