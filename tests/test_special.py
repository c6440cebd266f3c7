from datetime import date, timedelta

import pytest

from masjid.prayer.settings import PrayerSettings
from masjid.prayer.special import resolve_special_schedule

from conftest import MELBOURNE, local

FRIDAY = date(2025, 6, 20)


def test_jumuah_only_on_fridays():
    settings = PrayerSettings()
    for offset in range(7):
        day = FRIDAY + timedelta(days=offset)
        special = resolve_special_schedule(day, settings, MELBOURNE)
        assert (special.jumuah is not None) == (day.weekday() == 4)


def test_jumuah_defaults_and_cms_times(cms_settings):
    default = resolve_special_schedule(FRIDAY, None, MELBOURNE).jumuah
    assert default.arabic_khutbah == local(2025, 6, 20, 13, 0)
    assert default.english_khutbah == local(2025, 6, 20, 14, 15)

    custom = resolve_special_schedule(FRIDAY, PrayerSettings.from_document(cms_settings), MELBOURNE).jumuah
    assert custom.to_dict()["arabic_khutbah"] == "1:15 PM"
    assert custom.to_dict()["english_khutbah"] == "2:30 PM"


def test_nothing_special_on_an_ordinary_day():
    special = resolve_special_schedule(date(2025, 6, 21), PrayerSettings(), MELBOURNE)
    assert special.is_empty


def test_taraweeh_needs_the_flag():
    off = resolve_special_schedule(date(2026, 2, 20), PrayerSettings(taraweeh_time="9:00 PM"), MELBOURNE)
    on = resolve_special_schedule(date(2026, 2, 20), PrayerSettings(taraweeh_enabled=True), MELBOURNE)
    assert off.taraweeh is None
    assert on.taraweeh.time == local(2026, 2, 20, 20, 30)


@pytest.mark.parametrize(
    "day, shown",
    [(date(2026, 2, 17), False), (date(2026, 2, 18), True), (date(2026, 3, 19), True), (date(2026, 3, 20), False)],
)
def test_taraweeh_ramadan_window(day, shown):
    settings = PrayerSettings.from_document(
        {
            "taraweehEnabled": True,
            "taraweehTime": "8:45 PM",
            "ramadanStart": "2026-02-18",
            "ramadanEnd": "2026-03-19",
        }
    )
    taraweeh = resolve_special_schedule(day, settings, MELBOURNE).taraweeh
    assert (taraweeh is not None) == shown


def test_eid_follows_active_flags():
    settings = PrayerSettings.from_document({"eidFitrActive": True, "eidAdhaActive": False, "eidAdhaTime": "7:30 AM"})
    special = resolve_special_schedule(date(2026, 3, 20), settings, MELBOURNE)
    assert special.eid_fitr.name == "Eid al-Fitr"
    assert special.eid_fitr.time == local(2026, 3, 20, 7, 0)
    assert special.eid_adha is None


def test_invalid_eid_time_uses_default():
    settings = PrayerSettings.from_document({"eidAdhaActive": True, "eidAdhaTime": "after fajr"})
    eid = resolve_special_schedule(date(2026, 5, 27), settings, MELBOURNE).eid_adha
    assert eid.to_dict()["time"] == "7:00 AM"
