import pytest

from masjid.core import db
from masjid.prayer.errors import InvalidInputError
from masjid.prayer.service import (
    get_latest_prayer_settings,
    get_latest_prayer_settings_record,
    location_from_config,
    parameters_from_config,
    save_prayer_settings,
    settings_provider,
)


def test_latest_settings_document_wins(memory_db, cms_settings):
    assert get_latest_prayer_settings() is None
    save_prayer_settings(cms_settings)
    save_prayer_settings({"ishaDelay": 20}, source="cms-webhook")

    record = get_latest_prayer_settings_record()
    assert record.source == "cms-webhook"
    assert record.data == {"ishaDelay": 20}
    assert record.received_at is not None


def test_invalid_fields_are_stored_as_sent(memory_db):
    save_prayer_settings({"fajrDelay": "soon"})
    assert get_latest_prayer_settings() == {"fajrDelay": "soon"}


def test_provider_prefers_published_document(memory_db):
    provide = settings_provider(lambda: {"prayer_settings": {"ishaDelay": 5}})
    assert provide().isha_delay == 5

    save_prayer_settings({"ishaDelay": 25})
    assert provide().isha_delay == 25


def test_provider_without_database_reads_config():
    db.dispose_db()
    provide = settings_provider(lambda: {"prayer_settings": {"asrDelay": 12}})
    assert provide().asr_delay == 12
    assert settings_provider(lambda: None)().asr_delay is None


def test_location_from_config_defaults_and_overrides():
    assert location_from_config(None).latitude == -37.8443
    location = location_from_config({"location": {"latitude": "51.5", "longitude": -0.12, "timezone": "Europe/London"}})
    assert location.latitude == 51.5
    assert location.timezone == "Europe/London"
    assert location.elevation == 10.0


def test_location_from_config_keeps_sea_level():
    location = location_from_config({"location": {"latitude": -38.3, "longitude": 144.6, "elevation": 0}})
    assert location.elevation == 0.0


def test_location_from_config_treats_empty_keys_as_missing():
    location = location_from_config({"location": {"latitude": None, "longitude": None, "timezone": None, "elevation": None}})
    assert location.latitude == -37.8443
    assert location.longitude == 144.8836
    assert location.timezone == "Australia/Melbourne"
    assert location.elevation == 10.0


def test_location_from_config_rejects_unknown_zone():
    with pytest.raises(InvalidInputError):
        location_from_config({"location": {"timezone": "Mars/Olympus_Mons"}})


def test_parameters_from_config():
    params = parameters_from_config({"calculation": {"fajr_angle": 15, "isha_minutes": 90, "fallback_angle": None}})
    assert params.fajr_angle == 15.0
    assert params.isha_angle == 18.0
    assert params.isha_minutes == 90.0
    assert params.fallback_angle is None
    assert parameters_from_config({"calculation": {"asr_factor": None}}).asr_factor == 1
