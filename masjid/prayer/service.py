"""
Service layer: settings snapshots from the DB or the config file, and the
typed location/parameters built from config.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy import select

from masjid.core import db
from masjid.core.db import session_scope
from masjid.prayer.constants import DEFAULT_LOCATION, DEFAULT_PARAMETERS
from masjid.prayer.entities import CalculationParameters, GeoCoordinate
from masjid.prayer.models import PrayerSettingsRecord
from masjid.prayer.settings import PrayerSettings

logger = logging.getLogger(__name__)

_PARAMETER_KEYS = (
    "fajr_angle",
    "isha_angle",
    "isha_minutes",
    "asr_factor",
    "dhuhr_margin_minutes",
    "fallback_angle",
)


def save_prayer_settings(document: Dict[str, Any], source: str = "api") -> PrayerSettingsRecord:
    """Store a newly published settings document. Invalid fields are kept as sent; they are dropped when read."""
    received_at = datetime.now(timezone.utc).replace(tzinfo=None)
    record = PrayerSettingsRecord(source=source, received_at=received_at, data=dict(document))
    with session_scope() as session:
        session.add(record)
    logger.info(f"Stored prayer settings from {source} ({len(document)} fields)")
    return record


def get_latest_prayer_settings_record() -> Optional[PrayerSettingsRecord]:
    """Return the most recently received PrayerSettingsRecord (for API serialization)."""
    with session_scope() as session:
        return (
            session.execute(
                select(PrayerSettingsRecord)
                .order_by(PrayerSettingsRecord.received_at.desc(), PrayerSettingsRecord.id.desc())
                .limit(1)
            )
            .scalars().first()
        )


def get_latest_prayer_settings() -> Optional[Dict[str, Any]]:
    row = get_latest_prayer_settings_record()
    return row.data if row else None


def location_from_config(config_data: Optional[Dict[str, Any]]) -> GeoCoordinate:
    """Site location from the `location` section, defaults for missing or empty keys."""
    section = (config_data or {}).get("location") or {}

    def value(key: str) -> Any:
        # `latitude:` with nothing after it loads as None
        found = section.get(key)
        return getattr(DEFAULT_LOCATION, key) if found is None else found

    return GeoCoordinate(
        latitude=float(value("latitude")),
        longitude=float(value("longitude")),
        timezone=str(value("timezone")),
        elevation=float(value("elevation")),
    )


def parameters_from_config(config_data: Optional[Dict[str, Any]]) -> CalculationParameters:
    """Calculation parameters from the `calculation` section, defaults for missing keys."""
    section = (config_data or {}).get("calculation") or {}
    values = {}
    for key in _PARAMETER_KEYS:
        if key not in section:
            continue
        value = section[key]
        values[key] = float(value) if value is not None else None
    for key in ("fajr_angle", "isha_angle", "asr_factor", "dhuhr_margin_minutes"):
        if values.get(key) is None:
            values[key] = getattr(DEFAULT_PARAMETERS, key)
    return CalculationParameters(**values)


def settings_provider(get_config: Callable[[], Optional[Dict[str, Any]]]) -> Callable[[], PrayerSettings]:
    """
    Build the snapshot provider: latest published document from the DB, else
    the config file's prayer_settings section, else defaults.
    """
    def provide() -> PrayerSettings:
        if db.is_initialized():
            document = get_latest_prayer_settings()
            if document is not None:
                return PrayerSettings.from_document(document)
        config_data = get_config() or {}
        return PrayerSettings.from_document(config_data.get("prayer_settings") or None)

    return provide
