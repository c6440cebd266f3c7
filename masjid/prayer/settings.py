"""
Typed view of the CMS prayer-settings document.

Every field is optional. Defaults are never filled in here: the iqamah merger
and the special schedule resolver apply them when they consume a field.
"""
import logging
import re
from datetime import date, datetime, time
from typing import Any, Literal, Mapping, Optional

from dateutil import parser as dateutil_parser
from pydantic import BaseModel, ConfigDict, NonNegativeInt, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from masjid.prayer.entities import PRAYER_ORDER, IqamahOverride

logger = logging.getLogger(__name__)

_CLOCK_PATTERN = re.compile(r"^\s*\d{1,2}:\d{2}\s*([aApP]\.?[mM]\.?)?\s*$")
_PARSE_DEFAULT = datetime(2000, 1, 1)

_TIME_FIELDS = (
    "fajr_fixed_time",
    "dhuhr_fixed_time",
    "asr_fixed_time",
    "maghrib_fixed_time",
    "isha_fixed_time",
    "jumuah_arabic_time",
    "jumuah_english_time",
    "taraweeh_time",
    "eid_fitr_time",
    "eid_adha_time",
)
_MODE_FIELDS = tuple(f"{name.lower()}_iqamah_mode" for name in PRAYER_ORDER)


def parse_clock(value: Any) -> Optional[time]:
    """Parse an editor-entered clock time ('6:05 PM' or '18:05'); None when unusable."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not _CLOCK_PATTERN.match(value):
        return None
    try:
        return dateutil_parser.parse(value, default=_PARSE_DEFAULT).time()
    except (ValueError, OverflowError):
        return None


class PrayerSettings(BaseModel):
    """The prayerSettings CMS singleton. Accepts camelCase (CMS) or snake_case keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    fajr_iqamah_mode: Optional[Literal["calculated", "fixed"]] = None
    fajr_fixed_time: Optional[str] = None
    fajr_delay: Optional[NonNegativeInt] = None

    dhuhr_iqamah_mode: Optional[Literal["calculated", "fixed"]] = None
    dhuhr_fixed_time: Optional[str] = None
    dhuhr_delay: Optional[NonNegativeInt] = None

    asr_iqamah_mode: Optional[Literal["calculated", "fixed"]] = None
    asr_fixed_time: Optional[str] = None
    asr_delay: Optional[NonNegativeInt] = None

    maghrib_iqamah_mode: Optional[Literal["calculated", "fixed"]] = None
    maghrib_fixed_time: Optional[str] = None
    maghrib_delay: Optional[NonNegativeInt] = None

    isha_iqamah_mode: Optional[Literal["calculated", "fixed"]] = None
    isha_fixed_time: Optional[str] = None
    isha_delay: Optional[NonNegativeInt] = None

    jumuah_arabic_time: Optional[str] = None
    jumuah_english_time: Optional[str] = None

    taraweeh_enabled: Optional[bool] = None
    taraweeh_time: Optional[str] = None
    ramadan_start: Optional[date] = None
    ramadan_end: Optional[date] = None

    eid_fitr_active: Optional[bool] = None
    eid_fitr_time: Optional[str] = None
    eid_adha_active: Optional[bool] = None
    eid_adha_time: Optional[str] = None

    @field_validator(*_MODE_FIELDS, mode="before")
    @classmethod
    def _normalise_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator(*_TIME_FIELDS)
    @classmethod
    def _check_clock(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and parse_clock(value) is None:
            raise ValueError(f"unrecognised clock time {value!r}")
        return value

    @classmethod
    def from_document(cls, document: Any) -> "PrayerSettings":
        """
        Build settings from a raw CMS document. Invalid fields are dropped with
        a warning so one bad value never blocks the whole schedule.
        """
        if document is None:
            return cls()
        if isinstance(document, cls):
            return document
        if not isinstance(document, Mapping):
            logger.warning(f"Ignoring prayer settings document of type {type(document).__name__}")
            return cls()

        data = dict(document)
        while True:
            try:
                return cls.model_validate(data)
            except ValidationError as e:
                bad_locs = {str(err["loc"][0]) for err in e.errors() if err.get("loc")}
                bad_keys = [
                    key for key in data
                    if key in bad_locs or to_camel(str(key)) in bad_locs
                ]
                if not bad_keys:
                    logger.warning(f"Prayer settings rejected, using defaults: {e}")
                    return cls()
                for key in bad_keys:
                    logger.warning(f"Ignoring invalid prayer setting {key}={data[key]!r}")
                    del data[key]

    def iqamah_override(self, prayer: str) -> IqamahOverride:
        prefix = prayer.lower()
        return IqamahOverride(
            mode=getattr(self, f"{prefix}_iqamah_mode"),
            delay=getattr(self, f"{prefix}_delay"),
            fixed_time=getattr(self, f"{prefix}_fixed_time"),
        )

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
