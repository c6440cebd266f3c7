"""
Site location, calculation defaults and the documented fallbacks for every
CMS prayer setting.
"""
from masjid.prayer.entities import CalculationParameters, GeoCoordinate

# Australian Islamic Centre, 23-27 Blenheim Rd, Newport VIC 3015
DEFAULT_LOCATION = GeoCoordinate(
    latitude=-37.8443,
    longitude=144.8836,
    timezone="Australia/Melbourne",
    elevation=10.0,
)

DEFAULT_PARAMETERS = CalculationParameters(
    fajr_angle=18.0,
    isha_angle=18.0,
    asr_factor=1,
    dhuhr_margin_minutes=2,
)

IQAMAH_MODE_CALCULATED = "calculated"
IQAMAH_MODE_FIXED = "fixed"

# Minutes after athan when the CMS has no usable delay
DEFAULT_IQAMAH_DELAYS = {
    "Fajr": 15,
    "Dhuhr": 10,
    "Asr": 10,
    "Maghrib": 5,
    "Isha": 10,
}

DEFAULT_JUMUAH_ARABIC_TIME = "1:00 PM"
DEFAULT_JUMUAH_ENGLISH_TIME = "2:15 PM"
DEFAULT_TARAWEEH_TIME = "8:30 PM"
DEFAULT_EID_TIME = "7:00 AM"

REFERENCE_ATHAN = "athan"
REFERENCE_IQAMAH = "iqamah"
REFERENCES = (REFERENCE_ATHAN, REFERENCE_IQAMAH)
