"""
API for prayer times. Mounted at /api/prayer/.
Schedules are computed per request from the current settings snapshot.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from masjid.prayer.constants import REFERENCE_ATHAN
from masjid.prayer.errors import InvalidInputError, PrayerComputationError
from masjid.prayer.schedule import compute_next_prayer, compute_todays_prayer_times
from masjid.prayer.service import get_latest_prayer_settings_record, save_prayer_settings
from masjid.prayer.settings import PrayerSettings


class PrayerTimeResponse(BaseModel):
    name: str
    athan: str
    iqamah: Optional[str] = None
    athan_at: datetime
    iqamah_at: Optional[datetime] = None


class JumuahResponse(BaseModel):
    arabic_khutbah: str
    english_khutbah: str
    arabic_khutbah_at: datetime
    english_khutbah_at: datetime


class SpecialPrayerResponse(BaseModel):
    name: str
    time: str
    at: datetime


class SpecialScheduleResponse(BaseModel):
    jumuah: Optional[JumuahResponse] = None
    taraweeh: Optional[SpecialPrayerResponse] = None
    eid_fitr: Optional[SpecialPrayerResponse] = None
    eid_adha: Optional[SpecialPrayerResponse] = None


class TodaysPrayerTimesResponse(BaseModel):
    date: date
    prayers: List[PrayerTimeResponse]
    sunrise: PrayerTimeResponse
    special: SpecialScheduleResponse
    stale: bool = False


class NextPrayerResponse(BaseModel):
    name: str
    time: str
    at: datetime
    is_next_day: bool
    reference: str
    stale: bool = False


class PrayerSettingsRecordResponse(BaseModel):
    """Pydantic view of PrayerSettingsRecord for API; serializes from ORM."""

    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    source: Optional[str] = None
    received_at: Optional[datetime] = None
    data: Optional[Dict[str, Any]] = None


class PrayerSettingsResponse(BaseModel):
    record: Optional[PrayerSettingsRecordResponse] = None
    applied: Dict[str, Any]


def _parse_day(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidInputError(f"Invalid date {value!r}, expected YYYY-MM-DD")


def get_router(masjid_app) -> APIRouter:
    """
    Return router for prayer times; mounted with prefix /api/prayer.
    masjid_app provides location, parameters, settings_provider(), clock()
    and optionally refresh (a ScheduleRefreshScheduler).
    """
    router = APIRouter(tags=["Prayer Times"])

    @router.get("/today", response_model=TodaysPrayerTimesResponse)
    def get_today(day: Optional[str] = Query(None, alias="date")) -> TodaysPrayerTimesResponse:
        """Full schedule for a date (default: today at the site)."""
        try:
            target = _parse_day(day) or masjid_app.clock().astimezone(masjid_app.location.zone).date()
            schedule = compute_todays_prayer_times(
                target,
                masjid_app.settings_provider(),
                location=masjid_app.location,
                parameters=masjid_app.parameters,
            )
        except InvalidInputError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except PrayerComputationError as e:
            raise HTTPException(status_code=503, detail=str(e))
        return TodaysPrayerTimesResponse.model_validate(schedule.to_dict())

    @router.get("/next", response_model=NextPrayerResponse)
    def get_next(
        reference: str = Query(REFERENCE_ATHAN),
    ) -> NextPrayerResponse:
        """Next prayer from now, by athan or iqamah time."""
        try:
            projection = compute_next_prayer(
                masjid_app.clock(),
                masjid_app.settings_provider(),
                reference=reference,
                location=masjid_app.location,
                parameters=masjid_app.parameters,
            )
        except InvalidInputError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except PrayerComputationError as e:
            raise HTTPException(status_code=503, detail=str(e))
        return NextPrayerResponse.model_validate(projection.to_dict())

    @router.get("/settings", response_model=PrayerSettingsResponse)
    def get_settings() -> PrayerSettingsResponse:
        """Latest published document and the settings actually applied."""
        record = get_latest_prayer_settings_record()
        return PrayerSettingsResponse(
            record=PrayerSettingsRecordResponse.model_validate(record) if record else None,
            applied=masjid_app.settings_provider().to_document(),
        )

    @router.put("/settings", response_model=PrayerSettingsResponse)
    def put_settings(document: Any = Body(...)) -> PrayerSettingsResponse:
        """Store a newly published prayerSettings document and refresh the schedule."""
        if not isinstance(document, dict):
            raise HTTPException(status_code=400, detail="prayerSettings document must be a JSON object")
        record = save_prayer_settings(document)
        refresh = getattr(masjid_app, "refresh", None)
        if refresh is not None:
            refresh.refresh_now()
        return PrayerSettingsResponse(
            record=PrayerSettingsRecordResponse.model_validate(record),
            applied=PrayerSettings.from_document(document).to_document(),
        )

    return router
