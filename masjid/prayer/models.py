"""
SQLAlchemy models for published prayer settings: one row per CMS publish.
Computed prayer times are never stored.
"""
from sqlalchemy import Column, String, DateTime, Integer, JSON

from masjid.core.db import Base


class PrayerSettingsRecord(Base):
    """One published prayerSettings document. data is the raw CMS JSON."""
    __tablename__ = "prayer_settings_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(255), nullable=False, default="api")
    received_at = Column(DateTime(timezone=False), nullable=False, index=True)
    data = Column(JSON, nullable=False)
