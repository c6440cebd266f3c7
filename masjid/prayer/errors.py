"""
Typed failures raised by the prayer time engine.
"""
from typing import Optional


class PrayerComputationError(Exception):
    """Base class for every failure of the prayer time computation."""


class InvalidInputError(PrayerComputationError, ValueError):
    """Malformed date, location or timestamp passed by the caller."""


class UnreachableAngleError(PrayerComputationError):
    """The sun never reaches the requested altitude on this date at this latitude."""

    def __init__(self, altitude: float, latitude: float, declination: float, event: Optional[str] = None):
        self.altitude = altitude
        self.latitude = latitude
        self.declination = declination
        self.event = event
        label = f"{event}: " if event else ""
        super().__init__(
            f"{label}sun altitude {altitude:.3f} deg is unreachable at latitude "
            f"{latitude:.4f} (declination {declination:.4f})"
        )


class ScheduleOrderError(PrayerComputationError):
    """Computed events are not strictly increasing Fajr..Isha."""
