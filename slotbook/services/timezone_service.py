"""
Timezone handling for provider availability.

Rules:
- All storage: UTC
- All comparisons: UTC
- Availability windows: provider-local wall clock, in the provider's zone
- The process timezone is never consulted
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple

import pytz

from ..core.exceptions import ValidationException
from ..models.types import ensure_utc
from ..utils.time_helpers import WEEKDAY_NAMES, minute_of_day, minutes_to_hhmm


@dataclass(frozen=True)
class LocalSlot:
    """An instant expressed on the provider's wall clock."""

    weekday: int  # 0=Monday
    minute_of_day: int
    local_date: date
    local_datetime: datetime

    @property
    def weekday_name(self) -> str:
        return WEEKDAY_NAMES[self.weekday]

    @property
    def time_label(self) -> str:
        return minutes_to_hhmm(self.minute_of_day)


class TimezoneService:
    """Handles all timezone conversions consistently."""

    @staticmethod
    def get_timezone(tz_str: Optional[str]) -> pytz.BaseTzInfo:
        """
        Resolve an IANA zone id.

        Raises:
            ValidationException: INVALID_TIMEZONE for unknown or empty ids
        """
        if not tz_str:
            raise ValidationException(
                "Timezone is required", code="INVALID_TIMEZONE", details={"timezone": tz_str}
            )
        try:
            return pytz.timezone(tz_str)
        except pytz.UnknownTimeZoneError:
            raise ValidationException(
                f"Unknown timezone '{tz_str}'",
                code="INVALID_TIMEZONE",
                details={"timezone": tz_str},
            ) from None

    @staticmethod
    def normalize(timezone_str: str, appointment_at: datetime) -> LocalSlot:
        """
        Map a UTC instant onto the provider's local weekday and minute of day.

        Naive datetimes are taken as UTC. Seconds are dropped, so 09:00:59
        is minute 540.
        """
        tz = TimezoneService.get_timezone(timezone_str)
        local_dt = ensure_utc(appointment_at).astimezone(tz)
        return LocalSlot(
            weekday=local_dt.weekday(),
            minute_of_day=minute_of_day(local_dt),
            local_date=local_dt.date(),
            local_datetime=local_dt,
        )

    @staticmethod
    def local_to_utc(local_date: date, minute: int, timezone_str: str) -> Optional[datetime]:
        """
        Convert a provider-local date and minute of day to UTC.

        Returns None when the wall-clock time does not exist that day (DST
        spring-forward gap). Repeated wall-clock times resolve to the first
        occurrence.
        """
        tz = TimezoneService.get_timezone(timezone_str)
        naive_dt = datetime.combine(
            local_date, time(minute // 60, minute % 60)
        )  # utc-naive-ok: Intentionally naive for pytz.localize()

        try:
            # is_dst=None raises exception for ambiguous/nonexistent times
            local_dt = tz.localize(naive_dt, is_dst=None)
        except pytz.exceptions.AmbiguousTimeError:
            # Fall back (time exists twice) - use first occurrence
            local_dt = tz.localize(naive_dt, is_dst=True)
        except pytz.exceptions.NonExistentTimeError:
            return None

        return local_dt.astimezone(timezone.utc)

    @staticmethod
    def iso_week_bounds(timezone_str: str, instant: datetime) -> Tuple[date, date]:
        """Monday and Sunday (provider-local) of the ISO week containing ``instant``."""
        local_day = TimezoneService.normalize(timezone_str, instant).local_date
        monday = local_day - timedelta(days=local_day.weekday())
        return monday, monday + timedelta(days=6)

    @staticmethod
    def utc_to_local(utc_dt: datetime, timezone_str: str) -> datetime:
        """Convert UTC datetime to local timezone."""
        tz = TimezoneService.get_timezone(timezone_str)
        return ensure_utc(utc_dt).astimezone(tz)
