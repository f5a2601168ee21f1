# slotbook/schemas/availability.py
"""
Weekly availability schemas.

Payload shape, keyed by weekday name (case-insensitive)::

    {"monday": {"enabled": true, "start": "09:00", "end": "17:00"}, ...}

``parse_weekly_availability`` validates every day and reports all problems
at once as field errors, rather than stopping at the first bad day.
"""

from typing import Any, Dict, List, Optional

from pydantic import StrictBool, ValidationError, field_validator, model_validator

from ..core.exceptions import InvalidAvailabilityException
from ..utils.time_helpers import WEEKDAY_NAMES, hhmm_to_minutes
from ._strict_base import StrictModel, StrictRequestModel


class DayAvailability(StrictRequestModel):
    """One weekday's window as submitted by a provider."""

    enabled: StrictBool
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time_of_day(cls, v: str) -> str:
        hhmm_to_minutes(v)
        return v

    @model_validator(mode="after")
    def validate_time_order(self) -> "DayAvailability":
        if hhmm_to_minutes(self.start) > hhmm_to_minutes(self.end):
            raise ValueError("start must not be after end")
        return self

    def to_window_values(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "start_minute": hhmm_to_minutes(self.start),
            "end_minute": hhmm_to_minutes(self.end),
        }


class WeeklyAvailabilityUpdate(StrictRequestModel):
    """Request body for replacing a provider's weekly availability."""

    # Validated by parse_weekly_availability so every day's errors are reported
    weekly_availability: Any


class DayAvailabilityResponse(StrictModel):
    enabled: bool
    start: str
    end: str


class WeeklyAvailabilityResponse(StrictModel):
    provider_id: str
    status: str
    timezone: str
    weekly_availability: Dict[str, DayAvailabilityResponse]


def _field_error(field: str, message: str) -> Dict[str, str]:
    return {"field": field, "message": message}


def parse_weekly_availability(payload: Any) -> Dict[int, Dict[str, Any]]:
    """
    Validate a weekly availability payload.

    Returns:
        weekday index (0=Monday) -> {"enabled", "start_minute", "end_minute"}

    Raises:
        InvalidAvailabilityException: with one entry per problem found
    """
    if not isinstance(payload, dict):
        raise InvalidAvailabilityException(
            [_field_error("weeklyAvailability", "must be an object keyed by weekday name")]
        )

    errors: List[Dict[str, str]] = []
    if len(payload) > len(WEEKDAY_NAMES):
        errors.append(
            _field_error("weeklyAvailability", f"at most {len(WEEKDAY_NAMES)} weekdays allowed")
        )

    windows: Dict[int, Dict[str, Any]] = {}
    for raw_key, raw_day in payload.items():
        day_name: Optional[str] = raw_key.strip().lower() if isinstance(raw_key, str) else None
        if day_name not in WEEKDAY_NAMES:
            errors.append(_field_error(str(raw_key), "unknown weekday"))
            continue

        weekday = WEEKDAY_NAMES.index(day_name)
        if weekday in windows:
            errors.append(_field_error(str(raw_key), f"duplicate entry for {day_name}"))
            continue

        if not isinstance(raw_day, dict):
            errors.append(_field_error(day_name, "must be an object with enabled, start and end"))
            continue

        try:
            day = DayAvailability.model_validate(raw_day)
        except ValidationError as exc:
            for err in exc.errors():
                location = ".".join(str(part) for part in err.get("loc", ()))
                field = f"{day_name}.{location}" if location else day_name
                message = str(err.get("msg", "invalid value"))
                errors.append(_field_error(field, message.removeprefix("Value error, ")))
            windows[weekday] = {}
            continue

        windows[weekday] = day.to_window_values()

    if errors:
        raise InvalidAvailabilityException(errors)
    return windows
