from datetime import datetime, time
import re

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


def minutes_to_hhmm(minutes: int) -> str:
    """Always return HH:MM format"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def hhmm_to_minutes(value: str) -> int:
    """
    Parse ``HH:MM`` (or ``HH:MM:SS`` with zero seconds) into minutes past midnight.

    Raises:
        ValueError: if the string is not a valid time of day
    """
    if not isinstance(value, str):
        raise ValueError("time of day must be a string in HH:MM format")
    match = _HHMM_RE.match(value.strip())
    if not match:
        raise ValueError(f"'{value}' is not a valid HH:MM time")
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds != 0:
        raise ValueError(f"'{value}' is not a valid HH:MM time")
    return hours * 60 + minutes


def minute_of_day(value: datetime | time) -> int:
    return value.hour * 60 + value.minute
