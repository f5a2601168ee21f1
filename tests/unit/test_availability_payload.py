import pytest

from slotbook.core.exceptions import InvalidAvailabilityException
from slotbook.schemas.availability import parse_weekly_availability


def _errors(payload):
    with pytest.raises(InvalidAvailabilityException) as exc_info:
        parse_weekly_availability(payload)
    assert exc_info.value.code == "INVALID_AVAILABILITY"
    return exc_info.value.details["errors"]


def _fields(payload):
    return [error["field"] for error in _errors(payload)]


class TestValidPayloads:
    def test_parses_days_case_insensitively(self):
        windows = parse_weekly_availability(
            {
                "Monday": {"enabled": True, "start": "09:00", "end": "17:00"},
                "SUNDAY": {"enabled": False, "start": "10:00", "end": "12:30"},
            }
        )

        assert windows == {
            0: {"enabled": True, "start_minute": 540, "end_minute": 1020},
            6: {"enabled": False, "start_minute": 600, "end_minute": 750},
        }

    def test_empty_week_is_allowed(self):
        assert parse_weekly_availability({}) == {}

    def test_single_instant_window(self):
        windows = parse_weekly_availability(
            {"friday": {"enabled": True, "start": "12:00", "end": "12:00"}}
        )
        assert windows[4]["start_minute"] == windows[4]["end_minute"] == 720


class TestInvalidPayloads:
    def test_payload_must_be_an_object(self):
        assert _fields(["monday"]) == ["weeklyAvailability"]

    def test_unknown_weekday(self):
        errors = _errors({"funday": {"enabled": True, "start": "09:00", "end": "10:00"}})
        assert errors == [{"field": "funday", "message": "unknown weekday"}]

    def test_duplicate_weekday_after_case_folding(self):
        day = {"enabled": True, "start": "09:00", "end": "10:00"}
        errors = _errors({"monday": day, "MONDAY": day})

        assert len(errors) == 1
        assert errors[0]["field"] == "MONDAY"
        assert "duplicate" in errors[0]["message"]

    def test_start_after_end(self):
        errors = _errors({"tuesday": {"enabled": True, "start": "17:00", "end": "09:00"}})
        assert errors == [{"field": "tuesday", "message": "start must not be after end"}]

    def test_invalid_time_of_day(self):
        assert _fields({"monday": {"enabled": True, "start": "25:00", "end": "26:00"}}) == [
            "monday.start",
            "monday.end",
        ]

    def test_enabled_must_be_boolean(self):
        assert _fields({"monday": {"enabled": "yes", "start": "09:00", "end": "10:00"}}) == [
            "monday.enabled"
        ]

    def test_missing_and_unexpected_fields(self):
        fields = _fields({"monday": {"enabled": True, "start": "09:00", "until": "10:00"}})
        assert sorted(fields) == ["monday.end", "monday.until"]

    def test_day_must_be_an_object(self):
        assert _fields({"monday": "09:00-17:00"}) == ["monday"]

    def test_every_problem_is_reported(self):
        fields = _fields(
            {
                "monday": {"enabled": True, "start": "18:00", "end": "09:00"},
                "caturday": {"enabled": True, "start": "09:00", "end": "10:00"},
                "friday": {"enabled": True, "start": "9am", "end": "10:00"},
            }
        )
        assert fields == ["monday", "caturday", "friday.start"]
