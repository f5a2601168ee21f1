import random

import pytest
import pytz

from slotbook.core.exceptions import OutsideAvailabilityException, ProviderNotReadyException
from slotbook.models.availability_window import AvailabilityWindow
from slotbook.models.provider import Provider, ProviderStatus
from slotbook.services.slot_validator import OutsideCause, RejectionReason, SlotValidator
from tests.scheduling_helpers import utc


def make_provider(tz="America/New_York", windows=None, status=ProviderStatus.READY.value):
    if windows is None:
        windows = [(day, True, 540, 1020) for day in range(5)]
    return Provider(
        id="01HZZZZZZZZZZZZZZZZZZZZZZZ",
        timezone=tz,
        session_duration_minutes=60,
        status=status,
        availability_windows=[
            AvailabilityWindow(weekday=day, enabled=enabled, start_minute=start, end_minute=end)
            for day, enabled, start, end in windows
        ],
    )


@pytest.fixture
def validator():
    return SlotValidator()


class TestAvailabilityBoundaries:
    def test_window_start_is_bookable(self, validator):
        decision = validator.validate(make_provider(), utc(2030, 1, 7, 14, 0))

        assert decision.ok
        assert decision.local_slot.time_label == "09:00"

    def test_one_minute_before_window_is_rejected(self, validator):
        decision = validator.validate(make_provider(), utc(2030, 1, 7, 13, 59))

        assert not decision.ok
        assert decision.reason is RejectionReason.OUTSIDE_AVAILABILITY
        assert decision.details["cause"] == OutsideCause.TIME_NOT_OFFERED.value
        assert decision.details["weekday"] == "monday"
        assert decision.details["local_time"] == "08:59"
        assert decision.details["window_start"] == "09:00"
        assert decision.details["window_end"] == "17:00"

    def test_window_end_is_inclusive(self, validator):
        assert validator.validate(make_provider(), utc(2030, 1, 7, 22, 0)).ok

    def test_one_minute_after_window_is_rejected(self, validator):
        assert not validator.validate(make_provider(), utc(2030, 1, 7, 22, 1)).ok

    def test_day_not_offered(self, validator):
        decision = validator.validate(make_provider(), utc(2030, 1, 12, 15, 0))  # Saturday

        assert not decision.ok
        assert decision.details["cause"] == OutsideCause.DAY_NOT_OFFERED.value
        assert decision.details["weekday"] == "saturday"
        assert "Saturday" in decision.message

    def test_disabled_day_is_not_offered(self, validator):
        provider = make_provider(windows=[(0, False, 540, 1020)])
        decision = validator.validate(provider, utc(2030, 1, 7, 15, 0))

        assert decision.details["cause"] == OutsideCause.DAY_NOT_OFFERED.value

    def test_provider_local_weekday_is_used(self, validator):
        # Monday 09:00 in Tokyo is Monday 00:00 UTC
        provider = make_provider(tz="Asia/Tokyo", windows=[(0, True, 540, 1020)])

        assert validator.validate(provider, utc(2030, 1, 7, 0, 0)).ok
        assert not validator.validate(provider, utc(2030, 1, 6, 23, 30)).ok


class TestRejectionsRaise:
    def test_pending_provider(self, validator):
        provider = make_provider(status=ProviderStatus.PENDING.value)
        decision = validator.validate(provider, utc(2030, 1, 7, 15, 0))

        assert decision.reason is RejectionReason.PROVIDER_NOT_READY
        with pytest.raises(ProviderNotReadyException) as exc_info:
            decision.raise_for_rejection()
        assert exc_info.value.code == "PROVIDER_NOT_READY"

    def test_outside_availability(self, validator):
        decision = validator.validate(make_provider(), utc(2030, 1, 7, 23, 0))

        with pytest.raises(OutsideAvailabilityException) as exc_info:
            decision.raise_for_rejection()
        assert exc_info.value.code == "OUTSIDE_AVAILABILITY"
        assert exc_info.value.details["local_date"] == "2030-01-07"

    def test_accepted_decision_does_not_raise(self, validator):
        validator.validate(make_provider(), utc(2030, 1, 7, 15, 0)).raise_for_rejection()


def test_matches_window_membership_for_random_instants(validator):
    """The validator agrees with a direct wall-clock check for arbitrary weeks."""
    rng = random.Random(20300107)
    zones = ["America/New_York", "Europe/Berlin", "Asia/Kolkata", "Australia/Sydney", "UTC"]

    for _ in range(40):
        windows = []
        for day in range(7):
            start = rng.randrange(0, 1440)
            end = rng.randrange(start, 1440)
            windows.append((day, rng.random() < 0.7, start, end))
        provider = make_provider(tz=rng.choice(zones), windows=windows)
        tz = pytz.timezone(provider.timezone)

        for _ in range(25):
            instant = utc(2030, rng.randrange(1, 13), rng.randrange(1, 29), rng.randrange(24), rng.randrange(60))
            local = instant.astimezone(tz)
            _, enabled, start, end = windows[local.weekday()]
            expected = enabled and start <= local.hour * 60 + local.minute <= end

            assert validator.validate(provider, instant).ok == expected
