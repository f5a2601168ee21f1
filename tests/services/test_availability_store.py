import pytest

from slotbook.core.exceptions import InvalidAvailabilityException, NotFoundException, ValidationException
from slotbook.models.availability_window import AvailabilityWindow
from slotbook.models.provider import ProviderStatus
from slotbook.services.availability_service import AvailabilityService
from tests.scheduling_helpers import business_week


@pytest.fixture
def service(db):
    return AvailabilityService(db)


def test_new_provider_is_pending_with_empty_week(service):
    provider = service.register_provider(timezone="Europe/Berlin", session_duration_minutes=45)

    week = service.get_weekly_availability(provider.id)

    assert week["status"] == ProviderStatus.PENDING.value
    assert week["timezone"] == "Europe/Berlin"
    assert week["weekly_availability"] == {}


def test_save_publishes_week_and_marks_ready(service, db):
    provider = service.register_provider(timezone="America/New_York")

    saved = service.save_weekly_availability(provider.id, business_week())

    assert saved["status"] == ProviderStatus.READY.value
    assert set(saved["weekly_availability"]) == {"monday", "tuesday", "wednesday", "thursday", "friday"}
    assert saved["weekly_availability"]["monday"] == {"enabled": True, "start": "09:00", "end": "17:00"}
    assert provider.availability_updated_at is not None
    assert service.get_weekly_availability(provider.id) == saved


def test_save_replaces_the_whole_week(service, db):
    provider = service.register_provider(timezone="America/New_York")
    service.save_weekly_availability(provider.id, business_week())

    saved = service.save_weekly_availability(
        provider.id,
        {
            "Monday": {"enabled": True, "start": "10:00", "end": "12:00"},
            "saturday": {"enabled": False, "start": "08:00", "end": "09:00"},
        },
    )

    assert saved["weekly_availability"] == {
        "monday": {"enabled": True, "start": "10:00", "end": "12:00"},
        "saturday": {"enabled": False, "start": "08:00", "end": "09:00"},
    }
    rows = db.query(AvailabilityWindow).filter_by(provider_id=provider.id).all()
    assert sorted(row.weekday for row in rows) == [0, 5]


def test_ready_provider_stays_ready_after_clearing_week(service):
    provider = service.register_provider(timezone="America/New_York")
    service.save_weekly_availability(provider.id, business_week())

    saved = service.save_weekly_availability(provider.id, {})

    assert saved["status"] == ProviderStatus.READY.value
    assert saved["weekly_availability"] == {}


def test_invalid_payload_writes_nothing(service, db):
    provider = service.register_provider(timezone="America/New_York")

    with pytest.raises(InvalidAvailabilityException) as exc_info:
        service.save_weekly_availability(
            provider.id, {"monday": {"enabled": True, "start": "17:00", "end": "09:00"}}
        )

    assert exc_info.value.details["errors"][0]["field"] == "monday"
    week = service.get_weekly_availability(provider.id)
    assert week["status"] == ProviderStatus.PENDING.value
    assert week["weekly_availability"] == {}


def test_unknown_provider(service):
    with pytest.raises(NotFoundException):
        service.get_weekly_availability("01HZZZZZZZZZZZZZZZZZZZZZZZ")
    with pytest.raises(NotFoundException):
        service.save_weekly_availability("01HZZZZZZZZZZZZZZZZZZZZZZZ", business_week())


def test_register_rejects_unknown_timezone(service):
    with pytest.raises(ValidationException) as exc_info:
        service.register_provider(timezone="Atlantis/Capital")
    assert exc_info.value.code == "INVALID_TIMEZONE"
