from datetime import datetime, timedelta

import pytest

from slotbook.core.exceptions import (
    BookingNotActiveException,
    NotFoundException,
    OutsideAvailabilityException,
    ProviderNotReadyException,
    SlotConflictException,
    ValidationException,
)
from slotbook.models.booking import Booking, BookingStatus
from slotbook.repositories.factory import RepositoryFactory
from slotbook.services.conflict_guard import ConflictGuard
from tests.scheduling_helpers import BEFORE_TEST_WEEK, assert_projection_matches_ledger, utc

# Monday 2030-01-07 10:00 in New York
TEN_AM = utc(2030, 1, 7, 15, 0)


@pytest.fixture
def guard(db):
    return ConflictGuard(db)


@pytest.fixture
def booking_repo(db):
    return RepositoryFactory.create_booking_repository(db)


def _reserve(guard, provider, at, user_id="user-a"):
    return guard.reserve(provider.id, user_id, at, now=BEFORE_TEST_WEEK)


class TestReserve:
    def test_reserves_and_claims_each_minute(self, guard, provider, booking_repo, db):
        booking = _reserve(guard, provider, TEN_AM)

        assert booking.status == BookingStatus.SCHEDULED.value
        assert booking.appointment_at == TEN_AM
        assert booking.duration_minutes == 60
        assert booking.session_type == "Video Consultation"
        assert booking_repo.count_claims(booking.id) == 60
        assert_projection_matches_ledger(db, provider.id)

    def test_same_instant_conflicts_with_ranked_alternatives(self, guard, provider, booking_repo, db):
        first = _reserve(guard, provider, TEN_AM)

        with pytest.raises(SlotConflictException) as exc_info:
            _reserve(guard, provider, TEN_AM, user_id="user-b")

        exc = exc_info.value
        instants = [slot["appointment_at"] for slot in exc.alternatives]
        assert instants[:4] == [
            "2030-01-07T14:00:00+00:00",  # 09:00, ends exactly when the booked session starts
            "2030-01-07T16:00:00+00:00",  # 11:00, starts exactly when it ends
            "2030-01-07T16:15:00+00:00",
            "2030-01-07T16:30:00+00:00",
        ]
        assert len(instants) == 8
        assert all("2030-01-07" <= slot["date"] <= "2030-01-13" for slot in exc.alternatives)
        assert exc.alternatives[0]["time"] == "09:00"
        assert exc.alternatives[0]["weekday"] == "monday"
        assert exc.details["provider_id"] == provider.id

        assert db.query(Booking).count() == 1
        assert booking_repo.count_claims(first.id) == 60

    def test_partially_overlapping_instant_conflicts(self, guard, provider):
        _reserve(guard, provider, TEN_AM)

        with pytest.raises(SlotConflictException):
            _reserve(guard, provider, utc(2030, 1, 7, 15, 30), user_id="user-b")
        with pytest.raises(SlotConflictException):
            _reserve(guard, provider, utc(2030, 1, 7, 14, 15), user_id="user-c")

    def test_adjacent_instants_do_not_conflict(self, guard, provider, db):
        _reserve(guard, provider, TEN_AM)
        _reserve(guard, provider, utc(2030, 1, 7, 16, 0), user_id="user-b")
        _reserve(guard, provider, utc(2030, 1, 7, 14, 0), user_id="user-c")

        assert db.query(Booking).count() == 3
        assert_projection_matches_ledger(db, provider.id)

    def test_seconds_are_dropped_before_claiming(self, guard, provider, booking_repo, db):
        first = _reserve(guard, provider, utc(2030, 1, 7, 14, 0, 30))
        second = _reserve(
            guard, provider, utc(2030, 1, 7, 15, 0, 45, 250000), user_id="user-b"
        )

        assert first.appointment_at == utc(2030, 1, 7, 14, 0)
        assert second.appointment_at == TEN_AM
        assert booking_repo.claimed_minutes(first.id)[-1] == utc(2030, 1, 7, 14, 59)
        assert booking_repo.claimed_minutes(second.id)[0] == TEN_AM
        assert_projection_matches_ledger(db, provider.id)

    def test_instant_within_a_booked_minute_conflicts(self, guard, provider):
        _reserve(guard, provider, TEN_AM)

        with pytest.raises(SlotConflictException) as exc_info:
            _reserve(guard, provider, TEN_AM + timedelta(seconds=20), user_id="user-b")
        assert exc_info.value.details["requested_at"] == TEN_AM.isoformat()

    def test_different_providers_do_not_conflict(self, guard, provider_factory):
        first = provider_factory()
        second = provider_factory()

        _reserve(guard, first, TEN_AM)
        _reserve(guard, second, TEN_AM)

    def test_outside_availability_is_rejected_without_writing(self, guard, provider, db):
        with pytest.raises(OutsideAvailabilityException) as exc_info:
            _reserve(guard, provider, utc(2030, 1, 12, 15, 0))  # Saturday

        assert exc_info.value.details["cause"] == "day_not_offered"
        assert db.query(Booking).count() == 0

    def test_pending_provider_is_rejected(self, guard, provider_factory):
        pending = provider_factory(publish=False)

        with pytest.raises(ProviderNotReadyException):
            _reserve(guard, pending, TEN_AM)

    def test_unknown_provider(self, guard):
        with pytest.raises(NotFoundException):
            guard.reserve("01HZZZZZZZZZZZZZZZZZZZZZZZ", "user-a", TEN_AM)

    def test_conflict_with_no_open_slot_has_empty_alternatives(self, guard, provider_factory):
        single = provider_factory(
            week={"monday": {"enabled": True, "start": "10:00", "end": "10:00"}}
        )
        _reserve(guard, single, TEN_AM)

        with pytest.raises(SlotConflictException) as exc_info:
            _reserve(guard, single, TEN_AM, user_id="user-b")
        assert exc_info.value.alternatives == []


class TestReschedule:
    def test_moves_in_place(self, guard, provider, booking_repo, db):
        booking = _reserve(guard, provider, TEN_AM)
        tuesday = utc(2030, 1, 8, 15, 0)

        moved = guard.reschedule(booking.id, tuesday, rescheduled_by="user-a", now=BEFORE_TEST_WEEK)

        assert moved.id == booking.id
        assert moved.appointment_at == tuesday
        assert moved.reschedule_count == 1
        assert moved.rescheduled_from_at == TEN_AM
        assert moved.reschedule_history[0]["from"] == TEN_AM.isoformat()
        assert booking_repo.claimed_minutes(booking.id)[0] == tuesday
        assert booking_repo.count_claims(booking.id) == 60
        assert_projection_matches_ledger(db, provider.id)

        # The old slot is free again
        _reserve(guard, provider, TEN_AM, user_id="user-b")

    def test_may_overlap_its_own_current_slot(self, guard, provider, booking_repo):
        booking = _reserve(guard, provider, TEN_AM)

        guard.reschedule(booking.id, utc(2030, 1, 7, 15, 30), now=BEFORE_TEST_WEEK)

        assert booking_repo.claimed_minutes(booking.id)[0] == utc(2030, 1, 7, 15, 30)
        assert booking_repo.count_claims(booking.id) == 60

    def test_conflict_keeps_original_slot(self, guard, provider, booking_repo, db):
        _reserve(guard, provider, TEN_AM)
        other = _reserve(guard, provider, utc(2030, 1, 7, 17, 0), user_id="user-b")

        with pytest.raises(SlotConflictException) as exc_info:
            guard.reschedule(other.id, TEN_AM, now=BEFORE_TEST_WEEK)

        reloaded = db.get(Booking, other.id)
        assert reloaded.appointment_at == utc(2030, 1, 7, 17, 0)
        assert reloaded.reschedule_count == 0
        assert booking_repo.claimed_minutes(other.id)[0] == utc(2030, 1, 7, 17, 0)
        assert booking_repo.count_claims(other.id) == 60
        assert exc_info.value.details["booking_id"] == other.id
        # Its own slot does not block neighbours, but is never offered back
        instants = [slot["appointment_at"] for slot in exc_info.value.alternatives]
        assert "2030-01-07T16:30:00+00:00" in instants
        assert "2030-01-07T17:00:00+00:00" not in instants
        assert_projection_matches_ledger(db, provider.id)

    def test_conflict_alternatives_exclude_current_instant(self, guard, provider, booking_repo):
        nine_am = utc(2030, 1, 7, 14, 0)
        mover = _reserve(guard, provider, nine_am)
        _reserve(guard, provider, TEN_AM, user_id="user-b")

        with pytest.raises(SlotConflictException) as exc_info:
            guard.reschedule(mover.id, TEN_AM, now=BEFORE_TEST_WEEK)

        alternatives = exc_info.value.alternatives
        instants = [slot["appointment_at"] for slot in alternatives]
        assert nine_am.isoformat() not in instants
        assert instants[0] == "2030-01-07T16:00:00+00:00"

        # Every offered alternative is a real move
        moved = guard.reschedule(
            mover.id, datetime.fromisoformat(instants[0]), now=BEFORE_TEST_WEEK
        )
        assert moved.appointment_at == utc(2030, 1, 7, 16, 0)
        assert booking_repo.claimed_minutes(mover.id)[0] == utc(2030, 1, 7, 16, 0)

    def test_outside_availability_keeps_original_slot(self, guard, provider, booking_repo):
        booking = _reserve(guard, provider, TEN_AM)

        with pytest.raises(OutsideAvailabilityException):
            guard.reschedule(booking.id, utc(2030, 1, 7, 23, 0))

        assert booking.appointment_at == TEN_AM
        assert booking_repo.count_claims(booking.id) == 60

    def test_unchanged_instant_is_rejected(self, guard, provider):
        booking = _reserve(guard, provider, TEN_AM)

        with pytest.raises(ValidationException) as exc_info:
            guard.reschedule(booking.id, TEN_AM)
        assert exc_info.value.code == "RESCHEDULE_UNCHANGED"

    def test_same_minute_with_seconds_is_unchanged(self, guard, provider):
        booking = _reserve(guard, provider, TEN_AM)

        with pytest.raises(ValidationException) as exc_info:
            guard.reschedule(booking.id, TEN_AM + timedelta(seconds=59))
        assert exc_info.value.code == "RESCHEDULE_UNCHANGED"

    def test_reschedule_drops_seconds(self, guard, provider, booking_repo):
        booking = _reserve(guard, provider, TEN_AM)

        moved = guard.reschedule(
            booking.id, utc(2030, 1, 8, 15, 0, 10), now=BEFORE_TEST_WEEK
        )

        assert moved.appointment_at == utc(2030, 1, 8, 15, 0)
        assert booking_repo.claimed_minutes(booking.id)[0] == utc(2030, 1, 8, 15, 0)

    def test_terminal_booking_cannot_move(self, guard, provider, booking_repo, db):
        booking = _reserve(guard, provider, TEN_AM)
        booking_repo.cancel(booking, "Schedule changed at work")
        db.commit()

        with pytest.raises(BookingNotActiveException):
            guard.reschedule(booking.id, utc(2030, 1, 8, 15, 0))

    def test_unknown_booking(self, guard):
        with pytest.raises(NotFoundException):
            guard.reschedule("01HZZZZZZZZZZZZZZZZZZZZZZZ", TEN_AM)


def test_new_york_monday_morning_example(db, provider):
    """
    09:00 books, 08:59 is outside, and a second 09:00 request gets same-week alternatives.

    Alternatives are ranked by distance from the requested instant, so with the
    default limit of 8 every one of them is on Monday. Tuesday to Friday only
    appear once the limit is widened.
    """
    guard = ConflictGuard(db)
    nine_am = utc(2030, 1, 7, 14, 0)

    _reserve(guard, provider, nine_am)
    with pytest.raises(OutsideAvailabilityException):
        _reserve(guard, provider, utc(2030, 1, 7, 13, 59), user_id="user-b")
    with pytest.raises(SlotConflictException) as exc_info:
        _reserve(guard, provider, nine_am, user_id="user-c")

    alternatives = exc_info.value.alternatives
    assert alternatives
    assert alternatives[0]["appointment_at"] == "2030-01-07T15:00:00+00:00"
    assert all("2030-01-07" <= slot["date"] <= "2030-01-13" for slot in alternatives)
    assert {slot["weekday"] for slot in alternatives} == {"monday"}

    # Widening the search reaches the rest of the week
    wider = guard.finder.suggest(provider, nine_am, now=BEFORE_TEST_WEEK, limit=200)
    assert {slot.weekday for slot in wider} == {"monday", "tuesday", "wednesday", "thursday", "friday"}
