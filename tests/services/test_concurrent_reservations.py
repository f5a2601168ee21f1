"""Concurrent writers racing for the same provider time."""

from concurrent.futures import ThreadPoolExecutor
import threading

import pytest

from slotbook.core.exceptions import SlotConflictException
from slotbook.models.booking import Booking
from slotbook.services.booking_service import BookingService
from tests.scheduling_helpers import BEFORE_TEST_WEEK, assert_projection_matches_ledger, utc


def _race(session_factory, provider_id, instants):
    barrier = threading.Barrier(len(instants))

    def attempt(index):
        session = session_factory()
        try:
            barrier.wait(timeout=10)
            try:
                booking = BookingService(session).create_booking(
                    f"user-{index}", provider_id, instants[index], now=BEFORE_TEST_WEEK
                )
                return ("ok", booking.id)
            except SlotConflictException as exc:
                return ("conflict", exc.alternatives)
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(instants)) as pool:
        return list(pool.map(attempt, range(len(instants))))


@pytest.mark.parametrize(
    "instants",
    [
        [utc(2030, 1, 7, 15, 0)] * 8,
        [utc(2030, 1, 7, 15, 0), utc(2030, 1, 7, 15, 15), utc(2030, 1, 7, 15, 30), utc(2030, 1, 7, 15, 45)],
    ],
    ids=["same-instant", "overlapping-instants"],
)
def test_exactly_one_writer_wins(db, session_factory, provider, instants):
    db.commit()

    outcomes = _race(session_factory, provider.id, instants)

    winners = [value for kind, value in outcomes if kind == "ok"]
    losers = [value for kind, value in outcomes if kind == "conflict"]
    assert len(winners) == 1
    assert len(losers) == len(instants) - 1
    assert all(alternatives for alternatives in losers)

    check = session_factory()
    try:
        assert check.query(Booking).count() == 1
        assert_projection_matches_ledger(check, provider.id)
    finally:
        check.close()


def test_disjoint_instants_all_succeed(db, session_factory, provider):
    db.commit()
    instants = [utc(2030, 1, 7, 14 + hour, 0) for hour in range(6)]

    outcomes = _race(session_factory, provider.id, instants)

    assert [kind for kind, _ in outcomes] == ["ok"] * len(instants)
