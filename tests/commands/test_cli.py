from contextlib import contextmanager

from click.testing import CliRunner
import pytest

from slotbook.commands import cli as cli_module
from slotbook.models.booking import Booking, BookingStatus
from slotbook.models.event_outbox import EventOutbox, EventOutboxStatus
from slotbook.models.provider import Provider, ProviderStatus
from slotbook.services.booking_service import BookingService
from tests.scheduling_helpers import BEFORE_TEST_WEEK, utc


@pytest.fixture
def runner(session_factory, monkeypatch):
    @contextmanager
    def _session():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    monkeypatch.setattr(cli_module, "get_db_session", _session)
    return CliRunner()


def test_register_provider(runner, session_factory):
    result = runner.invoke(
        cli_module.cli, ["register-provider", "--timezone", "Europe/Paris", "--session-minutes", "30"]
    )

    assert result.exit_code == 0, result.output
    provider_id = result.output.strip()
    check = session_factory()
    try:
        provider = check.get(Provider, provider_id)
        assert provider.timezone == "Europe/Paris"
        assert provider.session_duration_minutes == 30
        assert provider.status == ProviderStatus.PENDING.value
    finally:
        check.close()


def test_register_provider_rejects_bad_timezone(runner):
    result = runner.invoke(cli_module.cli, ["register-provider", "--timezone", "Moon/Base"])

    assert result.exit_code == 1
    assert "INVALID_TIMEZONE" in result.output


def test_complete_elapsed(runner, db, provider, session_factory):
    booking = BookingService(db).create_booking(
        "user-a", provider.id, utc(2030, 1, 7, 15, 0), now=BEFORE_TEST_WEEK
    )
    db.commit()

    result = runner.invoke(cli_module.cli, ["complete-elapsed", "--now", "2030-01-07T16:30:00+00:00"])

    assert result.exit_code == 0, result.output
    assert "Completed 1 booking(s)" in result.output
    check = session_factory()
    try:
        assert check.get(Booking, booking.id).status == BookingStatus.COMPLETED.value
    finally:
        check.close()


def test_complete_elapsed_rejects_bad_instant(runner):
    result = runner.invoke(cli_module.cli, ["complete-elapsed", "--now", "yesterday"])

    assert result.exit_code == 1
    assert "ISO-8601" in result.output


def test_dispatch_outbox(runner, db, provider, session_factory):
    BookingService(db).create_booking(
        "user-a", provider.id, utc(2030, 1, 7, 15, 0), now=BEFORE_TEST_WEEK
    )
    db.commit()

    result = runner.invoke(cli_module.cli, ["dispatch-outbox"])

    assert result.exit_code == 0, result.output
    assert "Dispatched 1 event(s)" in result.output
    check = session_factory()
    try:
        assert check.query(EventOutbox).one().status == EventOutboxStatus.SENT.value
    finally:
        check.close()
