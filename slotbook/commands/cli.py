# slotbook/commands/cli.py
"""
Operational commands for slotbook.

Usage:
    slotbook init-db                      # Create tables
    slotbook register-provider --timezone America/New_York
    slotbook complete-elapsed             # Complete bookings whose session ended
    slotbook dispatch-outbox              # Log pending outbox events as delivered
"""

from datetime import datetime
import logging
from typing import Any, Dict, NoReturn, Optional

import click

from ..core.config import settings
from ..core.exceptions import DomainException
from ..database import get_db_session, init_db
from ..events.dispatcher import OutboxDispatcher
from ..services.availability_service import AvailabilityService
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)


def _fail(msg: str, code: int = 1) -> NoReturn:
    click.echo(f"{click.style('[ERROR]', fg='red')} {msg}", err=True)
    raise SystemExit(code)


@click.group()
@click.option("--verbose", is_flag=True, help="Log at DEBUG level")
def cli(verbose: bool) -> None:
    """Booking scheduler maintenance commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command("init-db")
def init_db_command() -> None:
    """Create all tables on the configured database."""
    init_db()
    click.echo("Database tables ensured")


@cli.command("register-provider")
@click.option("--timezone", "tz_name", required=True, help="IANA timezone, e.g. Europe/Berlin")
@click.option(
    "--session-minutes",
    type=click.IntRange(1, 24 * 60),
    default=settings.default_session_duration_minutes,
    show_default=True,
)
@click.option("--name", "display_name", default=None)
def register_provider(tz_name: str, session_minutes: int, display_name: Optional[str]) -> None:
    """Create a pending provider (bookable once availability is saved)."""
    with get_db_session() as db:
        try:
            provider = AvailabilityService(db).register_provider(
                timezone=tz_name,
                session_duration_minutes=session_minutes,
                display_name=display_name,
            )
        except DomainException as exc:
            _fail(f"{exc.code}: {exc.message}")
        click.echo(provider.id)


@cli.command("complete-elapsed")
@click.option(
    "--now",
    "now_text",
    default=None,
    help="ISO-8601 instant to treat as now (defaults to the current time)",
)
def complete_elapsed(now_text: Optional[str]) -> None:
    """Mark scheduled bookings whose session has ended as completed."""
    now: Optional[datetime] = None
    if now_text:
        try:
            now = datetime.fromisoformat(now_text)
        except ValueError:
            _fail(f"--now must be an ISO-8601 instant, got {now_text!r}")
    with get_db_session() as db:
        count = BookingService(db).complete_elapsed(now=now)
    click.echo(f"Completed {count} booking(s)")


def _log_sink(event_type: str, payload: Dict[str, Any], idempotency_key: str) -> None:
    logger.info("Outbox event %s key=%s payload=%s", event_type, idempotency_key, payload)


@cli.command("dispatch-outbox")
@click.option("--limit", type=click.IntRange(1, 10_000), default=settings.outbox_batch_size)
def dispatch_outbox(limit: int) -> None:
    """Hand pending outbox events to the log sink."""
    with get_db_session() as db:
        delivered = OutboxDispatcher(db).dispatch_pending(_log_sink, limit=limit)
    click.echo(f"Dispatched {delivered} event(s)")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
