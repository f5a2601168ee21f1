# slotbook/services/conflict_guard.py
"""
Conflict Guard

Atomic reservation and atomic reschedule. There is no read-then-write
availability check: each attempt inserts its per-minute slot claims and the
unique constraint on ``booking_slot_claims`` picks the winner. The loser's
transaction rolls back completely and the caller gets ranked alternatives
instead.
"""

from datetime import datetime
import logging
from typing import Any, Dict, List, NoReturn, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.config import settings
from ..core.exceptions import (
    BookingNotActiveException,
    ConcurrentModificationException,
    NotFoundException,
    ServiceException,
    SlotConflictException,
    ValidationException,
)
from ..events.booking_events import BookingCreated, BookingRescheduled
from ..events.publisher import EventPublisher
from ..models.booking import Booking
from ..models.provider import Provider
from ..models.slot_claim import SLOT_CLAIM_CONSTRAINT
from ..models.types import ensure_utc_minute
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .alternative_slot_finder import AlternativeSlotFinder
from .base import BaseService
from .slot_validator import SlotValidator

logger = logging.getLogger(__name__)

SLOT_CONFLICT_MESSAGE = "This time slot conflicts with an existing booking"


def is_slot_claim_violation(error: IntegrityError) -> bool:
    """True when ``error`` came from the slot-claim uniqueness constraint."""
    orig = getattr(error, "orig", None)
    diag = getattr(orig, "diag", None)
    constraint_name = getattr(diag, "constraint_name", "") if diag is not None else ""
    if constraint_name:
        return bool(constraint_name == SLOT_CLAIM_CONSTRAINT)
    text = str(orig) if orig is not None else str(error)
    return SLOT_CLAIM_CONSTRAINT in text or "booking_slot_claims.slot_minute_at" in text


class ConflictGuard(BaseService):
    """Reserves and moves bookings so that no two scheduled sessions overlap."""

    def __init__(
        self,
        db: Session,
        validator: Optional[SlotValidator] = None,
        finder: Optional[AlternativeSlotFinder] = None,
    ):
        super().__init__(db)
        self.validator = validator or SlotValidator()
        self.finder = finder or AlternativeSlotFinder(db, validator=self.validator)
        self.provider_repository = RepositoryFactory.create_provider_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.publisher = EventPublisher(RepositoryFactory.create_event_outbox_repository(db))

    @BaseService.measure_operation("reserve")
    def reserve(
        self,
        provider_id: str,
        user_id: str,
        appointment_at: datetime,
        session_type: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Reserve ``appointment_at`` with a provider.

        Raises:
            NotFoundException: unknown provider
            ProviderNotReadyException: provider has no published availability
            OutsideAvailabilityException: instant outside the provider's windows
            SlotConflictException: slot taken; carries alternatives
        """
        instant = ensure_utc_minute(appointment_at)
        provider = self._load_provider(provider_id)
        self.validator.validate(provider, instant).raise_for_rejection()

        try:
            with self.booking_repository.transaction():
                booking = self.booking_repository.create_scheduled(
                    user_id=user_id,
                    provider_id=provider.id,
                    appointment_at=instant,
                    duration_minutes=int(provider.session_duration_minutes),
                    session_type=session_type or settings.default_session_type,
                    notes=notes,
                )
                self.publisher.publish(
                    BookingCreated(
                        booking_id=booking.id,
                        user_id=booking.user_id,
                        provider_id=booking.provider_id,
                        appointment_at=booking.appointment_at,
                        session_type=booking.session_type,
                        version=booking.version,
                    )
                )
        except IntegrityError as exc:
            self._raise_slot_conflict(exc, provider, instant, "reserve", now=now)

        prometheus_metrics.inc_booking_transition("created")
        self.logger.info(
            f"Reserved booking {booking.id} for user {user_id} with provider {provider.id} "
            f"at {instant.isoformat()}"
        )
        return booking

    @BaseService.measure_operation("reschedule")
    def reschedule(
        self,
        booking_id: str,
        new_instant: datetime,
        rescheduled_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Move a scheduled booking to ``new_instant`` atomically.

        On any failure the booking keeps its original slot.

        Raises:
            NotFoundException: unknown booking
            BookingNotActiveException: booking is cancelled or completed
            ValidationException: RESCHEDULE_UNCHANGED when the instant is the current one
            OutsideAvailabilityException / ProviderNotReadyException: invalid target
            SlotConflictException: target taken; alternatives exclude this booking
            ConcurrentModificationException: booking changed concurrently
        """
        instant = ensure_utc_minute(new_instant)
        booking = self.booking_repository.get_booking(booking_id)
        if booking is None:
            raise NotFoundException(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        if not booking.is_scheduled:
            raise BookingNotActiveException(booking.id, booking.status, "rescheduled")
        if instant == booking.appointment_at:
            raise ValidationException(
                "New appointment time must differ from the current one",
                code="RESCHEDULE_UNCHANGED",
                details={"booking_id": booking.id, "appointment_at": instant.isoformat()},
            )

        provider = self._load_provider(booking.provider_id)
        self.validator.validate(provider, instant).raise_for_rejection()

        previous = booking.appointment_at
        try:
            with self.booking_repository.transaction():
                self.booking_repository.move(booking, instant, rescheduled_by=rescheduled_by)
                self.publisher.publish(
                    BookingRescheduled(
                        booking_id=booking.id,
                        user_id=booking.user_id,
                        provider_id=booking.provider_id,
                        previous_appointment_at=previous,
                        appointment_at=booking.appointment_at,
                        reschedule_count=booking.reschedule_count,
                        version=booking.version,
                    )
                )
        except IntegrityError as exc:
            self._raise_slot_conflict(
                exc,
                provider,
                instant,
                "reschedule",
                excluding_booking_id=booking_id,
                current_at=previous,
                now=now,
            )
        except StaleDataError as exc:
            self.logger.warning(f"Booking {booking_id} changed during reschedule: {exc}")
            raise ConcurrentModificationException(booking_id) from exc

        prometheus_metrics.inc_booking_transition("rescheduled")
        self.logger.info(
            f"Rescheduled booking {booking.id} from {previous.isoformat()} to {instant.isoformat()}"
        )
        return booking

    def _load_provider(self, provider_id: str) -> Provider:
        provider = self.provider_repository.get_by_id(provider_id)
        if provider is None:
            raise NotFoundException(
                f"Provider {provider_id} not found", details={"provider_id": provider_id}
            )
        return provider

    def _raise_slot_conflict(
        self,
        exc: IntegrityError,
        provider: Provider,
        instant: datetime,
        operation: str,
        excluding_booking_id: Optional[str] = None,
        current_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> NoReturn:
        if not is_slot_claim_violation(exc):
            raise ServiceException(f"Database operation failed: {exc}") from exc

        provider_id = provider.id
        prometheus_metrics.inc_slot_conflict(operation)
        alternatives: List[Dict[str, Any]] = [
            slot.to_dict()
            for slot in self.finder.suggest(
                provider,
                instant,
                excluding_booking_id=excluding_booking_id,
                now=now,
                current_at=current_at,
            )
        ]
        # The lookup is read-only; end its transaction so the write lock is released
        self.db.rollback()
        self.logger.warning(
            f"Slot conflict on {operation} for provider {provider_id} at {instant.isoformat()}; "
            f"offering {len(alternatives)} alternatives"
        )
        raise SlotConflictException(
            alternatives,
            details={
                "provider_id": provider_id,
                "requested_at": instant.isoformat(),
                **({"booking_id": excluding_booking_id} if excluding_booking_id else {}),
            },
            message=SLOT_CONFLICT_MESSAGE,
        ) from exc
