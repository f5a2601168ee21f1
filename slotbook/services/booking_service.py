# slotbook/services/booking_service.py
"""
Booking Service (the booking ledger)

Entry point for every booking lifecycle change:

    scheduled -> cancelled    (reason required, terminal)
    scheduled -> completed    (time-driven sweep, terminal)
    scheduled -> scheduled    (reschedule: same id, new instant)

Reservation and reschedule are delegated to ``ConflictGuard``. Each mutation
commits the ledger row, its slot claims, the schedule projection and an
outbox event together, or none of them.
"""

from datetime import datetime, timezone
import logging
from typing import List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..core.config import settings
from ..core.exceptions import (
    BookingNotActiveException,
    ConcurrentModificationException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from ..events.booking_events import BookingCancelled, BookingCompleted
from ..events.publisher import EventPublisher
from ..models.booking import Booking
from ..models.schedule_projection import ProviderScheduleEntry
from ..models.types import ensure_utc
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .conflict_guard import ConflictGuard

logger = logging.getLogger(__name__)


class BookingService(BaseService):
    """Create, cancel, reschedule and read bookings."""

    def __init__(self, db: Session, conflict_guard: Optional[ConflictGuard] = None):
        super().__init__(db)
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.schedule_repository = RepositoryFactory.create_schedule_projection_repository(db)
        self.conflict_guard = conflict_guard or ConflictGuard(db)
        self.publisher = EventPublisher(RepositoryFactory.create_event_outbox_repository(db))

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        user_id: str,
        provider_id: str,
        appointment_at: datetime,
        session_type: Optional[str] = None,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Book a session.

        Raises:
            NotFoundException: unknown provider
            ProviderNotReadyException: provider has not published availability
            OutsideAvailabilityException: instant outside the provider's windows
            SlotConflictException: slot taken, with alternatives
        """
        self.log_operation("create_booking", user_id=user_id, provider_id=provider_id)
        return self.conflict_guard.reserve(
            provider_id,
            user_id,
            appointment_at,
            session_type=session_type,
            notes=notes,
            now=now,
        )

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, booking_id: str, reason: Optional[str], cancelled_by: Optional[str] = None
    ) -> Booking:
        """
        Cancel a scheduled booking and release its slot.

        Raises:
            NotFoundException: unknown booking
            BookingNotActiveException: already cancelled or completed
            ValidationException: CANCELLATION_REASON_TOO_SHORT
            ConcurrentModificationException: booking changed concurrently
        """
        booking = self.get_booking(booking_id)
        if not booking.is_scheduled:
            raise BookingNotActiveException(booking.id, booking.status, "cancelled")

        cleaned_reason = (reason or "").strip()
        min_length = settings.cancellation_reason_min_length
        if len(cleaned_reason) < min_length:
            raise ValidationException(
                f"Cancellation reason must be at least {min_length} characters",
                code="CANCELLATION_REASON_TOO_SHORT",
                details={"min_length": min_length, "length": len(cleaned_reason)},
            )

        try:
            with self.repository.transaction():
                self.repository.cancel(booking, cleaned_reason, cancelled_by=cancelled_by)
                self.publisher.publish(
                    BookingCancelled(
                        booking_id=booking.id,
                        user_id=booking.user_id,
                        provider_id=booking.provider_id,
                        appointment_at=booking.appointment_at,
                        reason=cleaned_reason,
                        cancelled_at=booking.cancelled_at,
                        cancelled_by=cancelled_by,
                        version=booking.version,
                    )
                )
        except StaleDataError as exc:
            self.logger.warning(f"Booking {booking_id} changed during cancellation: {exc}")
            raise ConcurrentModificationException(booking_id) from exc

        prometheus_metrics.inc_booking_transition("cancelled")
        self.logger.info(f"Booking {booking.id} cancelled by {cancelled_by or 'unknown'}")
        return booking

    def reschedule_booking(
        self,
        booking_id: str,
        new_appointment_at: datetime,
        rescheduled_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Booking:
        return self.conflict_guard.reschedule(
            booking_id, new_appointment_at, rescheduled_by=rescheduled_by, now=now
        )

    @BaseService.measure_operation("complete_elapsed")
    def complete_elapsed(self, now: Optional[datetime] = None) -> int:
        """
        Mark every scheduled booking whose session has ended as completed.

        Returns:
            Number of bookings completed
        """
        cutoff = ensure_utc(now) if now else datetime.now(timezone.utc)
        with self.repository.transaction():
            elapsed = self.repository.find_elapsed(cutoff)
            for booking in elapsed:
                self.repository.complete(booking, completed_at=cutoff)
                self.publisher.publish(
                    BookingCompleted(
                        booking_id=booking.id,
                        user_id=booking.user_id,
                        provider_id=booking.provider_id,
                        completed_at=cutoff,
                        version=booking.version,
                    )
                )

        for _ in elapsed:
            prometheus_metrics.inc_booking_transition("completed")
        if elapsed:
            self.logger.info(f"Completed {len(elapsed)} elapsed bookings as of {cutoff.isoformat()}")
        return len(elapsed)

    # Reads

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.repository.get_booking(booking_id)
        if booking is None:
            raise NotFoundException(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        return booking

    def get_booking_for_participant(
        self,
        booking_id: str,
        user_id: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> Booking:
        """
        Load a booking the caller takes part in, as its user or its provider.

        Raises:
            NotFoundException: unknown booking
            ForbiddenException: caller is neither the booking's user nor provider
        """
        booking = self.get_booking(booking_id)
        if (user_id and booking.user_id == user_id) or (
            provider_id and booking.provider_id == provider_id
        ):
            return booking
        raise ForbiddenException(
            "You don't have access to this booking",
            code="FORBIDDEN",
            details={"booking_id": booking_id},
        )

    def find_by_user(self, user_id: str, status: Optional[str] = None) -> List[Booking]:
        return self.repository.find_by_user(user_id, status=status)

    def find_by_provider(
        self,
        provider_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ProviderScheduleEntry]:
        """Provider schedule read from the projection, optionally within ``[start, end)``."""
        return self.schedule_repository.list_for_provider(
            provider_id,
            start=ensure_utc(start) if start else None,
            end=ensure_utc(end) if end else None,
        )
