# slotbook/repositories/booking_repository.py
"""
Booking Repository for slotbook

Owns every write to the booking ledger and keeps the two structures derived
from it in step:

- ``booking_slot_claims``: one row per UTC minute held by a scheduled
  booking. The unique constraint on those rows is the exclusivity check,
  so an overlapping insert surfaces as ``IntegrityError`` at flush time.
- ``provider_schedule_entries``: the provider-keyed projection.

Nothing here commits. Integrity and stale-version errors are raised as-is
so the calling service can translate them into domain errors after the
transaction rolls back.
"""

from datetime import datetime
import logging
from typing import Any, List, Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from ..models.slot_claim import BookingSlotClaim, claim_minutes
from .base_repository import BaseRepository
from .schedule_projection_repository import ScheduleProjectionRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    """Ledger access with slot claims and projection maintenance."""

    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)
        self.schedule = ScheduleProjectionRepository(db)

    # Ledger mutations

    def create_scheduled(self, **kwargs: Any) -> Booking:
        """
        Insert a scheduled booking together with its claims and projection row.

        Raises:
            IntegrityError: another scheduled booking already holds one of the minutes
        """
        booking = Booking(**kwargs)
        self.db.add(booking)
        self.db.flush()
        self._claim(booking)
        self.schedule.upsert_from_booking(booking)
        return booking

    def move(
        self, booking: Booking, new_instant: datetime, rescheduled_by: Optional[str] = None
    ) -> Booking:
        """
        Move a scheduled booking to ``new_instant`` in place.

        The versioned booking row is written first, as in ``cancel`` and
        ``complete``, so every ledger mutation locks the booking before its
        claims. The old claims are then released before the new ones are
        inserted, so a booking may be shifted onto minutes it currently holds.

        Raises:
            IntegrityError: the new minutes are held by another booking
            StaleDataError: the booking row changed since it was loaded
        """
        booking.move_to(new_instant, rescheduled_by=rescheduled_by)
        self.db.flush()
        self.release_claims(booking.id)
        self._claim(booking)
        self.schedule.upsert_from_booking(booking)
        return booking

    def cancel(self, booking: Booking, reason: str, cancelled_by: Optional[str] = None) -> Booking:
        booking.cancel(reason, cancelled_by=cancelled_by)
        self.db.flush()
        self._retire(booking)
        return booking

    def complete(self, booking: Booking, completed_at: Optional[datetime] = None) -> Booking:
        booking.complete(completed_at)
        self.db.flush()
        self._retire(booking)
        return booking

    def release_claims(self, booking_id: str) -> int:
        result = self.db.execute(
            delete(BookingSlotClaim).where(BookingSlotClaim.booking_id == booking_id)
        )
        return int(result.rowcount or 0)

    # Queries

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.db.get(Booking, booking_id)

    def find_by_user(self, user_id: str, status: Optional[str] = None) -> List[Booking]:
        """Bookings made by ``user_id``, newest appointment first."""
        try:
            query = self.db.query(Booking).filter(Booking.user_id == user_id)
            if status:
                query = query.filter(Booking.status == status)
            return query.order_by(Booking.appointment_at.desc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to get user bookings: {str(e)}")

    def find_elapsed(self, now: datetime) -> List[Booking]:
        """Scheduled bookings whose session ended at or before ``now``."""
        started = self._execute_query(
            self.db.query(Booking)
            .filter(
                Booking.status == BookingStatus.SCHEDULED.value,
                Booking.appointment_at <= now,
            )
            .order_by(Booking.appointment_at.asc())
        )
        return [booking for booking in started if booking.ends_at <= now]

    def count_claims(self, booking_id: str) -> int:
        stmt = select(func.count()).select_from(BookingSlotClaim).where(
            BookingSlotClaim.booking_id == booking_id
        )
        return int(self.db.execute(stmt).scalar_one())

    def claimed_minutes(self, booking_id: str) -> List[datetime]:
        stmt = (
            select(BookingSlotClaim.slot_minute_at)
            .where(BookingSlotClaim.booking_id == booking_id)
            .order_by(BookingSlotClaim.slot_minute_at.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    # Internals

    def _claim(self, booking: Booking) -> None:
        rows = [
            {
                "provider_id": booking.provider_id,
                "slot_minute_at": minute,
                "booking_id": booking.id,
            }
            for minute in claim_minutes(booking.appointment_at, int(booking.duration_minutes))
        ]
        self.db.execute(insert(BookingSlotClaim), rows)

    def _retire(self, booking: Booking) -> None:
        released = self.release_claims(booking.id)
        self.schedule.remove(booking.id)
        self.logger.debug(f"Booking {booking.id} released {released} claimed minutes")
