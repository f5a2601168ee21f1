# slotbook/repositories/schedule_projection_repository.py
"""
Repository for the provider schedule projection.

Writes go through ``BookingRepository`` so the projection always changes in
the same transaction as the booking it mirrors. Readers use the query
helpers directly.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.schedule_projection import ProviderScheduleEntry
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ScheduleProjectionRepository(BaseRepository[ProviderScheduleEntry]):
    """Provider-keyed read view of non-terminal bookings."""

    def __init__(self, db: Session):
        super().__init__(db, ProviderScheduleEntry)

    def get_entry(self, booking_id: str) -> Optional[ProviderScheduleEntry]:
        return self.db.get(ProviderScheduleEntry, booking_id)

    def upsert_from_booking(self, booking: Booking) -> ProviderScheduleEntry:
        """Create or refresh the row mirroring ``booking``."""
        entry = self.get_entry(booking.id)
        if entry is None:
            entry = ProviderScheduleEntry(booking_id=booking.id)
            self.db.add(entry)
        entry.provider_id = booking.provider_id
        entry.user_id = booking.user_id
        entry.appointment_at = booking.appointment_at
        entry.ends_at = booking.ends_at
        entry.session_type = booking.session_type
        entry.reschedule_count = booking.reschedule_count or 0
        self.db.flush()
        return entry

    def remove(self, booking_id: str) -> int:
        result = self.db.execute(
            delete(ProviderScheduleEntry).where(ProviderScheduleEntry.booking_id == booking_id)
        )
        return int(result.rowcount or 0)

    def list_for_provider(
        self,
        provider_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ProviderScheduleEntry]:
        """
        Entries for a provider ordered by start instant.

        Args:
            provider_id: Provider whose schedule to read
            start: Optional inclusive lower bound on ``appointment_at``
            end: Optional exclusive upper bound on ``appointment_at``
        """
        try:
            query = self.db.query(ProviderScheduleEntry).filter(
                ProviderScheduleEntry.provider_id == provider_id
            )
            if start is not None:
                query = query.filter(ProviderScheduleEntry.appointment_at >= start)
            if end is not None:
                query = query.filter(ProviderScheduleEntry.appointment_at < end)
            return query.order_by(ProviderScheduleEntry.appointment_at.asc()).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing schedule for provider {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to list provider schedule: {str(e)}")

    def find_overlapping(
        self,
        provider_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> List[ProviderScheduleEntry]:
        """Entries whose ``[appointment_at, ends_at)`` intersects ``[start, end)``."""
        query = self.db.query(ProviderScheduleEntry).filter(
            ProviderScheduleEntry.provider_id == provider_id,
            ProviderScheduleEntry.appointment_at < end,
            ProviderScheduleEntry.ends_at > start,
        )
        if exclude_booking_id:
            query = query.filter(ProviderScheduleEntry.booking_id != exclude_booking_id)
        return self._execute_query(query.order_by(ProviderScheduleEntry.appointment_at.asc()))
