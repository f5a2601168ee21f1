# slotbook/models/booking.py
"""
Booking model for the scheduler.

One row per booking, keyed by id. Bookings are never deleted: they move
from ``scheduled`` to ``cancelled`` or ``completed``, or are rescheduled in
place (same id, new instant, history appended).

Architecture: slot exclusivity is not checked here. Each scheduled booking
owns one ``BookingSlotClaim`` row per minute of its session, and the
unique constraint on those rows is what rejects overlapping reservations.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
import logging
from typing import Any, Optional, cast

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.types import JSON

from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    SCHEDULED = "scheduled"  # Holds its slot
    CANCELLED = "cancelled"  # Terminal, reason required
    COMPLETED = "completed"  # Terminal, time-driven


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    """
    Authoritative booking record.

    ``version`` is SQLAlchemy's optimistic concurrency counter: an UPDATE
    whose row changed since it was loaded matches zero rows and raises
    ``StaleDataError`` instead of silently overwriting.
    """

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)

    user_id = Column(String(64), nullable=False, index=True)
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False, index=True)

    appointment_at = Column(UTCDateTime(), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)

    session_type = Column(String(100), nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.SCHEDULED.value, index=True)

    # Reschedule tracking
    rescheduled_from_at = Column(UTCDateTime(), nullable=True)
    rescheduled_at = Column(UTCDateTime(), nullable=True)
    rescheduled_by = Column(String(64), nullable=True)
    reschedule_count = Column(Integer, nullable=False, default=0)
    reschedule_history = Column(JSON, nullable=False, default=list)

    # Cancellation tracking
    cancellation_reason = Column(Text, nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    cancelled_by = Column(String(64), nullable=True)

    completed_at = Column(UTCDateTime(), nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(UTCDateTime(), nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=_now_utc, onupdate=_now_utc)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            "status IN ('scheduled', 'cancelled', 'completed')",
            name="ck_bookings_status",
        ),
        CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        CheckConstraint("reschedule_count >= 0", name="check_reschedule_count_non_negative"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.SCHEDULED.value
        if self.reschedule_count is None:
            self.reschedule_count = 0
        if self.reschedule_history is None:
            self.reschedule_history = []

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: user={self.user_id}, provider={self.provider_id}, "
            f"at={self.appointment_at}, status={self.status}>"
        )

    @property
    def ends_at(self) -> datetime:
        return cast(datetime, self.appointment_at) + timedelta(minutes=int(self.duration_minutes))

    @property
    def is_scheduled(self) -> bool:
        return self.status == BookingStatus.SCHEDULED.value

    def cancel(self, reason: str, cancelled_by: Optional[str] = None) -> None:
        """Move to ``cancelled``; callers validate the transition first."""
        self.status = BookingStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.cancelled_at = _now_utc()
        self.cancelled_by = cancelled_by
        logger.info(f"Booking {self.id} cancelled")

    def complete(self, completed_at: Optional[datetime] = None) -> None:
        self.status = BookingStatus.COMPLETED.value
        self.completed_at = completed_at or _now_utc()
        logger.info(f"Booking {self.id} marked as completed")

    def move_to(self, new_instant: datetime, rescheduled_by: Optional[str] = None) -> None:
        """Replace the appointment instant in place and record where it came from."""
        now = _now_utc()
        previous = cast(datetime, self.appointment_at)
        entry = {
            "from": previous.isoformat(),
            "to": new_instant.isoformat(),
            "by": rescheduled_by,
            "at": now.isoformat(),
        }
        # Reassign so the JSON column is flagged dirty
        self.reschedule_history = [*(self.reschedule_history or []), entry]
        self.rescheduled_from_at = previous
        self.rescheduled_at = now
        self.rescheduled_by = rescheduled_by
        self.reschedule_count = int(self.reschedule_count or 0) + 1
        self.appointment_at = new_instant

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "provider_id": self.provider_id,
            "appointment_at": self.appointment_at.isoformat() if self.appointment_at else None,
            "ends_at": self.ends_at.isoformat() if self.appointment_at else None,
            "duration_minutes": self.duration_minutes,
            "session_type": self.session_type,
            "notes": self.notes,
            "status": self.status,
            "rescheduled_from_at": (
                self.rescheduled_from_at.isoformat() if self.rescheduled_from_at else None
            ),
            "reschedule_count": self.reschedule_count,
            "cancellation_reason": self.cancellation_reason,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


Index(
    "ix_bookings_provider_status_at",
    Booking.provider_id,
    Booking.status,
    Booking.appointment_at,
)
