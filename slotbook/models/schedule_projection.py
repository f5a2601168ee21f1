# slotbook/models/schedule_projection.py
"""
Provider schedule projection.

A denormalized, provider-ordered view of every non-terminal booking. The
ledger is the source of truth; rows here are written only by
``BookingRepository`` inside the same transaction as the ledger change.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Column, ForeignKey, Index, Integer, String

from ..database import Base
from .types import UTCDateTime


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ProviderScheduleEntry(Base):
    """Read-optimized row for a provider's upcoming schedule."""

    __tablename__ = "provider_schedule_entries"

    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True
    )
    provider_id = Column(String(26), nullable=False)
    user_id = Column(String(64), nullable=False)
    appointment_at = Column(UTCDateTime(), nullable=False)
    ends_at = Column(UTCDateTime(), nullable=False)
    session_type = Column(String(100), nullable=False)
    reschedule_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(UTCDateTime(), nullable=False, default=_now_utc, onupdate=_now_utc)

    __table_args__ = (
        Index("ix_provider_schedule_provider_at", "provider_id", "appointment_at"),
    )

    def __repr__(self) -> str:
        return f"<ProviderScheduleEntry provider={self.provider_id} at={self.appointment_at}>"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "booking_id": self.booking_id,
            "provider_id": self.provider_id,
            "user_id": self.user_id,
            "appointment_at": self.appointment_at.isoformat(),
            "ends_at": self.ends_at.isoformat(),
            "session_type": self.session_type,
            "reschedule_count": self.reschedule_count,
        }
