"""Per-minute slot claims that make overlapping reservations impossible."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List

from sqlalchemy import Column, ForeignKey, Index, Integer, String, UniqueConstraint

from ..database import Base
from .types import UTCDateTime, ensure_utc

SLOT_CLAIM_CONSTRAINT = "uq_booking_slot_claims_provider_minute"


class BookingSlotClaim(Base):
    """
    One UTC minute of a provider's time held by a scheduled booking.

    Two bookings whose sessions overlap share at least one minute, so the
    second INSERT violates ``uq_booking_slot_claims_provider_minute``
    regardless of how many writers race for it.
    """

    __tablename__ = "booking_slot_claims"

    id = Column(Integer, primary_key=True, autoincrement=True)
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False)
    slot_minute_at = Column(UTCDateTime(), nullable=False)
    booking_id = Column(
        String(26), ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("provider_id", "slot_minute_at", name=SLOT_CLAIM_CONSTRAINT),
        Index("ix_booking_slot_claims_booking", "booking_id"),
    )

    def __repr__(self) -> str:
        return f"<BookingSlotClaim provider={self.provider_id} at={self.slot_minute_at}>"


def claim_minutes(start: datetime, duration_minutes: int) -> List[datetime]:
    """
    Return the UTC minute marks covered by ``[start, start + duration)``.

    The first mark is ``start`` floored to the minute; a start with seconds
    also covers the partial minute at the end.
    """
    start = ensure_utc(start)
    end = start + timedelta(minutes=duration_minutes)
    cursor = start.replace(second=0, microsecond=0)
    minutes: List[datetime] = []
    while cursor < end:
        minutes.append(cursor)
        cursor += timedelta(minutes=1)
    return minutes
