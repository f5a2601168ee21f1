"""Booking domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, ClassVar, Dict, Optional


@dataclass
class BookingCreated:
    """Fired after a booking is successfully reserved."""

    event_type: ClassVar[str] = "booking.created"

    booking_id: str
    user_id: str
    provider_id: str
    appointment_at: datetime
    session_type: str
    version: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingCancelled:
    """Fired after a booking is cancelled."""

    event_type: ClassVar[str] = "booking.cancelled"

    booking_id: str
    user_id: str
    provider_id: str
    appointment_at: datetime
    reason: str
    cancelled_at: datetime
    version: int
    cancelled_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingRescheduled:
    """Fired after a booking moves to a new instant."""

    event_type: ClassVar[str] = "booking.rescheduled"

    booking_id: str
    user_id: str
    provider_id: str
    previous_appointment_at: datetime
    appointment_at: datetime
    reschedule_count: int
    version: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingCompleted:
    """Fired after a booking is marked complete."""

    event_type: ClassVar[str] = "booking.completed"

    booking_id: str
    user_id: str
    provider_id: str
    completed_at: datetime
    version: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
