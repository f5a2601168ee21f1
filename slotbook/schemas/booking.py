# slotbook/schemas/booking.py
"""
Booking schemas.

Instants travel as ISO-8601 strings. Offsets are honoured; a string without
one is taken as UTC. Field names are camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from ..models.booking import Booking
from ._strict_base import StrictModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    """Reserve a session with a provider at an exact instant."""

    provider_id: str = Field(..., min_length=1, max_length=26, description="Provider to book")
    appointment_instant: datetime = Field(
        ..., description="Session start (UTC); seconds are dropped"
    )
    session_type: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = Field(None, max_length=2000)


class BookingReschedule(StrictRequestModel):
    new_appointment_instant: datetime


class BookingCancel(StrictRequestModel):
    reason: str = Field(..., max_length=1000)

    @field_validator("reason", mode="before")
    @classmethod
    def reject_non_string(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("reason is required")
        return v


class BookingInstantResponse(StrictModel):
    """Returned by create and reschedule."""

    booking_id: str
    appointment_instant: datetime
    status: str


class BookingCancelledResponse(StrictModel):
    booking_id: str
    status: str


class BookingResponse(StrictModel):
    id: str
    user_id: str
    provider_id: str
    appointment_instant: datetime
    ends_at: datetime
    duration_minutes: int
    session_type: str
    notes: Optional[str] = None
    status: str
    rescheduled_from: Optional[datetime] = None
    reschedule_count: int = 0
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            user_id=booking.user_id,
            provider_id=booking.provider_id,
            appointment_instant=booking.appointment_at,
            ends_at=booking.ends_at,
            duration_minutes=booking.duration_minutes,
            session_type=booking.session_type,
            notes=booking.notes,
            status=booking.status,
            rescheduled_from=booking.rescheduled_from_at,
            reschedule_count=booking.reschedule_count or 0,
            cancellation_reason=booking.cancellation_reason,
            cancelled_at=booking.cancelled_at,
            completed_at=booking.completed_at,
        )


class BookingListResponse(StrictModel):
    bookings: List[BookingResponse]
    total: int


class AlternativeSlotResponse(StrictModel):
    appointment_instant: datetime
    date: str
    time: str
    weekday: str


class AvailableSlotsResponse(StrictModel):
    provider_id: str
    anchor: datetime
    slots: List[AlternativeSlotResponse]


class ScheduleEntryResponse(StrictModel):
    booking_id: str
    user_id: str
    appointment_instant: datetime
    ends_at: datetime
    session_type: str
    reschedule_count: int


class ProviderScheduleResponse(StrictModel):
    provider_id: str
    entries: List[ScheduleEntryResponse]


def alternatives_payload(alternatives: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """camelCase view of finder output for error envelopes."""
    return [
        AlternativeSlotResponse(
            appointment_instant=item["appointment_at"],
            date=item["date"],
            time=item["time"],
            weekday=item["weekday"],
        ).model_dump(mode="json", by_alias=True)
        for item in alternatives
    ]
