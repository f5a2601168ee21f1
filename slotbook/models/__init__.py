"""
Database models for the slotbook scheduler.

The models are organized by functionality:
- Providers and their weekly availability windows
- Bookings and the per-minute slot claims that keep them exclusive
- The provider schedule projection
- The domain event outbox
"""

from .availability_window import AvailabilityWindow
from .booking import Booking, BookingStatus
from .event_outbox import EventOutbox, EventOutboxStatus
from .provider import Provider, ProviderStatus
from .schedule_projection import ProviderScheduleEntry
from .slot_claim import SLOT_CLAIM_CONSTRAINT, BookingSlotClaim, claim_minutes

__all__ = [
    "AvailabilityWindow",
    "Booking",
    "BookingSlotClaim",
    "BookingStatus",
    "EventOutbox",
    "EventOutboxStatus",
    "Provider",
    "ProviderScheduleEntry",
    "ProviderStatus",
    "SLOT_CLAIM_CONSTRAINT",
    "claim_minutes",
]
