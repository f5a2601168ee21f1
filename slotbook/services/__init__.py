"""Service layer: scheduling rules and transaction boundaries."""

from .alternative_slot_finder import AlternativeSlot, AlternativeSlotFinder
from .availability_service import AvailabilityService
from .base import BaseService
from .booking_service import BookingService
from .conflict_guard import ConflictGuard
from .slot_validator import RejectionReason, SlotDecision, SlotValidator
from .timezone_service import LocalSlot, TimezoneService

__all__ = [
    "AlternativeSlot",
    "AlternativeSlotFinder",
    "AvailabilityService",
    "BaseService",
    "BookingService",
    "ConflictGuard",
    "LocalSlot",
    "RejectionReason",
    "SlotDecision",
    "SlotValidator",
    "TimezoneService",
]
