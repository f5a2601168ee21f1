# slotbook/repositories/factory.py
"""
Repository Factory for slotbook

Provides centralized creation of repository instances so services share one
session and one construction path.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_window_repository import AvailabilityWindowRepository
    from .booking_repository import BookingRepository
    from .event_outbox_repository import EventOutboxRepository
    from .provider_repository import ProviderRepository
    from .schedule_projection_repository import ScheduleProjectionRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_provider_repository(db: Session) -> "ProviderRepository":
        from .provider_repository import ProviderRepository

        return ProviderRepository(db)

    @staticmethod
    def create_availability_window_repository(db: Session) -> "AvailabilityWindowRepository":
        """Create repository for weekly availability rows."""
        from .availability_window_repository import AvailabilityWindowRepository

        return AvailabilityWindowRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking ledger operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_schedule_projection_repository(db: Session) -> "ScheduleProjectionRepository":
        """Create read repository for the provider schedule projection."""
        from .schedule_projection_repository import ScheduleProjectionRepository

        return ScheduleProjectionRepository(db)

    @staticmethod
    def create_event_outbox_repository(db: Session) -> "EventOutboxRepository":
        from .event_outbox_repository import EventOutboxRepository

        return EventOutboxRepository(db)
