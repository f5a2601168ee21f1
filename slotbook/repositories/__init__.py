# slotbook/repositories/__init__.py
"""
Repository layer for slotbook.

Key Components:
- BaseRepository: generic CRUD and transaction helpers
- RepositoryFactory: construction of repository instances
- ProviderRepository, AvailabilityWindowRepository: provider data
- BookingRepository: the ledger, its slot claims and projection writes
- ScheduleProjectionRepository: provider schedule reads
- EventOutboxRepository: domain event outbox

Usage:
    from slotbook.repositories import RepositoryFactory

    repository = RepositoryFactory.create_booking_repository(db)
    booking = repository.get_booking(booking_id)
"""

from .availability_window_repository import AvailabilityWindowRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .event_outbox_repository import EventOutboxRepository
from .factory import RepositoryFactory
from .provider_repository import ProviderRepository
from .schedule_projection_repository import ScheduleProjectionRepository

__all__ = [
    "AvailabilityWindowRepository",
    "BaseRepository",
    "BookingRepository",
    "EventOutboxRepository",
    "ProviderRepository",
    "RepositoryFactory",
    "ScheduleProjectionRepository",
]
