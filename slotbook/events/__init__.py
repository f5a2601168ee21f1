"""Booking domain events and their outbox delivery."""

from .booking_events import BookingCancelled, BookingCompleted, BookingCreated, BookingRescheduled
from .dispatcher import EventSink, OutboxDispatcher
from .publisher import EventPublisher

__all__ = [
    "BookingCancelled",
    "BookingCompleted",
    "BookingCreated",
    "BookingRescheduled",
    "EventPublisher",
    "EventSink",
    "OutboxDispatcher",
]
