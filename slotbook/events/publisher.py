"""Event publisher - writes domain events to the outbox inside the caller's transaction."""
from datetime import datetime
from typing import Any, ClassVar, Dict, Protocol

from ..models.event_outbox import EventOutbox
from ..repositories.event_outbox_repository import EventOutboxRepository


class Event(Protocol):
    """Protocol for event types."""

    event_type: ClassVar[str]
    booking_id: str
    version: int

    def to_dict(self) -> Dict[str, Any]:
        ...


class EventPublisher:
    """Publishes booking events to the transactional outbox."""

    def __init__(self, outbox_repository: EventOutboxRepository):
        self.outbox_repo = outbox_repository

    def publish(self, event: Event) -> EventOutbox:
        """
        Enqueue ``event`` for delivery once the surrounding transaction commits.

        The idempotency key is derived from the booking id, event type and
        row version, so replaying a publish for the same state is a no-op.
        """
        payload = event.to_dict()

        # Convert datetime objects to ISO strings for JSON serialization
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()
        payload["event_type"] = event.event_type

        return self.outbox_repo.enqueue(
            event_type=event.event_type,
            aggregate_id=event.booking_id,
            payload=payload,
            idempotency_key=f"booking:{event.booking_id}:{event.event_type}:v{event.version}",
        )
