"""
Outbox dispatcher.

Hands pending outbox rows to a notification sink and records the outcome.
Delivery runs after the booking transaction has committed, so a failing
sink can delay a notification but never affects the booking itself.
"""

import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.event_outbox_repository import EventOutboxRepository

logger = logging.getLogger(__name__)

# sink(event_type, payload, idempotency_key)
EventSink = Callable[[str, Dict[str, Any], str], None]


class OutboxDispatcher:
    def __init__(
        self,
        db: Session,
        *,
        max_attempts: Optional[int] = None,
        backoff_seconds: Optional[int] = None,
    ):
        self.db = db
        self.repository = EventOutboxRepository(db)
        self.max_attempts = max_attempts or settings.outbox_max_attempts
        self.backoff_seconds = backoff_seconds or settings.outbox_backoff_seconds

    def dispatch_pending(self, sink: EventSink, limit: Optional[int] = None) -> int:
        """
        Deliver due events to ``sink``.

        Returns:
            Number of events delivered successfully
        """
        pending = self.repository.fetch_pending(limit=limit or settings.outbox_batch_size)
        delivered = 0
        for event in pending:
            attempt_number = int(event.attempt_count or 0) + 1
            try:
                sink(event.event_type, dict(event.payload or {}), event.idempotency_key)
            except Exception as exc:
                terminal = attempt_number >= self.max_attempts
                self.repository.mark_failed(
                    event.id,
                    attempt_count=attempt_number,
                    backoff_seconds=self.backoff_seconds * attempt_number,
                    error=str(exc),
                    terminal=terminal,
                )
                self.db.commit()
                if terminal:
                    prometheus_metrics.record_outbox_outcome(event.event_type, "failed")
                    logger.error(
                        "Outbox event %s type=%s failed permanently after %s attempts: %s",
                        event.id,
                        event.event_type,
                        attempt_number,
                        exc,
                    )
                else:
                    logger.warning(
                        "Outbox event %s type=%s attempt %s failed: %s",
                        event.id,
                        event.event_type,
                        attempt_number,
                        exc,
                    )
                continue

            self.repository.mark_sent(event.id, attempt_number)
            self.db.commit()
            delivered += 1
            prometheus_metrics.record_outbox_outcome(event.event_type, "sent")
            logger.info(
                "Delivered outbox event %s type=%s attempts=%s",
                event.id,
                event.event_type,
                attempt_number,
            )
        return delivered
