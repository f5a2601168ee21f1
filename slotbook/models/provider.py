# slotbook/models/provider.py
"""
Provider model.

A provider publishes a recurring weekly availability in their own timezone
and offers sessions of a fixed length. Providers start ``pending`` and
become ``ready`` the first time their availability is saved.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Dict, Optional

from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship

from ..core.ulid_helper import generate_ulid
from ..database import Base
from .types import UTCDateTime

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class ProviderStatus(str, Enum):
    """Provider publication states."""

    PENDING = "pending"  # Registered, no availability yet
    READY = "ready"  # Availability published, bookable


class Provider(Base):
    """Bookable provider with a single canonical timezone."""

    __tablename__ = "providers"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    display_name = Column(String(255), nullable=True)
    timezone = Column(String(64), nullable=False)
    session_duration_minutes = Column(Integer, nullable=False, default=60)
    status = Column(String(20), nullable=False, default=ProviderStatus.PENDING.value, index=True)

    availability_updated_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), nullable=False, default=_now_utc)
    updated_at = Column(UTCDateTime(), nullable=False, default=_now_utc, onupdate=_now_utc)

    availability_windows = relationship(
        "AvailabilityWindow",
        back_populates="provider",
        cascade="all, delete-orphan",
        order_by="AvailabilityWindow.weekday",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'ready')", name="ck_providers_status"),
        CheckConstraint(
            "session_duration_minutes > 0 AND session_duration_minutes <= 1440",
            name="ck_providers_session_duration",
        ),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = ProviderStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<Provider {self.id}: tz={self.timezone}, status={self.status}>"

    @property
    def is_ready(self) -> bool:
        return self.status == ProviderStatus.READY.value

    def window_for(self, weekday: int) -> Optional["AvailabilityWindow"]:  # noqa: F821
        """Return the configured window for a weekday (0=Monday), if any."""
        for window in self.availability_windows:
            if window.weekday == weekday:
                return window
        return None

    def mark_ready(self) -> None:
        if self.status != ProviderStatus.READY.value:
            logger.info(f"Provider {self.id} published availability and is now ready")
        self.status = ProviderStatus.READY.value
        self.availability_updated_at = _now_utc()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "timezone": self.timezone,
            "session_duration_minutes": self.session_duration_minutes,
            "status": self.status,
        }
