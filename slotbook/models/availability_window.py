from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.time_helpers import WEEKDAY_NAMES, minutes_to_hhmm

MINUTES_PER_DAY = 24 * 60


class AvailabilityWindow(Base):
    """One recurring weekday window; weekday 0 is Monday."""

    __tablename__ = "provider_availability_windows"

    provider_id = Column(
        String(26), ForeignKey("providers.id", ondelete="CASCADE"), primary_key=True
    )
    weekday = Column(Integer, primary_key=True)
    enabled = Column(Boolean, nullable=False, default=True)
    start_minute = Column(Integer, nullable=False)
    end_minute = Column(Integer, nullable=False)

    provider = relationship("Provider", back_populates="availability_windows")

    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_avail_windows_weekday"),
        CheckConstraint(
            "start_minute >= 0 AND start_minute < 1440", name="ck_avail_windows_start_range"
        ),
        CheckConstraint("end_minute >= 0 AND end_minute < 1440", name="ck_avail_windows_end_range"),
        CheckConstraint("start_minute <= end_minute", name="ck_avail_windows_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<AvailabilityWindow provider={self.provider_id} day={self.weekday} "
            f"{self.start_minute}-{self.end_minute} enabled={self.enabled}>"
        )

    @property
    def weekday_name(self) -> str:
        return WEEKDAY_NAMES[self.weekday]

    def admits(self, minute_of_day: int) -> bool:
        """Inclusive on both ends: a booking may start exactly at ``end_minute``."""
        return bool(self.enabled) and self.start_minute <= minute_of_day <= self.end_minute

    def to_dict(self) -> dict[str, object]:
        return {
            "enabled": bool(self.enabled),
            "start": minutes_to_hhmm(self.start_minute),
            "end": minutes_to_hhmm(self.end_minute),
        }
