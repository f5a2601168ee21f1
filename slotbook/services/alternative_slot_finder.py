# slotbook/services/alternative_slot_finder.py
"""
Alternative slot suggestions.

When a requested instant is taken, the caller gets back the closest open
instants in the same provider-local ISO week (Monday to Sunday). Candidates
are generated from the enabled windows on a fixed grid, then filtered:

- the anchor instant itself
- instants already in the past
- instants overlapping a scheduled booking (read from the schedule projection)
- instants the slot validator would reject (e.g. inside a DST gap)

Results are ordered by distance from the anchor, earlier first on ties.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.provider import Provider
from ..models.schedule_projection import ProviderScheduleEntry
from ..models.types import ensure_utc, ensure_utc_minute
from ..repositories.factory import RepositoryFactory
from ..utils.time_helpers import WEEKDAY_NAMES, minutes_to_hhmm
from .base import BaseService
from .slot_validator import SlotValidator
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlternativeSlot:
    appointment_at: datetime
    date: str
    time: str
    weekday: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appointment_at": self.appointment_at.isoformat(),
            "date": self.date,
            "time": self.time,
            "weekday": self.weekday,
        }


class AlternativeSlotFinder(BaseService):
    """Ranks open instants around an anchor within its ISO week."""

    def __init__(
        self,
        db: Session,
        validator: Optional[SlotValidator] = None,
        timezone_service: Optional[TimezoneService] = None,
    ):
        super().__init__(db)
        self.timezone_service = timezone_service or TimezoneService()
        self.validator = validator or SlotValidator(self.timezone_service)
        self.schedule_repository = RepositoryFactory.create_schedule_projection_repository(db)

    @BaseService.measure_operation("suggest_alternatives")
    def suggest(
        self,
        provider: Provider,
        anchor_at: datetime,
        excluding_booking_id: Optional[str] = None,
        now: Optional[datetime] = None,
        limit: Optional[int] = None,
        current_at: Optional[datetime] = None,
    ) -> List[AlternativeSlot]:
        """
        Return up to ``limit`` open instants in the anchor's week.

        ``current_at``, the instant the excluded booking holds now, is never
        offered.

        An empty list means nothing is open that week; it is not an error.
        """
        anchor = ensure_utc_minute(anchor_at)
        current = ensure_utc(now) if now else datetime.now(timezone.utc)
        max_results = settings.alternative_slot_limit if limit is None else limit
        skipped = {anchor}
        if current_at is not None:
            skipped.add(ensure_utc_minute(current_at))
        if max_results <= 0 or not provider.is_ready:
            return []

        candidates = self._generate_candidates(provider, anchor)
        if not candidates:
            return []

        duration = timedelta(minutes=int(provider.session_duration_minutes))
        occupied = self.schedule_repository.find_overlapping(
            provider.id,
            candidates[0][0],
            candidates[-1][0] + duration,
            exclude_booking_id=excluding_booking_id,
        )

        open_slots: List[AlternativeSlot] = []
        for instant, weekday, minute in candidates:
            if instant in skipped or instant < current:
                continue
            if self._overlaps(instant, instant + duration, occupied):
                continue
            if not self.validator.validate(provider, instant).ok:
                continue
            local_day = self.timezone_service.utc_to_local(instant, provider.timezone).date()
            open_slots.append(
                AlternativeSlot(
                    appointment_at=instant,
                    date=local_day.isoformat(),
                    time=minutes_to_hhmm(minute),
                    weekday=WEEKDAY_NAMES[weekday],
                )
            )

        open_slots.sort(key=lambda slot: (abs(slot.appointment_at - anchor), slot.appointment_at))
        self.logger.debug(
            f"Found {len(open_slots)} open slots for provider {provider.id} near {anchor.isoformat()}"
        )
        return open_slots[:max_results]

    def _generate_candidates(
        self, provider: Provider, anchor: datetime
    ) -> List[Tuple[datetime, int, int]]:
        """(utc instant, weekday, local minute) on the grid, ordered by instant."""
        step = max(int(settings.slot_granularity_minutes), 1)
        monday, _ = self.timezone_service.iso_week_bounds(provider.timezone, anchor)

        candidates: List[Tuple[datetime, int, int]] = []
        for window in provider.availability_windows:
            if not window.enabled:
                continue
            local_day = monday + timedelta(days=window.weekday)
            for minute in range(window.start_minute, window.end_minute + 1, step):
                instant = self.timezone_service.local_to_utc(local_day, minute, provider.timezone)
                if instant is not None:
                    candidates.append((instant, window.weekday, minute))

        candidates.sort(key=lambda item: item[0])
        return candidates

    @staticmethod
    def _overlaps(
        start: datetime, end: datetime, occupied: Sequence[ProviderScheduleEntry]
    ) -> bool:
        return any(entry.appointment_at < end and entry.ends_at > start for entry in occupied)
