# slotbook/repositories/availability_window_repository.py
"""
Availability Window Repository

Weekly availability is stored as one structured row per offered weekday.
Saving a new week reconciles against the existing rows instead of deleting
and re-inserting, so the ``(provider_id, weekday)`` key never collides
inside a single flush.
"""

import logging
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.availability_window import AvailabilityWindow
from ..models.provider import Provider
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class AvailabilityWindowRepository(BaseRepository[AvailabilityWindow]):
    def __init__(self, db: Session):
        super().__init__(db, AvailabilityWindow)

    def replace_windows(
        self, provider: Provider, windows: Dict[int, Dict[str, object]]
    ) -> List[AvailabilityWindow]:
        """
        Make ``windows`` the provider's complete weekly availability.

        Args:
            provider: Provider being updated
            windows: weekday index -> {"enabled", "start_minute", "end_minute"};
                weekdays missing from the mapping are removed

        Returns:
            The provider's windows ordered by weekday
        """
        try:
            for existing in list(provider.availability_windows):
                if existing.weekday not in windows:
                    provider.availability_windows.remove(existing)

            for weekday, values in sorted(windows.items()):
                window = provider.window_for(weekday)
                if window is None:
                    window = AvailabilityWindow(weekday=weekday)
                    provider.availability_windows.append(window)
                window.enabled = values["enabled"]
                window.start_minute = values["start_minute"]
                window.end_minute = values["end_minute"]

            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Error saving availability for provider {provider.id}: {str(e)}")
            raise RepositoryException(f"Failed to save availability: {str(e)}")

        return sorted(provider.availability_windows, key=lambda w: w.weekday)
