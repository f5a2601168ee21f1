# slotbook/services/availability_service.py
"""
Availability Service (the weekly availability store)

Providers publish one recurring window per weekday in their own timezone.
Saving availability replaces the whole week and, in the same transaction,
makes a pending provider ready to accept bookings.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException
from ..models.provider import Provider
from ..repositories.factory import RepositoryFactory
from ..schemas.availability import parse_weekly_availability
from ..utils.time_helpers import WEEKDAY_NAMES
from .base import BaseService
from .timezone_service import TimezoneService

logger = logging.getLogger(__name__)


class AvailabilityService(BaseService):
    """Reads and replaces a provider's weekly availability."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.provider_repository = RepositoryFactory.create_provider_repository(db)
        self.window_repository = RepositoryFactory.create_availability_window_repository(db)

    def get_provider(self, provider_id: str) -> Provider:
        provider = self.provider_repository.get_by_id(provider_id)
        if provider is None:
            raise NotFoundException(
                f"Provider {provider_id} not found", details={"provider_id": provider_id}
            )
        return provider

    @BaseService.measure_operation("get_weekly_availability")
    def get_weekly_availability(self, provider_id: str) -> Dict[str, Any]:
        """
        Return the provider's week keyed by weekday name.

        Raises:
            NotFoundException: unknown provider
        """
        provider = self.get_provider(provider_id)
        return self._serialize(provider)

    @BaseService.measure_operation("save_weekly_availability")
    def save_weekly_availability(self, provider_id: str, payload: Any) -> Dict[str, Any]:
        """
        Validate and persist a full week, then mark the provider ready.

        Weekdays absent from ``payload`` are no longer offered.

        Raises:
            NotFoundException: unknown provider
            InvalidAvailabilityException: payload failed validation (nothing is written)
        """
        windows = parse_weekly_availability(payload)
        provider = self.get_provider(provider_id)

        with self.transaction():
            self.window_repository.replace_windows(provider, windows)
            provider.mark_ready()
            self.db.flush()

        self.log_operation(
            "save_weekly_availability",
            provider_id=provider_id,
            offered_days=sum(1 for values in windows.values() if values["enabled"]),
        )
        return self._serialize(provider)

    @BaseService.measure_operation("register_provider")
    def register_provider(
        self,
        *,
        timezone: str,
        session_duration_minutes: int = 60,
        display_name: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> Provider:
        """Create a pending provider with no availability."""
        TimezoneService.get_timezone(timezone)
        with self.transaction():
            provider = self.provider_repository.create_provider(
                timezone=timezone,
                session_duration_minutes=session_duration_minutes,
                display_name=display_name,
                provider_id=provider_id,
            )
        self.logger.info(f"Registered provider {provider.id} in {timezone}")
        return provider

    @staticmethod
    def _serialize(provider: Provider) -> Dict[str, Any]:
        weekly = {
            WEEKDAY_NAMES[window.weekday]: window.to_dict()
            for window in sorted(provider.availability_windows, key=lambda w: w.weekday)
        }
        return {
            "provider_id": provider.id,
            "status": provider.status,
            "timezone": provider.timezone,
            "weekly_availability": weekly,
        }
