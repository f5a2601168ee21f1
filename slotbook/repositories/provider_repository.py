# slotbook/repositories/provider_repository.py
"""Data access for providers."""

import logging
from typing import Optional

from sqlalchemy.orm import Query, Session, selectinload

from ..models.provider import Provider
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ProviderRepository(BaseRepository[Provider]):
    def __init__(self, db: Session):
        super().__init__(db, Provider)

    def create_provider(
        self,
        *,
        timezone: str,
        session_duration_minutes: int = 60,
        display_name: Optional[str] = None,
        provider_id: Optional[str] = None,
    ) -> Provider:
        kwargs = {
            "timezone": timezone,
            "session_duration_minutes": session_duration_minutes,
            "display_name": display_name,
        }
        if provider_id:
            kwargs["id"] = provider_id
        return self.create(**kwargs)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(selectinload(Provider.availability_windows))
