# slotbook/api/dependencies.py
"""
Request dependencies.

Identity is established upstream; the identity collaborator forwards the
verified caller in ``X-User-Id`` (and ``X-Provider-Id`` for provider-scoped
calls). These headers are trusted as-is.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.alternative_slot_finder import AlternativeSlotFinder
from ..services.availability_service import AvailabilityService
from ..services.booking_service import BookingService


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Missing X-User-Id header", "code": "UNAUTHENTICATED"},
        )
    return x_user_id.strip()


def get_optional_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def get_current_provider_id(x_provider_id: Optional[str] = Header(None)) -> Optional[str]:
    return x_provider_id.strip() if x_provider_id and x_provider_id.strip() else None


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    return BookingService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db)


def get_slot_finder(db: Session = Depends(get_db)) -> AlternativeSlotFinder:
    return AlternativeSlotFinder(db)


__all__ = [
    "get_availability_service",
    "get_booking_service",
    "get_current_provider_id",
    "get_current_user_id",
    "get_db",
    "get_optional_user_id",
    "get_slot_finder",
]
