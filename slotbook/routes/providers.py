# slotbook/routes/providers.py
"""
Provider routes.

Endpoints:
    GET /{provider_id}/availability - Weekly availability and status
    PUT /{provider_id}/availability - Replace weekly availability (provider only)
    GET /{provider_id}/schedule - Upcoming schedule from the projection (provider only)
    GET /{provider_id}/available-slots - Open instants in the week of ``anchor``
"""

from datetime import datetime, timezone
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from ..api.dependencies import (
    get_availability_service,
    get_booking_service,
    get_current_provider_id,
    get_slot_finder,
)
from ..core.exceptions import DomainException, ForbiddenException
from ..schemas.availability import WeeklyAvailabilityResponse, WeeklyAvailabilityUpdate
from ..schemas.booking import (
    AlternativeSlotResponse,
    AvailableSlotsResponse,
    ProviderScheduleResponse,
    ScheduleEntryResponse,
)
from ..services.alternative_slot_finder import AlternativeSlotFinder
from ..services.availability_service import AvailabilityService
from ..services.booking_service import BookingService
from .bookings import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["providers"])


def _ensure_provider_caller(provider_id: str, caller_provider_id: Optional[str]) -> None:
    if caller_provider_id != provider_id:
        raise ForbiddenException(
            "Only the provider may access this resource",
            code="FORBIDDEN",
            details={"provider_id": provider_id},
        )


@router.get("/{provider_id}/availability", response_model=WeeklyAvailabilityResponse)
async def get_weekly_availability(
    provider_id: str,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> WeeklyAvailabilityResponse:
    try:
        result = await asyncio.to_thread(availability_service.get_weekly_availability, provider_id)
    except DomainException as e:
        handle_domain_exception(e)
    return WeeklyAvailabilityResponse.model_validate(result)


@router.put("/{provider_id}/availability", response_model=WeeklyAvailabilityResponse)
async def save_weekly_availability(
    provider_id: str,
    payload: WeeklyAvailabilityUpdate = Body(...),
    caller_provider_id: Optional[str] = Depends(get_current_provider_id),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> WeeklyAvailabilityResponse:
    """
    Replace the provider's weekly availability.

    The first successful save makes the provider ready for bookings.
    """
    try:
        _ensure_provider_caller(provider_id, caller_provider_id)
        result = await asyncio.to_thread(
            availability_service.save_weekly_availability,
            provider_id,
            payload.weekly_availability,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return WeeklyAvailabilityResponse.model_validate(result)


@router.get("/{provider_id}/schedule", response_model=ProviderScheduleResponse)
async def get_provider_schedule(
    provider_id: str,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    caller_provider_id: Optional[str] = Depends(get_current_provider_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> ProviderScheduleResponse:
    try:
        _ensure_provider_caller(provider_id, caller_provider_id)
        entries = await asyncio.to_thread(
            booking_service.find_by_provider, provider_id, start=start, end=end
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ProviderScheduleResponse(
        provider_id=provider_id,
        entries=[
            ScheduleEntryResponse(
                booking_id=entry.booking_id,
                user_id=entry.user_id,
                appointment_instant=entry.appointment_at,
                ends_at=entry.ends_at,
                session_type=entry.session_type,
                reschedule_count=entry.reschedule_count,
            )
            for entry in entries
        ],
    )


@router.get("/{provider_id}/available-slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    provider_id: str,
    anchor: Optional[datetime] = Query(None, description="Instant whose week to search"),
    availability_service: AvailabilityService = Depends(get_availability_service),
    finder: AlternativeSlotFinder = Depends(get_slot_finder),
) -> AvailableSlotsResponse:
    anchor_at = anchor or datetime.now(timezone.utc)
    try:
        provider = await asyncio.to_thread(availability_service.get_provider, provider_id)
        slots = await asyncio.to_thread(finder.suggest, provider, anchor_at)
    except DomainException as e:
        handle_domain_exception(e)
    return AvailableSlotsResponse(
        provider_id=provider_id,
        anchor=anchor_at,
        slots=[
            AlternativeSlotResponse(
                appointment_instant=slot.appointment_at,
                date=slot.date,
                time=slot.time,
                weekday=slot.weekday,
            )
            for slot in slots
        ],
    )
