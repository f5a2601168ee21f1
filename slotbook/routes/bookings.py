# slotbook/routes/bookings.py
"""
Booking routes.

All business logic is delegated to BookingService.

Endpoints:
    POST / - Reserve a session
    GET / - The caller's bookings
    GET /{booking_id} - Booking details (user or provider of the booking)
    POST /{booking_id}/cancel - Cancel a booking
    POST /{booking_id}/reschedule - Move a booking to a new instant
"""

import asyncio
import logging
from typing import NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from ..api.dependencies import (
    get_booking_service,
    get_current_provider_id,
    get_current_user_id,
    get_optional_user_id,
)
from ..core.exceptions import DomainException, SlotConflictException
from ..models.booking import BookingStatus
from ..schemas.booking import (
    BookingCancel,
    BookingCancelledResponse,
    BookingCreate,
    BookingInstantResponse,
    BookingListResponse,
    BookingReschedule,
    BookingResponse,
    alternatives_payload,
)
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if isinstance(exc, SlotConflictException):
        exc.details["alternatives"] = alternatives_payload(exc.alternatives)
    raise exc.to_http_exception()


def _require_identity(user_id: Optional[str], provider_id: Optional[str]) -> None:
    if not user_id and not provider_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "message": "Missing X-User-Id or X-Provider-Id header",
                "code": "UNAUTHENTICATED",
            },
        )


@router.post("", response_model=BookingInstantResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate = Body(...),
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingInstantResponse:
    """
    Reserve a session with a provider.

    Returns 409 SLOT_CONFLICT with ranked alternatives in the same week when
    the instant is already taken.
    """
    try:
        booking = await asyncio.to_thread(
            booking_service.create_booking,
            user_id=user_id,
            provider_id=booking_data.provider_id,
            appointment_at=booking_data.appointment_instant,
            session_type=booking_data.session_type,
            notes=booking_data.notes,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingInstantResponse(
        booking_id=booking.id,
        appointment_instant=booking.appointment_at,
        status=booking.status,
    )


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    user_id: str = Depends(get_current_user_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    bookings = await asyncio.to_thread(
        booking_service.find_by_user,
        user_id,
        status=status_filter.value if status_filter else None,
    )
    return BookingListResponse(
        bookings=[BookingResponse.from_booking(booking) for booking in bookings],
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    user_id: Optional[str] = Depends(get_optional_user_id),
    provider_id: Optional[str] = Depends(get_current_provider_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    _require_identity(user_id, provider_id)
    try:
        booking = await asyncio.to_thread(
            booking_service.get_booking_for_participant,
            booking_id,
            user_id=user_id,
            provider_id=provider_id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.from_booking(booking)


@router.post(
    "/{booking_id}/cancel",
    response_model=BookingCancelledResponse,
    responses={404: {"description": "Booking not found"}, 409: {"description": "Not active"}},
)
async def cancel_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    cancel_data: BookingCancel = Body(...),
    user_id: Optional[str] = Depends(get_optional_user_id),
    provider_id: Optional[str] = Depends(get_current_provider_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCancelledResponse:
    """Cancel a booking; a reason is required."""
    _require_identity(user_id, provider_id)
    try:
        await asyncio.to_thread(
            booking_service.get_booking_for_participant,
            booking_id,
            user_id=user_id,
            provider_id=provider_id,
        )
        booking = await asyncio.to_thread(
            booking_service.cancel_booking,
            booking_id,
            cancel_data.reason,
            cancelled_by=user_id or provider_id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingCancelledResponse(booking_id=booking.id, status=booking.status)


@router.post(
    "/{booking_id}/reschedule",
    response_model=BookingInstantResponse,
    responses={404: {"description": "Booking not found"}, 409: {"description": "Time conflict"}},
)
async def reschedule_booking(
    booking_id: str = Path(..., description="Booking ULID", pattern=ULID_PATH_PATTERN),
    payload: BookingReschedule = Body(...),
    user_id: Optional[str] = Depends(get_optional_user_id),
    provider_id: Optional[str] = Depends(get_current_provider_id),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingInstantResponse:
    """
    Move a booking to a new instant.

    The booking keeps its id. If the new instant is taken the original slot
    is kept and the response carries alternatives.
    """
    _require_identity(user_id, provider_id)
    try:
        await asyncio.to_thread(
            booking_service.get_booking_for_participant,
            booking_id,
            user_id=user_id,
            provider_id=provider_id,
        )
        booking = await asyncio.to_thread(
            booking_service.reschedule_booking,
            booking_id,
            payload.new_appointment_instant,
            rescheduled_by=user_id or provider_id,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return BookingInstantResponse(
        booking_id=booking.id,
        appointment_instant=booking.appointment_at,
        status=booking.status,
    )
