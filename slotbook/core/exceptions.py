# slotbook/core/exceptions.py
"""
Domain-specific exceptions for the booking scheduler.

Every rejection carries a stable ``code`` and a structured ``details``
dict so the HTTP layer can render a precise remedy without a follow-up
round trip.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code or "NOT_FOUND", details=details)


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class ForbiddenException(DomainException):
    """Raised when the caller may not act on a resource."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific scheduling exceptions


class InvalidAvailabilityException(ValidationException):
    """Raised when a provider's weekly availability payload is malformed."""

    def __init__(self, errors: List[Dict[str, Any]], message: Optional[str] = None):
        super().__init__(
            message=message or "Availability payload is invalid",
            code="INVALID_AVAILABILITY",
            details={"errors": errors},
        )


class ProviderNotReadyException(ValidationException):
    """Raised when a provider has not yet published availability."""

    def __init__(self, provider_id: str):
        super().__init__(
            message="Provider is not ready to accept bookings",
            code="PROVIDER_NOT_READY",
            details={"provider_id": provider_id},
        )


class OutsideAvailabilityException(ValidationException):
    """Raised when the requested instant is not offered by the provider."""

    def __init__(self, message: str, details: Dict[str, Any]):
        super().__init__(message=message, code="OUTSIDE_AVAILABILITY", details=details)


class SlotConflictException(ConflictException):
    """Raised when another active booking already holds the requested slot."""

    def __init__(
        self,
        alternatives: List[Dict[str, Any]],
        *,
        details: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
    ):
        payload: Dict[str, Any] = dict(details or {})
        payload["alternatives"] = alternatives
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="SLOT_CONFLICT",
            details=payload,
        )

    @property
    def alternatives(self) -> List[Dict[str, Any]]:
        return list(self.details.get("alternatives", []))


class BookingNotActiveException(ConflictException):
    """Raised when a terminal booking is asked to change."""

    def __init__(self, booking_id: str, current_status: str, action: str):
        super().__init__(
            message=f"Booking is {current_status} and cannot be {action}",
            code="BOOKING_NOT_ACTIVE",
            details={"booking_id": booking_id, "status": current_status, "action": action},
        )


class ConcurrentModificationException(ConflictException):
    """Raised when a booking changed underneath the caller."""

    def __init__(self, booking_id: str):
        super().__init__(
            message="Booking was modified by another request; reload and retry",
            code="BOOKING_MODIFIED",
            details={"booking_id": booking_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as connection issues
    or query failures.
    """
