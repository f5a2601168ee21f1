# slotbook/services/slot_validator.py
"""
Slot validation against a provider's weekly availability.

The validator is pure: it reads the provider and its windows, never the
session, and has no side effects. The finder relies on that to call it for
hundreds of speculative candidates.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..core.exceptions import OutsideAvailabilityException, ProviderNotReadyException
from ..models.provider import Provider
from ..utils.time_helpers import minutes_to_hhmm
from .timezone_service import LocalSlot, TimezoneService


class RejectionReason(str, Enum):
    PROVIDER_NOT_READY = "PROVIDER_NOT_READY"
    OUTSIDE_AVAILABILITY = "OUTSIDE_AVAILABILITY"


class OutsideCause(str, Enum):
    DAY_NOT_OFFERED = "day_not_offered"
    TIME_NOT_OFFERED = "time_not_offered"


@dataclass(frozen=True)
class SlotDecision:
    """Outcome of validating one instant: bookable, or a structured rejection."""

    provider_id: str
    ok: bool
    reason: Optional[RejectionReason] = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    local_slot: Optional[LocalSlot] = None

    @classmethod
    def accept(cls, provider_id: str, local_slot: LocalSlot) -> "SlotDecision":
        return cls(provider_id=provider_id, ok=True, local_slot=local_slot)

    @classmethod
    def reject(
        cls,
        provider_id: str,
        reason: RejectionReason,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        local_slot: Optional[LocalSlot] = None,
    ) -> "SlotDecision":
        return cls(
            provider_id=provider_id,
            ok=False,
            reason=reason,
            message=message,
            details=details or {},
            local_slot=local_slot,
        )

    def raise_for_rejection(self) -> None:
        """Raise the domain exception matching a rejection; no-op when bookable."""
        if self.ok:
            return
        if self.reason is RejectionReason.PROVIDER_NOT_READY:
            raise ProviderNotReadyException(self.provider_id)
        raise OutsideAvailabilityException(self.message, self.details)


class SlotValidator:
    """Decides whether an instant lies inside a provider's published availability."""

    def __init__(self, timezone_service: Optional[TimezoneService] = None):
        self.timezone_service = timezone_service or TimezoneService()

    def validate(self, provider: Provider, appointment_at: datetime) -> SlotDecision:
        if not provider.is_ready:
            return SlotDecision.reject(
                provider.id,
                RejectionReason.PROVIDER_NOT_READY,
                "Provider is not ready to accept bookings",
                {"provider_id": provider.id, "status": provider.status},
            )

        local = self.timezone_service.normalize(provider.timezone, appointment_at)
        base_details: Dict[str, Any] = {
            "provider_id": provider.id,
            "timezone": provider.timezone,
            "weekday": local.weekday_name,
            "local_date": local.local_date.isoformat(),
            "local_time": local.time_label,
        }

        window = provider.window_for(local.weekday)
        if window is None or not window.enabled:
            return SlotDecision.reject(
                provider.id,
                RejectionReason.OUTSIDE_AVAILABILITY,
                f"Provider does not offer sessions on {local.weekday_name.capitalize()}",
                {**base_details, "cause": OutsideCause.DAY_NOT_OFFERED.value},
                local,
            )

        if not window.admits(local.minute_of_day):
            return SlotDecision.reject(
                provider.id,
                RejectionReason.OUTSIDE_AVAILABILITY,
                (
                    f"Requested time {local.time_label} is outside availability "
                    f"{minutes_to_hhmm(window.start_minute)}-{minutes_to_hhmm(window.end_minute)}"
                ),
                {
                    **base_details,
                    "cause": OutsideCause.TIME_NOT_OFFERED.value,
                    "window_start": minutes_to_hhmm(window.start_minute),
                    "window_end": minutes_to_hhmm(window.end_minute),
                },
                local,
            )

        return SlotDecision.accept(provider.id, local)
