"""
Built-in exception types. Add new ones here or via exception_factory().
"""
from __future__ import annotations

from typing import Any, Optional

from booking_backend.core.exceptions.base import ProjectError, exception_factory


class ConfigurationError(ProjectError):
    """Invalid or missing configuration."""

    default_code = "CONFIGURATION_ERROR"
    default_http_status = 500


class ValidationError(ProjectError):
    """Request or input validation failed."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class NotFoundError(ProjectError):
    """Requested resource not found (or owned by another business)."""

    default_code = "NOT_FOUND"
    default_http_status = 404


class ConflictError(ProjectError):
    """Resource state conflict."""

    default_code = "CONFLICT"
    default_http_status = 409


class InvalidRangeError(ValidationError):
    """Date range end precedes its start, or the range is too long."""

    default_code = "INVALID_RANGE"
    default_http_status = 400


class SlotConflictError(ConflictError):
    """
    The requested slot overlaps another booking, or the scheduling lock could
    not be acquired in time. Always safe to retry after a fresh availability
    lookup.
    """

    default_code = "SLOT_CONFLICT"
    default_http_status = 409

    def __init__(
        self,
        message: str = "The requested time is no longer available",
        *,
        conflicting_ids: Optional[list[int]] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        merged = dict(details or {})
        if conflicting_ids:
            merged["conflicting_appointment_ids"] = list(conflicting_ids)
        merged.setdefault("retryable", True)
        super().__init__(message, details=merged, cause=cause)
        self.conflicting_ids = list(conflicting_ids or [])

    @property
    def retryable(self) -> bool:
        return bool(self.details.get("retryable", True))


class InvalidTransitionError(ConflictError):
    """Appointment status change not allowed from its current status."""

    default_code = "INVALID_TRANSITION"
    default_http_status = 409


class PolicyViolation(ProjectError):
    """
    Booking or cancellation rejected by a business rule.

    The concrete variants below share this base; ``kind`` is the machine code
    of the variant (e.g. "INSUFFICIENT_NOTICE").
    """

    default_code = "POLICY_VIOLATION"
    default_http_status = 422

    @property
    def kind(self) -> str:
        return self.code


InsufficientNotice = exception_factory(
    "InsufficientNotice", code="INSUFFICIENT_NOTICE", http_status=422, base=PolicyViolation,
    doc="Start is closer to now than the service's advance notice.",
)
OutsideAvailability = exception_factory(
    "OutsideAvailability", code="OUTSIDE_AVAILABILITY", http_status=422, base=PolicyViolation,
    doc="Footprint does not fit inside one of the staff member's windows.",
)
EntityUnavailable = exception_factory(
    "EntityUnavailable", code="ENTITY_UNAVAILABLE", http_status=422, base=PolicyViolation,
    doc="Business, service or staff member is inactive, or staff does not offer the service.",
)
CancellationWindowPassed = exception_factory(
    "CancellationWindowPassed", code="CANCELLATION_WINDOW_PASSED", http_status=422, base=PolicyViolation,
    doc="Too close to the start to cancel.",
)
