"""
Booking backend exception system.

Usage:
    from booking_backend.core.exceptions import NotFoundError, SlotConflictError

    raise NotFoundError("Service not found", details={"service_id": 42})
    raise SlotConflictError(conflicting_ids=[17])

Policy violations share the PolicyViolation base and differ by ``kind``:
    except PolicyViolation as exc:
        if exc.kind == "INSUFFICIENT_NOTICE": ...
"""
from booking_backend.core.exceptions.base import ProjectError, exception_factory
from booking_backend.core.exceptions.errors import (
    CancellationWindowPassed,
    ConfigurationError,
    ConflictError,
    EntityUnavailable,
    InsufficientNotice,
    InvalidRangeError,
    InvalidTransitionError,
    NotFoundError,
    OutsideAvailability,
    PolicyViolation,
    SlotConflictError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "exception_factory",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InvalidRangeError",
    "SlotConflictError",
    "InvalidTransitionError",
    "PolicyViolation",
    "InsufficientNotice",
    "OutsideAvailability",
    "EntityUnavailable",
    "CancellationWindowPassed",
]
