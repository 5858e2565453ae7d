"""
Root of the booking error hierarchy.

Scheduling code raises these instead of returning status flags: a missing
staff member, a slot taken by a concurrent booking and a cancellation that
comes too late all surface as a ProjectError subclass. The API layer turns
any of them into a JSON body of the form

    {"message": ..., "code": "SLOT_CONFLICT", "details": {...}}

with ``http_status`` as the response status. New kinds are either small
subclasses in errors.py or one-liners built with exception_factory().
"""
from __future__ import annotations

import traceback
from typing import Any, Optional, Type


class ProjectError(Exception):
    """
    A booking operation failed for a reason the caller can act on.

    Attributes:
        message: Shown to the customer or operator as-is, so it never names
            internal tables or other tenants' data.
        code: Stable slug clients switch on ("NOT_FOUND", "SLOT_CONFLICT").
        http_status: Status the API responds with.
        details: Ids and limits that explain the failure, e.g.
            ``{"service_id": 7}`` or ``{"conflicting_appointment_ids": [3]}``.
        cause: Underlying driver or lock error. Logged, never sent to clients.
    """

    default_code: str = "ERROR"
    default_http_status: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.http_status = http_status or self.default_http_status
        self.details: dict[str, Any] = dict(details or {})
        self.cause = cause

    @property
    def server_fault(self) -> bool:
        """True when the failure is ours (5xx) rather than the request's."""
        return self.http_status >= 500

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code}, {self.http_status}, {self.message!r})"

    def __str__(self) -> str:
        return self.message

    def to_dict(self, *, include_cause: bool = False) -> dict[str, Any]:
        """Response body. include_cause=True adds the chained error for log records."""
        out: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            out["details"] = self.details
        if include_cause and self.cause is not None:
            out["cause"] = str(self.cause)
            out["cause_traceback"] = traceback.format_exception(
                type(self.cause), self.cause, self.cause.__traceback__
            )
        return out


def exception_factory(
    name: str,
    *,
    code: Optional[str] = None,
    http_status: int = 500,
    base: Type[ProjectError] = ProjectError,
    doc: Optional[str] = None,
) -> Type[ProjectError]:
    """
    Build a ProjectError subclass that only differs by code and status.

    Example:
        OutsideAvailability = exception_factory(
            "OutsideAvailability",
            code="OUTSIDE_AVAILABILITY",
            http_status=422,
            base=PolicyViolation,
            doc="Slot does not fit inside the staff member's working hours.",
        )
        raise OutsideAvailability("Staff is not working then", details={"staff_id": 4})
    """
    attrs: dict[str, Any] = {
        "default_code": code or name.upper().replace(" ", "_"),
        "default_http_status": http_status,
    }
    if doc:
        attrs["__doc__"] = doc
    return type(name, (base,), attrs)
