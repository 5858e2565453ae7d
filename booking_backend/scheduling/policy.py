"""BookingPolicy: business rules a slot must satisfy before it is reserved."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import TYPE_CHECKING, List, Optional

from booking_backend.config import SchedulingConfig
from booking_backend.core.exceptions import (
    CancellationWindowPassed,
    EntityUnavailable,
    InsufficientNotice,
    OutsideAvailability,
    PolicyViolation,
)
from booking_backend.infra.database.models.appointment import AppointmentStatus
from booking_backend.scheduling.availability import AvailabilityResolver, local_date
from booking_backend.scheduling.types import footprint

if TYPE_CHECKING:
    from booking_backend.infra.database.models import Appointment, Business, Service, Staff

logger = logging.getLogger(__name__)

_CANCELLABLE = frozenset({AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value})


class BookingPolicy:
    """
    Rules checked for every proposed slot, each independently:

    - advance notice: start - now >= service.booking_advance_notice_minutes
    - active entities: business, service and staff active; staff offers service
    - containment: [start, end + buffer) inside one availability window of
      the staff member on the slot's local date

    Cancellation is a separate entry point (can_cancel / ensure_cancellable).
    """

    def __init__(
        self,
        resolver: AvailabilityResolver,
        repos,
        config: Optional[SchedulingConfig] = None,
    ) -> None:
        self._resolver = resolver
        self._repos = repos
        self._config = config or SchedulingConfig()

    # ── booking ──────────────────────────────────────────────────────────────

    async def check(
        self,
        business: "Business",
        service: "Service",
        staff: "Staff",
        candidate_start: _dt.datetime,
        now: _dt.datetime,
    ) -> List[PolicyViolation]:
        """Evaluate every rule and return all violations (empty list = ok)."""
        violations: List[PolicyViolation] = []

        notice = _dt.timedelta(minutes=service.booking_advance_notice_minutes or 0)
        lead = candidate_start - now
        if lead < notice:
            violations.append(InsufficientNotice(
                f"Bookings for this service need at least {service.booking_advance_notice_minutes} minutes notice",
                details={
                    "required_minutes": service.booking_advance_notice_minutes,
                    "lead_minutes": int(lead.total_seconds() // 60),
                },
            ))

        unavailable = []
        if not business.is_active:
            unavailable.append("business")
        if not service.is_active:
            unavailable.append("service")
        if not staff.is_active:
            unavailable.append("staff")
        elif not await self._repos.staff.offers_service(business.id, staff.id, service.id):
            unavailable.append("staff_service")
        if unavailable:
            violations.append(EntityUnavailable(
                "The selected service or staff member is not available for booking",
                details={"unavailable": unavailable},
            ))

        slot = footprint(candidate_start, service.duration_minutes, service.buffer_time_minutes)
        windows = await self._resolver.windows_on(
            business, staff.id, local_date(candidate_start, business)
        )
        if not any(window.contains(slot) for window in windows):
            violations.append(OutsideAvailability(
                "The requested time is outside the staff member's working hours",
                details={
                    "slot_start": slot.start.isoformat(),
                    "slot_end": slot.end.isoformat(),
                },
            ))
        return violations

    async def validate(
        self,
        business: "Business",
        service: "Service",
        staff: "Staff",
        candidate_start: _dt.datetime,
        now: _dt.datetime,
    ) -> None:
        """Raise the first violation; details list every violated rule."""
        violations = await self.check(business, service, staff, candidate_start, now)
        if violations:
            first = violations[0]
            first.details["violations"] = [v.kind for v in violations]
            logger.info(
                "Booking rejected: %s",
                ", ".join(v.kind for v in violations),
                extra={"business_id": business.id, "staff_id": staff.id, "service_id": service.id},
            )
            raise first

    # ── business settings ────────────────────────────────────────────────────

    def cancellation_window_for(self, business: "Business") -> _dt.timedelta:
        hours = business.cancellation_window_hours
        if hours is None:
            hours = self._config.cancellation_window_hours
        return _dt.timedelta(hours=hours)

    def requires_confirmation(self, business: "Business") -> bool:
        if business.require_confirmation is None:
            return self._config.require_confirmation
        return bool(business.require_confirmation)

    # ── cancellation ─────────────────────────────────────────────────────────

    @staticmethod
    def can_cancel(
        appointment: "Appointment",
        now: _dt.datetime,
        window: _dt.timedelta,
    ) -> bool:
        return appointment.status in _CANCELLABLE and now <= appointment.start_time - window

    def ensure_cancellable(
        self,
        appointment: "Appointment",
        business: "Business",
        now: _dt.datetime,
    ) -> None:
        window = self.cancellation_window_for(business)
        if not self.can_cancel(appointment, now, window):
            raise CancellationWindowPassed(
                f"Appointments can only be cancelled up to {int(window.total_seconds() // 3600)} hours before they start",
                details={
                    "appointment_id": appointment.id,
                    "window_hours": int(window.total_seconds() // 3600),
                },
            )
