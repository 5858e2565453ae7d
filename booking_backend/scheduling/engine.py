"""
SchedulingEngine: propose, confirm, cancel, complete and no-show bookings.

propose_booking runs in two phases:

1. Advisory reads (no lock): resolve service, customer and staff candidates,
   run BookingPolicy.
2. Locked write: acquire the (business, staff, local date) lock, re-run the
   ConflictChecker inside the transaction and insert the appointment. Any
   failure in this phase rolls the transaction back; nothing is written in
   phase 1.
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import TYPE_CHECKING, List, Optional

from booking_backend.config import SchedulingConfig
from booking_backend.core.exceptions import (
    EntityUnavailable,
    InvalidRangeError,
    NotFoundError,
    PolicyViolation,
    SlotConflictError,
)
from booking_backend.infra.database.models.appointment import AppointmentStatus
from booking_backend.scheduling.availability import AvailabilityResolver, local_date
from booking_backend.scheduling.clock import Clock, SystemClock
from booking_backend.scheduling.conflicts import ConflictChecker
from booking_backend.scheduling.locks import SchedulingLock, build_lock
from booking_backend.scheduling.policy import BookingPolicy
from booking_backend.scheduling.types import (
    BookingRequest,
    Interval,
    TransitionAction,
    next_status,
    require_aware,
)

if TYPE_CHECKING:
    from booking_backend.infra.database.models import Appointment, Business, Service

logger = logging.getLogger(__name__)


class SchedulingEngine:
    """
    Args:
        uow: unit of work exposing ``reading()`` and ``writing()`` async
            context managers that yield SchedulingRepositories.
        lock: serialization point; defaults to build_lock(config).
        clock: source of "now"; defaults to SystemClock.
        config: SchedulingConfig defaults.
    """

    def __init__(
        self,
        uow,
        *,
        lock: Optional[SchedulingLock] = None,
        clock: Optional[Clock] = None,
        config: Optional[SchedulingConfig] = None,
    ) -> None:
        self._uow = uow
        self._config = config or SchedulingConfig()
        self._lock = lock or build_lock(self._config)
        self._clock = clock or SystemClock()

    def _policy(self, repos) -> BookingPolicy:
        return BookingPolicy(AvailabilityResolver(repos, self._config), repos, self._config)

    # ── queries ──────────────────────────────────────────────────────────────

    async def get_free_intervals(
        self,
        business_id: int,
        staff_id: int,
        range_start: _dt.date,
        range_end: _dt.date,
    ) -> List[Interval]:
        async with self._uow.reading() as repos:
            resolver = AvailabilityResolver(repos, self._config)
            return await resolver.get_free_intervals(business_id, staff_id, range_start, range_end)

    async def find_conflicts(
        self,
        business_id: int,
        staff_id: int,
        start: _dt.datetime,
        end: _dt.datetime,
        buffer_minutes: int = 0,
    ) -> List[int]:
        if require_aware(end, "end") <= require_aware(start):
            raise InvalidRangeError(
                "end must be after start",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        async with self._uow.reading() as repos:
            return await ConflictChecker(repos).find_conflicts(
                business_id, staff_id, start, end, buffer_minutes
            )

    # ── booking ──────────────────────────────────────────────────────────────

    async def propose_booking(self, business_id: int, request: BookingRequest) -> "Appointment":
        start = require_aware(request.start).astimezone(_dt.timezone.utc)
        now = self._clock.now()

        async with self._uow.reading() as repos:
            business = await _require(
                repos.businesses.get(business_id), "Business", business_id
            )
            service = await _require(
                repos.services.get_for_business(business_id, request.service_id),
                "Service", request.service_id,
            )
            await _require(
                repos.customers.get_for_business(business_id, request.customer_id),
                "Customer", request.customer_id,
            )
            policy = self._policy(repos)
            if request.staff_id is not None:
                staff = await _require(
                    repos.staff.get_for_business(business_id, request.staff_id),
                    "Staff member", request.staff_id,
                )
                await policy.validate(business, service, staff, start, now)
                candidates = [staff.id]
            else:
                candidates = await self._eligible_staff(repos, policy, business, service, start, now)
            initial = (
                AppointmentStatus.PENDING
                if policy.requires_confirmation(business)
                else AppointmentStatus.CONFIRMED
            )
            day = local_date(start, business)

        end = start + _dt.timedelta(minutes=service.duration_minutes)
        last_conflict: Optional[SlotConflictError] = None
        for staff_id in candidates:
            try:
                return await self._reserve(
                    business_id, staff_id, service, request, start, end, day, initial
                )
            except SlotConflictError as exc:
                if request.staff_id is not None:
                    raise
                last_conflict = exc
                logger.info(
                    "Auto-assigned staff lost the slot, trying next candidate",
                    extra={"business_id": business_id, "staff_id": staff_id},
                )
        raise last_conflict or SlotConflictError()

    async def _eligible_staff(
        self,
        repos,
        policy: BookingPolicy,
        business: "Business",
        service: "Service",
        start: _dt.datetime,
        now: _dt.datetime,
    ) -> List[int]:
        """Staff ids (lowest first) passing policy with no conflict on the advisory read."""
        staff_list = await repos.staff.list_for_service(business.id, service.id, active_only=True)
        if not staff_list:
            raise EntityUnavailable(
                "No staff member currently offers this service",
                details={"service_id": service.id},
            )
        checker = ConflictChecker(repos)
        end = start + _dt.timedelta(minutes=service.duration_minutes)
        first_violation: Optional[PolicyViolation] = None
        passed_policy = False
        eligible: List[int] = []
        for staff in sorted(staff_list, key=lambda s: s.id):
            violations = await policy.check(business, service, staff, start, now)
            if violations:
                first_violation = first_violation or violations[0]
                continue
            passed_policy = True
            if not await checker.has_conflict(
                business.id, staff.id, start, end, service.buffer_time_minutes
            ):
                eligible.append(staff.id)
        if eligible:
            return eligible
        if passed_policy or first_violation is None:
            raise SlotConflictError("No staff member is free at the requested time")
        raise first_violation

    async def _reserve(
        self,
        business_id: int,
        staff_id: int,
        service: "Service",
        request: BookingRequest,
        start: _dt.datetime,
        end: _dt.datetime,
        day: _dt.date,
        status: AppointmentStatus,
    ) -> "Appointment":
        buffer_minutes = service.buffer_time_minutes or 0
        async with self._lock.guard(self._uow, business_id, staff_id, day) as repos:
            conflicts = await ConflictChecker(repos).find_conflicts(
                business_id, staff_id, start, end, buffer_minutes
            )
            if conflicts:
                logger.info(
                    "Slot taken while booking was in flight",
                    extra={"business_id": business_id, "staff_id": staff_id, "slot_start": start.isoformat()},
                )
                raise SlotConflictError(conflicting_ids=conflicts)
            appointment = await repos.appointments.create({
                "business_id": business_id,
                "service_id": service.id,
                "staff_id": staff_id,
                "customer_id": request.customer_id,
                "start_time": start,
                "end_time": end,
                "reserved_until": end + _dt.timedelta(minutes=buffer_minutes),
                "status": status.value,
                "price": service.price,
                "booking_source": request.booking_source or "online",
                "notes": request.notes,
            })
        logger.info(
            "Appointment %s booked (%s)", appointment.id, status.value,
            extra={
                "business_id": business_id,
                "staff_id": staff_id,
                "appointment_id": appointment.id,
                "slot_start": start.isoformat(),
                "slot_end": end.isoformat(),
            },
        )
        return appointment

    # ── transitions ──────────────────────────────────────────────────────────

    async def confirm_booking(self, business_id: int, appointment_id: int) -> "Appointment":
        return await self._transition(business_id, appointment_id, TransitionAction.CONFIRM)

    async def complete_booking(self, business_id: int, appointment_id: int) -> "Appointment":
        return await self._transition(business_id, appointment_id, TransitionAction.COMPLETE)

    async def mark_no_show(self, business_id: int, appointment_id: int) -> "Appointment":
        return await self._transition(business_id, appointment_id, TransitionAction.MARK_NO_SHOW)

    async def cancel_booking(
        self,
        business_id: int,
        appointment_id: int,
        reason: Optional[str] = None,
        now: Optional[_dt.datetime] = None,
    ) -> "Appointment":
        """Cancel if the status allows it and the cancellation window is still open."""
        now = require_aware(now, "now") if now is not None else self._clock.now()
        async with self._uow.writing() as repos:
            appointment = await self._load_for_update(repos, business_id, appointment_id)
            target = next_status(appointment.status, TransitionAction.CANCEL)
            business = await _require(repos.businesses.get(business_id), "Business", business_id)
            self._policy(repos).ensure_cancellable(appointment, business, now)
            updated = await repos.appointments.set_status(
                appointment, target, cancellation_reason=reason
            )
        logger.info(
            "Appointment %s cancelled", appointment_id,
            extra={"business_id": business_id, "appointment_id": appointment_id},
        )
        return updated

    async def _transition(
        self,
        business_id: int,
        appointment_id: int,
        action: TransitionAction,
    ) -> "Appointment":
        async with self._uow.writing() as repos:
            appointment = await self._load_for_update(repos, business_id, appointment_id)
            target = next_status(appointment.status, action)
            updated = await repos.appointments.set_status(appointment, target)
        logger.info(
            "Appointment %s -> %s", appointment_id, target.value,
            extra={"business_id": business_id, "appointment_id": appointment_id, "status": target.value},
        )
        return updated

    @staticmethod
    async def _load_for_update(repos, business_id: int, appointment_id: int) -> "Appointment":
        return await _require(
            repos.appointments.get_for_business(business_id, appointment_id, for_update=True),
            "Appointment", appointment_id,
        )


async def _require(lookup, label: str, id: int):
    """Await a repository lookup; a missing (or foreign-tenant) row is NotFoundError."""
    row = await lookup
    if row is None:
        raise NotFoundError(f"{label} not found", details={"id": id})
    return row
