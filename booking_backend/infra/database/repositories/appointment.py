"""Appointment repository."""
from __future__ import annotations

import datetime as _dt
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError

from booking_backend.core.exceptions import SlotConflictError
from booking_backend.infra.database.models.appointment import Appointment, AppointmentStatus
from booking_backend.infra.database.repositories.base import TenantRepository

# Exclusion constraint installed by init_db on PostgreSQL
NO_OVERLAP_CONSTRAINT = "ex_appointments_staff_no_overlap"


class AppointmentRepository(TenantRepository[Appointment]):
    model = Appointment

    async def create(self, data: dict[str, Any]) -> Appointment:
        try:
            return await super().create(data)
        except IntegrityError as exc:
            if NO_OVERLAP_CONSTRAINT in str(exc.orig):
                raise SlotConflictError(cause=exc) from exc
            raise

    async def list_overlapping(
        self,
        business_id: int,
        staff_id: int,
        start: _dt.datetime,
        end: _dt.datetime,
        *,
        exclude_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Non-cancelled appointments whose [start_time, reserved_until) meets [start, end)."""
        stmt = (
            self._scoped(business_id)
            .where(Appointment.staff_id == staff_id)
            .where(Appointment.status != AppointmentStatus.CANCELLED.value)
            .where(Appointment.start_time < end)
            .where(Appointment.reserved_until > start)
            .order_by(Appointment.start_time)
        )
        if exclude_id is not None:
            stmt = stmt.where(Appointment.id != exclude_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_filtered(
        self,
        business_id: int,
        *,
        staff_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        status: Optional[str] = None,
        start_from: Optional[_dt.datetime] = None,
        start_to: Optional[_dt.datetime] = None,
        include_cancelled: bool = True,
        skip: int = 0,
        limit: Optional[int] = 100,
    ) -> List[Appointment]:
        stmt = self._scoped(business_id)
        if staff_id is not None:
            stmt = stmt.where(Appointment.staff_id == staff_id)
        if customer_id is not None:
            stmt = stmt.where(Appointment.customer_id == customer_id)
        if status:
            stmt = stmt.where(Appointment.status == status)
        if not include_cancelled:
            stmt = stmt.where(Appointment.status != AppointmentStatus.CANCELLED.value)
        if start_from is not None:
            stmt = stmt.where(Appointment.start_time >= start_from)
        if start_to is not None:
            stmt = stmt.where(Appointment.start_time <= start_to)
        stmt = stmt.order_by(Appointment.start_time, Appointment.id).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_status(
        self,
        appointment: Appointment,
        status: AppointmentStatus,
        **fields: Any,
    ) -> Appointment:
        return await self.update(appointment, {"status": status.value, **fields})
