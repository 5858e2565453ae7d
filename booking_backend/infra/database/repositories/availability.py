"""Availability rule and time-off repositories (read-only for scheduling)."""
from __future__ import annotations

import datetime as _dt
from typing import List

from sqlalchemy import select

from booking_backend.infra.database.models.availability import AvailabilityRule, TimeOff
from booking_backend.infra.database.models.staff import Staff
from booking_backend.infra.database.repositories.base import BaseRepository


class AvailabilityRuleRepository(BaseRepository[AvailabilityRule]):
    model = AvailabilityRule

    async def list_for_staff(self, business_id: int, staff_id: int) -> List[AvailabilityRule]:
        stmt = (
            select(AvailabilityRule)
            .join(Staff, Staff.id == AvailabilityRule.staff_id)
            .where(Staff.business_id == business_id)
            .where(AvailabilityRule.staff_id == staff_id)
            .order_by(AvailabilityRule.day_of_week, AvailabilityRule.start_time)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class TimeOffRepository(BaseRepository[TimeOff]):
    model = TimeOff

    async def list_approved(
        self,
        business_id: int,
        staff_id: int,
        start_date: _dt.date,
        end_date: _dt.date,
    ) -> List[TimeOff]:
        """Approved time-off rows intersecting [start_date, end_date] (inclusive)."""
        stmt = (
            self._select()
            .join(Staff, Staff.id == TimeOff.staff_id)
            .where(Staff.business_id == business_id)
            .where(TimeOff.staff_id == staff_id)
            .where(TimeOff.is_approved.is_(True))
            .where(TimeOff.start_date <= end_date)
            .where(TimeOff.end_date >= start_date)
            .order_by(TimeOff.start_date)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
