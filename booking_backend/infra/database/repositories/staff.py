"""Staff repository: tenant-scoped lookups and service membership."""
from __future__ import annotations

from typing import List

from sqlalchemy import literal_column, select

from booking_backend.infra.database.models.service import service_staff
from booking_backend.infra.database.models.staff import Staff
from booking_backend.infra.database.repositories.base import TenantRepository


class StaffRepository(TenantRepository[Staff]):
    model = Staff

    async def list_for_service(
        self,
        business_id: int,
        service_id: int,
        *,
        active_only: bool = True,
    ) -> List[Staff]:
        """Staff of the business who perform the service, lowest id first."""
        stmt = (
            self._scoped(business_id)
            .join(service_staff, service_staff.c.staff_id == Staff.id)
            .where(service_staff.c.service_id == service_id)
            .order_by(Staff.id)
        )
        if active_only:
            stmt = stmt.where(Staff.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def offers_service(self, business_id: int, staff_id: int, service_id: int) -> bool:
        stmt = (
            select(literal_column("1"))
            .select_from(service_staff)
            .join(Staff, Staff.id == service_staff.c.staff_id)
            .where(Staff.business_id == business_id)
            .where(service_staff.c.staff_id == staff_id)
            .where(service_staff.c.service_id == service_id)
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar() is not None
