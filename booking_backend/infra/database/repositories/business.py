"""Business repository."""
from __future__ import annotations

from typing import Optional

from booking_backend.infra.database.models.business import Business
from booking_backend.infra.database.repositories.base import BaseRepository


class BusinessRepository(BaseRepository[Business]):
    model = Business

    async def get(self, business_id: int) -> Optional[Business]:
        return await self.get_by_id(business_id)

    async def get_by_slug(self, slug: str) -> Optional[Business]:
        stmt = self._select().where(Business.slug == slug)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
