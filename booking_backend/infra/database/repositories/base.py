"""Generic async repositories for SQLAlchemy 2.0."""
from __future__ import annotations

from typing import Any, ClassVar, Generic, List, Optional, TypeVar

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    model: ClassVar[type]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _select(self) -> Select:
        stmt = select(self.model)
        if hasattr(self.model, "deleted_at"):
            stmt = stmt.where(self.model.deleted_at.is_(None))
        return stmt

    async def get_by_id(self, id: int) -> Optional[ModelT]:
        stmt = self._select().where(self.model.id == id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, data: dict[str, Any]) -> ModelT:
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance  # type: ignore[return-value]

    async def update(self, instance: ModelT, data: dict[str, Any]) -> ModelT:
        for attr, value in data.items():
            setattr(instance, attr, value)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance


class TenantRepository(BaseRepository[ModelT]):
    """
    Repository for rows owned by a business. Every read takes the business id
    explicitly; a row of another business is reported as missing.
    """

    def _scoped(self, business_id: int) -> Select:
        return self._select().where(self.model.business_id == business_id)

    async def get_for_business(
        self,
        business_id: int,
        id: int,
        *,
        for_update: bool = False,
    ) -> Optional[ModelT]:
        stmt = self._scoped(business_id).where(self.model.id == id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_business(
        self,
        business_id: int,
        *,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ModelT]:
        stmt = self._scoped(business_id).order_by(self.model.id).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
