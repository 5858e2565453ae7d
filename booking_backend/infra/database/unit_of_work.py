"""
booking_backend.infra.database.unit_of_work – repository bundles bound to one session.

The scheduling engine never holds a session across its read phase and its
write phase: reads run in a short-lived session, writes in a fresh session
with one transaction that commits on success and rolls back on any error
(including task cancellation).
"""
from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_backend.infra.database.repositories import (
    AppointmentRepository,
    AvailabilityRuleRepository,
    BusinessRepository,
    CustomerRepository,
    ServiceRepository,
    StaffRepository,
    TimeOffRepository,
)


@dataclass
class SchedulingRepositories:
    """Every repository the scheduling core reads or writes, sharing one session."""

    session: AsyncSession
    businesses: BusinessRepository
    services: ServiceRepository
    staff: StaffRepository
    availability: AvailabilityRuleRepository
    time_off: TimeOffRepository
    customers: CustomerRepository
    appointments: AppointmentRepository

    @classmethod
    def from_session(cls, session: AsyncSession) -> SchedulingRepositories:
        return cls(
            session=session,
            businesses=BusinessRepository(session),
            services=ServiceRepository(session),
            staff=StaffRepository(session),
            availability=AvailabilityRuleRepository(session),
            time_off=TimeOffRepository(session),
            customers=CustomerRepository(session),
            appointments=AppointmentRepository(session),
        )


class SqlAlchemyUnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[SchedulingRepositories]:
        """Repositories for advisory reads; nothing is committed."""
        async with self._session_factory() as session:
            yield SchedulingRepositories.from_session(session)

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[SchedulingRepositories]:
        """Repositories inside one atomic transaction."""
        async with self._session_factory() as session:
            async with session.begin():
                yield SchedulingRepositories.from_session(session)
