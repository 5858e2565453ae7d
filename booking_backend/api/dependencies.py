"""FastAPI dependency providers."""
from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.infra.database.unit_of_work import SchedulingRepositories
from booking_backend.scheduling import SchedulingEngine
from booking_backend.services import AppointmentService, AvailabilityService


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a transactional AsyncSession from the app-level session factory."""
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_repositories(session: AsyncSession = Depends(get_session)) -> SchedulingRepositories:
    return SchedulingRepositories.from_session(session)


def get_scheduling_engine(request: Request) -> SchedulingEngine:
    """The engine manages its own sessions; it is shared across requests."""
    return request.app.state.scheduling_engine


def get_availability_service(
    request: Request,
    repos: SchedulingRepositories = Depends(get_repositories),
) -> AvailabilityService:
    return AvailabilityService(
        repos,
        clock=request.app.state.clock,
        config=request.app.state.scheduling_config,
    )


def get_appointment_service(
    repos: SchedulingRepositories = Depends(get_repositories),
) -> AppointmentService:
    return AppointmentService(repos)
