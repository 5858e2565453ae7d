"""
booking_backend.infra.database – PostgreSQL async engine, session, models and repositories.

Public API
──────────
  build_engine, build_session_factory, init_db, close_engine
  SchedulingRepositories, SqlAlchemyUnitOfWork
  Base and model classes (see .models), repositories (see .repositories)
"""
from booking_backend.infra.database.engine import (
    build_engine,
    build_session_factory,
    close_engine,
    init_db,
)
from booking_backend.infra.database.models import (
    Appointment,
    AppointmentStatus,
    AvailabilityRule,
    Base,
    Business,
    Customer,
    Service,
    Staff,
    TimeOff,
)
from booking_backend.infra.database.unit_of_work import SchedulingRepositories, SqlAlchemyUnitOfWork

__all__ = [
    "build_engine",
    "build_session_factory",
    "init_db",
    "close_engine",
    "SchedulingRepositories",
    "SqlAlchemyUnitOfWork",
    "Base",
    "Business",
    "Service",
    "Staff",
    "AvailabilityRule",
    "TimeOff",
    "Customer",
    "Appointment",
    "AppointmentStatus",
]
