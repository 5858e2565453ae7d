"""Tenant-scoped repositories for the booking database."""
from booking_backend.infra.database.repositories.appointment import AppointmentRepository
from booking_backend.infra.database.repositories.availability import (
    AvailabilityRuleRepository,
    TimeOffRepository,
)
from booking_backend.infra.database.repositories.base import BaseRepository, TenantRepository
from booking_backend.infra.database.repositories.business import BusinessRepository
from booking_backend.infra.database.repositories.customer import CustomerRepository
from booking_backend.infra.database.repositories.service import ServiceRepository
from booking_backend.infra.database.repositories.staff import StaffRepository

__all__ = [
    "BaseRepository",
    "TenantRepository",
    "BusinessRepository",
    "ServiceRepository",
    "StaffRepository",
    "AvailabilityRuleRepository",
    "TimeOffRepository",
    "CustomerRepository",
    "AppointmentRepository",
]
