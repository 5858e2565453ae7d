"""
booking_backend.infra.database.models – SQLAlchemy 2.0 ORM models.

Exports Base, mixins, and all model classes.
"""
from booking_backend.infra.database.models.appointment import Appointment, AppointmentStatus
from booking_backend.infra.database.models.availability import AvailabilityRule, TimeOff
from booking_backend.infra.database.models.base import Base, SoftDeleteMixin, TimestampMixin, _int_pk
from booking_backend.infra.database.models.business import Business
from booking_backend.infra.database.models.customer import Customer
from booking_backend.infra.database.models.service import Service, service_staff
from booking_backend.infra.database.models.staff import Staff

__all__ = [
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "_int_pk",
    "Business",
    "Service",
    "service_staff",
    "Staff",
    "AvailabilityRule",
    "TimeOff",
    "Customer",
    "Appointment",
    "AppointmentStatus",
]
