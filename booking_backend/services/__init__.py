"""Service layer: read-side availability and appointment listings."""
from booking_backend.services.appointment_service import AppointmentService, CalendarDay, CalendarMonth
from booking_backend.services.availability_service import AvailabilityService, BookableSlot

__all__ = [
    "AvailabilityService",
    "BookableSlot",
    "AppointmentService",
    "CalendarDay",
    "CalendarMonth",
]
