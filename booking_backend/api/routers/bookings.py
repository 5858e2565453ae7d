"""Bookings API: propose and transition appointments, availability lookups, listings.

Every route is scoped by the business id in the path. Domain errors
(ProjectError) are rendered by the application-level handler in api.main.
"""
from __future__ import annotations

import datetime as _dt
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from booking_backend.api.dependencies import (
    get_appointment_service,
    get_availability_service,
    get_repositories,
    get_scheduling_engine,
)
from booking_backend.api.schemas.bookings import (
    AppointmentResponse,
    BookableSlotResponse,
    BookingProposal,
    CalendarMonthResponse,
    CancelRequest,
    IntervalResponse,
)
from booking_backend.core.exceptions import NotFoundError
from booking_backend.infra.database.unit_of_work import SchedulingRepositories
from booking_backend.scheduling import BookingRequest, SchedulingEngine
from booking_backend.services import AppointmentService, AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/businesses/{business_id}", tags=["bookings"])


# ── Appointments ──────────────────────────────────────────────────────────────

@router.post(
    "/appointments",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def propose_booking(
    business_id: int,
    body: BookingProposal,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Reserve a slot. 409 SLOT_CONFLICT means the time was taken; look up availability and retry."""
    appt = await engine.propose_booking(
        business_id,
        BookingRequest(
            service_id=body.service_id,
            customer_id=body.customer_id,
            start=body.start,
            staff_id=body.staff_id,
            booking_source=body.booking_source,
            notes=body.notes,
        ),
    )
    return AppointmentResponse.model_validate(appt)


@router.get("/appointments", response_model=List[AppointmentResponse])
async def list_appointments(
    business_id: int,
    staff_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    status: Optional[str] = None,
    start_from: Optional[_dt.datetime] = Query(default=None),
    start_to: Optional[_dt.datetime] = Query(default=None),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    svc: AppointmentService = Depends(get_appointment_service),
):
    items = await svc.list_appointments(
        business_id,
        staff_id=staff_id,
        customer_id=customer_id,
        status=status,
        start_from=start_from,
        start_to=start_to,
        skip=skip,
        limit=limit,
    )
    return [AppointmentResponse.model_validate(a) for a in items]


# NOTE: registered before /appointments/{appointment_id} so "calendar" is not
# parsed as an id.
@router.get("/appointments/calendar", response_model=CalendarMonthResponse)
async def calendar_month(
    business_id: int,
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    svc: AppointmentService = Depends(get_appointment_service),
):
    """Non-cancelled appointments of one month grouped by date (business timezone)."""
    data = await svc.calendar_month(business_id, year, month)
    return CalendarMonthResponse.model_validate(data)


@router.get("/appointments/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    business_id: int,
    appointment_id: int,
    repos: SchedulingRepositories = Depends(get_repositories),
):
    appt = await repos.appointments.get_for_business(business_id, appointment_id)
    if appt is None:
        raise NotFoundError("Appointment not found", details={"id": appointment_id})
    return AppointmentResponse.model_validate(appt)


@router.post("/appointments/{appointment_id}/confirm", response_model=AppointmentResponse)
async def confirm_booking(
    business_id: int,
    appointment_id: int,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    appt = await engine.confirm_booking(business_id, appointment_id)
    return AppointmentResponse.model_validate(appt)


@router.post("/appointments/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_booking(
    business_id: int,
    appointment_id: int,
    body: Optional[CancelRequest] = Body(default=None),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    appt = await engine.cancel_booking(
        business_id, appointment_id, reason=body.reason if body else None
    )
    return AppointmentResponse.model_validate(appt)


@router.post("/appointments/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_booking(
    business_id: int,
    appointment_id: int,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    appt = await engine.complete_booking(business_id, appointment_id)
    return AppointmentResponse.model_validate(appt)


@router.post("/appointments/{appointment_id}/no-show", response_model=AppointmentResponse)
async def mark_no_show(
    business_id: int,
    appointment_id: int,
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    appt = await engine.mark_no_show(business_id, appointment_id)
    return AppointmentResponse.model_validate(appt)


# ── Availability ──────────────────────────────────────────────────────────────

@router.get("/staff/{staff_id}/free-intervals", response_model=List[IntervalResponse])
async def free_intervals(
    business_id: int,
    staff_id: int,
    start: _dt.date = Query(...),
    end: _dt.date = Query(...),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    """Working windows for an inclusive date range; existing bookings are not subtracted."""
    intervals = await engine.get_free_intervals(business_id, staff_id, start, end)
    return [IntervalResponse.model_validate(i) for i in intervals]


@router.get("/staff/{staff_id}/conflicts", response_model=List[int])
async def find_conflicts(
    business_id: int,
    staff_id: int,
    start: _dt.datetime = Query(...),
    end: _dt.datetime = Query(...),
    buffer_minutes: int = Query(default=0, ge=0),
    engine: SchedulingEngine = Depends(get_scheduling_engine),
):
    return await engine.find_conflicts(business_id, staff_id, start, end, buffer_minutes)


@router.get("/services/{service_id}/slots", response_model=List[BookableSlotResponse])
async def bookable_slots(
    business_id: int,
    service_id: int,
    day: _dt.date = Query(...),
    staff_id: Optional[int] = None,
    step_minutes: Optional[int] = Query(default=None, ge=1, le=240),
    svc: AvailabilityService = Depends(get_availability_service),
):
    slots = await svc.get_bookable_slots(
        business_id, service_id, day, staff_id=staff_id, step_minutes=step_minutes
    )
    return [BookableSlotResponse.model_validate(s) for s in slots]
