"""Pydantic schemas for the bookings API."""
from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class BookingProposal(BaseModel):
    """Propose a booking. Leave staff_id empty to let the engine pick any staff member offering the service."""

    service_id: int = Field(..., gt=0)
    customer_id: int = Field(..., gt=0)
    start: datetime
    staff_id: Optional[int] = Field(None, gt=0)
    booking_source: str = Field(default="online", min_length=1, max_length=32)
    notes: Optional[str] = None


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class AppointmentResponse(BaseModel):
    id: int
    business_id: int
    service_id: int
    staff_id: Optional[int]
    customer_id: int
    start_time: datetime
    end_time: datetime
    reserved_until: datetime
    status: str
    price: Optional[int] = None
    booking_source: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None

    model_config = {"from_attributes": True}


class IntervalResponse(BaseModel):
    start: datetime
    end: datetime

    model_config = {"from_attributes": True}


class BookableSlotResponse(BaseModel):
    staff_id: int
    start: datetime
    end: datetime

    model_config = {"from_attributes": True}


class CalendarDayResponse(BaseModel):
    date: date
    count: int
    services: List[str] = Field(default_factory=list)
    appointment_ids: List[int] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class CalendarMonthResponse(BaseModel):
    year: int
    month: int
    label: str
    days: Dict[str, CalendarDayResponse] = Field(default_factory=dict)

    model_config = {"from_attributes": True}
