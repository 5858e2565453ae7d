"""Appointment ORM model and its status vocabulary."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from booking_backend.infra.database.models.base import Base, SoftDeleteMixin, TimestampMixin, _int_pk


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Appointment(Base, TimestampMixin, SoftDeleteMixin):
    """
    One booked unit of staff time.

    end_time = start_time + service duration. The service buffer is reserved
    separately: reserved_until = end_time + buffer, captured at booking time,
    so [start_time, reserved_until) is the footprint used for conflict checks.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="start_before_end"),
        CheckConstraint("end_time <= reserved_until", name="reserved_covers_end"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')",
            name="status_known",
        ),
        Index("ix_appointments_staff_start", "staff_id", "start_time"),
        Index("ix_appointments_business_start", "business_id", "start_time"),
    )

    id: Mapped[int] = _int_pk()
    business_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False
    )
    # NULL = "any staff" / staff removed later
    staff_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("staff.id", ondelete="SET NULL"), nullable=True
    )
    customer_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False
    )

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    reserved_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=AppointmentStatus.PENDING.value
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    booking_source: Mapped[str] = mapped_column(String(50), nullable=False, default="online")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
