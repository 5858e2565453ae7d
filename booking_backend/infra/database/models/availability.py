"""Weekly availability rules and time-off exceptions for staff."""
import datetime as _dt
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column

from booking_backend.infra.database.models.base import Base, SoftDeleteMixin, TimestampMixin, _int_pk


class AvailabilityRule(Base, TimestampMixin):
    """
    Recurring weekly window. day_of_week: 0 = Sunday ... 6 = Saturday.
    Several rows per day are split shifts; overlapping rows are merged when read.
    """

    __tablename__ = "staff_availability"
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="day_of_week_range"),
        CheckConstraint("start_time < end_time", name="start_before_end"),
        Index("ix_staff_availability_staff_day", "staff_id", "day_of_week"),
    )

    id: Mapped[int] = _int_pk()
    staff_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[_dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[_dt.time] = mapped_column(Time, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class TimeOff(Base, TimestampMixin, SoftDeleteMixin):
    """Inclusive date range; only approved rows block availability."""

    __tablename__ = "staff_time_off"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="start_not_after_end"),
        Index("ix_staff_time_off_staff_dates", "staff_id", "start_date", "end_date"),
    )

    id: Mapped[int] = _int_pk()
    staff_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False
    )
    start_date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[_dt.date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
