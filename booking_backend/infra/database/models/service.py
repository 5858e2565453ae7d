"""Service ORM model and the service_staff membership table."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from booking_backend.infra.database.models.base import Base, SoftDeleteMixin, TimestampMixin, _int_pk

service_staff = Table(
    "service_staff",
    Base.metadata,
    Column("service_id", Integer, ForeignKey("services.id", ondelete="CASCADE"), nullable=False),
    Column("staff_id", Integer, ForeignKey("staff.id", ondelete="CASCADE"), nullable=False),
    UniqueConstraint("service_id", "staff_id", name="uq_service_staff_pair"),
)


class Service(Base, TimestampMixin, SoftDeleteMixin):
    """
    A bookable offering. One booking occupies duration_minutes +
    buffer_time_minutes of a staff member's time.
    """

    __tablename__ = "services"
    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="duration_positive"),
        CheckConstraint("buffer_time_minutes >= 0", name="buffer_nonnegative"),
        CheckConstraint("booking_advance_notice_minutes >= 0", name="notice_nonnegative"),
    )

    id: Mapped[int] = _int_pk()
    business_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    """Minor currency units."""

    buffer_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Cooldown after end_time before the same staff member can be booked again."""

    booking_advance_notice_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
