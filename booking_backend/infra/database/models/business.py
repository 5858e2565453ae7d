"""Business ORM model: the tenant root."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from booking_backend.infra.database.models.base import Base, SoftDeleteMixin, TimestampMixin, _int_pk


class Business(Base, TimestampMixin, SoftDeleteMixin):
    """
    Owns services, staff, customers and appointments (cascade delete).
    Scheduling overrides fall back to SchedulingConfig when NULL.
    """

    __tablename__ = "businesses"

    id: Mapped[int] = _int_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    """IANA zone used to anchor availability rules to calendar dates."""

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    cancellation_window_hours: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    require_confirmation: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
