"""Service repository."""
from __future__ import annotations

from booking_backend.infra.database.models.service import Service
from booking_backend.infra.database.repositories.base import TenantRepository


class ServiceRepository(TenantRepository[Service]):
    model = Service
