"""Customer repository."""
from __future__ import annotations

from booking_backend.infra.database.models.customer import Customer
from booking_backend.infra.database.repositories.base import TenantRepository


class CustomerRepository(TenantRepository[Customer]):
    model = Customer
