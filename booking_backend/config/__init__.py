"""
Booking backend config: load from env.

Load from env: load_postgres_config(), load_scheduling_config().
"""
from booking_backend.config.postgres import PostgresConfig, load_postgres_config
from booking_backend.config.scheduling import SchedulingConfig, load_scheduling_config

__all__ = [
    "PostgresConfig",
    "load_postgres_config",
    "SchedulingConfig",
    "load_scheduling_config",
]
