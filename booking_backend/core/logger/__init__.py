"""
Booking backend logger: console + rotating JSON file.

Usage:
    from booking_backend.core.logger import configure, LoggerConfig

    configure(LoggerConfig(level="DEBUG", log_dir="/var/log/bookings"))
    # or configure() to read LOG_LEVEL, LOG_DIR, ... from the environment

Modules log through logging.getLogger(__name__); pass scheduling context
with ``extra={"staff_id": ..., "appointment_id": ...}`` and the JSON file
handler writes those keys as top-level fields.
"""
from booking_backend.core.logger.config import LoggerConfig
from booking_backend.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from booking_backend.core.logger.setup import configure, get_logger

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
    "get_logger",
]
