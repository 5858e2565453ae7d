"""
Scheduling core: availability, conflicts, policy, locks and the engine.

Usage:
    engine = SchedulingEngine(SqlAlchemyUnitOfWork(session_factory), config=load_scheduling_config())
    appt = await engine.propose_booking(business_id, BookingRequest(service_id=1, customer_id=7, start=start))
"""
from booking_backend.scheduling.availability import AvailabilityResolver, business_zone, local_date
from booking_backend.scheduling.clock import Clock, FixedClock, SystemClock
from booking_backend.scheduling.conflicts import ConflictChecker
from booking_backend.scheduling.engine import SchedulingEngine
from booking_backend.scheduling.locks import (
    AdvisorySchedulingLock,
    InProcessSchedulingLock,
    SchedulingLock,
    build_lock,
)
from booking_backend.scheduling.policy import BookingPolicy
from booking_backend.scheduling.types import (
    BookingRequest,
    Interval,
    TransitionAction,
    footprint,
    merge_intervals,
    next_status,
)

__all__ = [
    "AvailabilityResolver",
    "business_zone",
    "local_date",
    "Clock",
    "FixedClock",
    "SystemClock",
    "ConflictChecker",
    "SchedulingEngine",
    "SchedulingLock",
    "InProcessSchedulingLock",
    "AdvisorySchedulingLock",
    "build_lock",
    "BookingPolicy",
    "BookingRequest",
    "Interval",
    "TransitionAction",
    "footprint",
    "merge_intervals",
    "next_status",
]
