"""AvailabilityService: bookable start times from availability windows minus existing bookings."""
from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from typing import List, Optional

from booking_backend.config import SchedulingConfig
from booking_backend.core.exceptions import EntityUnavailable, NotFoundError
from booking_backend.infra.database.unit_of_work import SchedulingRepositories
from booking_backend.scheduling.availability import AvailabilityResolver
from booking_backend.scheduling.clock import Clock, SystemClock
from booking_backend.scheduling.types import Interval

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookableSlot:
    staff_id: int
    start: _dt.datetime
    end: _dt.datetime


class AvailabilityService:
    def __init__(
        self,
        repos: SchedulingRepositories,
        *,
        clock: Optional[Clock] = None,
        config: Optional[SchedulingConfig] = None,
    ) -> None:
        self._repos = repos
        self._clock = clock or SystemClock()
        self._config = config or SchedulingConfig()
        self._resolver = AvailabilityResolver(repos, self._config)

    async def get_bookable_slots(
        self,
        business_id: int,
        service_id: int,
        day: _dt.date,
        staff_id: Optional[int] = None,
        step_minutes: Optional[int] = None,
    ) -> List[BookableSlot]:
        """Return start times on ``day`` that a booking for the service could take.

        1. Load the business and service, and the staff member (or every active
           staff member offering the service)
        2. Materialise each staff member's availability windows for the date
        3. Step through each window; a candidate fits when its footprint
           (duration + buffer) stays inside the window
        4. Drop candidates inside the advance-notice period or overlapping an
           existing booking's footprint

        The result is advisory: proposing a slot re-checks everything under lock.
        """
        business = await self._repos.businesses.get(business_id)
        if business is None:
            raise NotFoundError("Business not found", details={"business_id": business_id})
        service = await self._repos.services.get_for_business(business_id, service_id)
        if service is None:
            raise NotFoundError("Service not found", details={"service_id": service_id})
        if not business.is_active or not service.is_active:
            raise EntityUnavailable(
                "This service is not available for booking",
                details={"service_id": service_id},
            )

        if staff_id is not None:
            staff = await self._repos.staff.get_for_business(business_id, staff_id)
            if staff is None:
                raise NotFoundError("Staff member not found", details={"staff_id": staff_id})
            if not staff.is_active or not await self._repos.staff.offers_service(
                business_id, staff_id, service_id
            ):
                raise EntityUnavailable(
                    "This staff member does not offer the service",
                    details={"staff_id": staff_id, "service_id": service_id},
                )
            staff_list = [staff]
        else:
            staff_list = await self._repos.staff.list_for_service(business_id, service_id)

        step = _dt.timedelta(minutes=step_minutes or self._config.slot_step_minutes)
        duration = _dt.timedelta(minutes=service.duration_minutes)
        occupied = duration + _dt.timedelta(minutes=service.buffer_time_minutes or 0)
        earliest = self._clock.now() + _dt.timedelta(minutes=service.booking_advance_notice_minutes or 0)

        slots: List[BookableSlot] = []
        for staff in staff_list:
            windows = await self._resolver.windows_on(business, staff.id, day)
            if not windows:
                continue
            booked = await self._repos.appointments.list_overlapping(
                business_id, staff.id, windows[0].start, windows[-1].end
            )
            busy = [Interval(b.start_time, b.reserved_until) for b in booked]
            for window in windows:
                cursor = window.start.astimezone(_dt.timezone.utc)
                while cursor + occupied <= window.end:
                    candidate = Interval(cursor, cursor + occupied)
                    if cursor >= earliest and not _overlaps_any(candidate, busy):
                        slots.append(BookableSlot(staff.id, cursor, cursor + duration))
                    cursor += step

        slots.sort(key=lambda s: (s.start, s.staff_id))
        logger.debug(
            "AvailabilityService: %d bookable slot(s) on %s", len(slots), day.isoformat(),
            extra={"business_id": business_id, "service_id": service_id},
        )
        return slots


def _overlaps_any(candidate: Interval, busy: List[Interval]) -> bool:
    return any(candidate.overlaps(b) for b in busy)
