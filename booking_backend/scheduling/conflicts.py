"""ConflictChecker: footprint overlap against a staff member's live bookings."""
from __future__ import annotations

import datetime as _dt
import logging
from typing import TYPE_CHECKING, List, Optional

from booking_backend.infra.database.models.appointment import AppointmentStatus
from booking_backend.scheduling.types import Interval

if TYPE_CHECKING:
    from booking_backend.infra.database.unit_of_work import SchedulingRepositories

logger = logging.getLogger(__name__)


class ConflictChecker:
    """
    A candidate occupies [start, end + buffer). An existing booking occupies
    [start_time, reserved_until). Any non-cancelled overlap is a conflict;
    back-to-back footprints are not.

    Inside the booking transaction this must be called with the repositories
    of that transaction, so the check and the insert see the same data.
    """

    def __init__(self, repos: "SchedulingRepositories") -> None:
        self._repos = repos

    async def find_conflicts(
        self,
        business_id: int,
        staff_id: int,
        candidate_start: _dt.datetime,
        candidate_end: _dt.datetime,
        buffer_minutes: int = 0,
        *,
        exclude_id: Optional[int] = None,
    ) -> List[int]:
        candidate = Interval(
            candidate_start,
            candidate_end.astimezone(_dt.timezone.utc) + _dt.timedelta(minutes=buffer_minutes or 0),
        )
        rows = await self._repos.appointments.list_overlapping(
            business_id, staff_id, candidate.start, candidate.end, exclude_id=exclude_id
        )
        conflicts = [
            row.id
            for row in rows
            if row.status != AppointmentStatus.CANCELLED.value
            and candidate.overlaps(Interval(row.start_time, row.reserved_until))
        ]
        if conflicts:
            logger.debug(
                "Candidate %s-%s overlaps %d booking(s)",
                candidate.start.isoformat(), candidate.end.isoformat(), len(conflicts),
                extra={"business_id": business_id, "staff_id": staff_id},
            )
        return conflicts

    async def has_conflict(
        self,
        business_id: int,
        staff_id: int,
        candidate_start: _dt.datetime,
        candidate_end: _dt.datetime,
        buffer_minutes: int = 0,
        *,
        exclude_id: Optional[int] = None,
    ) -> bool:
        found = await self.find_conflicts(
            business_id, staff_id, candidate_start, candidate_end, buffer_minutes,
            exclude_id=exclude_id,
        )
        return bool(found)
