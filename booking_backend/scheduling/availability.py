"""AvailabilityResolver: weekly rules minus approved time-off, materialised per date."""
from __future__ import annotations

import datetime as _dt
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking_backend.config import SchedulingConfig
from booking_backend.core.exceptions import ConfigurationError, InvalidRangeError, NotFoundError
from booking_backend.scheduling.types import Interval, day_of_week, merge_intervals

if TYPE_CHECKING:
    from booking_backend.infra.database.models import Business
    from booking_backend.infra.database.unit_of_work import SchedulingRepositories

logger = logging.getLogger(__name__)


def business_zone(business: "Business") -> ZoneInfo:
    try:
        return ZoneInfo(business.timezone or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(
            f"Unknown timezone {business.timezone!r}",
            details={"business_id": business.id},
            cause=exc,
        ) from exc


def local_date(moment: _dt.datetime, business: "Business") -> _dt.date:
    return moment.astimezone(business_zone(business)).date()


class AvailabilityResolver:
    """
    Turns a staff member's recurring weekly rules into concrete windows.

    For every date in the (inclusive) range: rules for that weekday with
    is_available set are anchored to the date in the business timezone and
    merged; a date touched by any approved time-off yields nothing. Bookings
    are NOT subtracted here; see ConflictChecker.
    """

    def __init__(
        self,
        repos: "SchedulingRepositories",
        config: Optional[SchedulingConfig] = None,
    ) -> None:
        self._repos = repos
        self._config = config or SchedulingConfig()

    async def get_free_intervals(
        self,
        business_id: int,
        staff_id: int,
        range_start: _dt.date,
        range_end: _dt.date,
    ) -> List[Interval]:
        self._check_range(range_start, range_end)
        business = await self._repos.businesses.get(business_id)
        if business is None:
            raise NotFoundError("Business not found", details={"business_id": business_id})
        staff = await self._repos.staff.get_for_business(business_id, staff_id)
        if staff is None:
            raise NotFoundError("Staff member not found", details={"staff_id": staff_id})
        return await self.intervals_for(business, staff_id, range_start, range_end)

    async def intervals_for(
        self,
        business: "Business",
        staff_id: int,
        range_start: _dt.date,
        range_end: _dt.date,
    ) -> List[Interval]:
        """Same as get_free_intervals for an already loaded business and staff id."""
        self._check_range(range_start, range_end)
        tz = business_zone(business)
        rules = await self._repos.availability.list_for_staff(business.id, staff_id)
        time_off = await self._repos.time_off.list_approved(
            business.id, staff_id, range_start, range_end
        )

        by_weekday: Dict[int, List] = defaultdict(list)
        for rule in rules:
            if not rule.is_available:
                continue
            if rule.start_time >= rule.end_time:
                logger.warning(
                    "Skipping availability rule %s with start %s not before end %s",
                    rule.id, rule.start_time, rule.end_time,
                    extra={"business_id": business.id, "staff_id": staff_id},
                )
                continue
            by_weekday[rule.day_of_week].append(rule)

        out: List[Interval] = []
        day = range_start
        while day <= range_end:
            blocked = any(t.start_date <= day <= t.end_date for t in time_off)
            if not blocked:
                windows = [
                    Interval(
                        _dt.datetime.combine(day, rule.start_time, tzinfo=tz),
                        _dt.datetime.combine(day, rule.end_time, tzinfo=tz),
                    )
                    for rule in by_weekday.get(day_of_week(day), [])
                ]
                out.extend(merge_intervals(windows))
            day += _dt.timedelta(days=1)
        return out

    async def windows_on(
        self,
        business: "Business",
        staff_id: int,
        day: _dt.date,
    ) -> List[Interval]:
        return await self.intervals_for(business, staff_id, day, day)

    def _check_range(self, range_start: _dt.date, range_end: _dt.date) -> None:
        if range_end < range_start:
            raise InvalidRangeError(
                "Range end is before range start",
                details={"start": range_start.isoformat(), "end": range_end.isoformat()},
            )
        days = (range_end - range_start).days + 1
        if days > self._config.max_range_days:
            raise InvalidRangeError(
                f"Range spans {days} days; the maximum is {self._config.max_range_days}",
                details={"days": days, "max_days": self._config.max_range_days},
            )
