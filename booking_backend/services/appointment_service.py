"""AppointmentService: read-side listings of a business's appointments."""
from __future__ import annotations

import calendar
import datetime as _dt
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from booking_backend.core.exceptions import InvalidRangeError, NotFoundError, ValidationError
from booking_backend.infra.database.models.appointment import Appointment, AppointmentStatus
from booking_backend.infra.database.unit_of_work import SchedulingRepositories
from booking_backend.scheduling.availability import business_zone

logger = logging.getLogger(__name__)

_VALID_STATUSES = frozenset(s.value for s in AppointmentStatus)


@dataclass
class CalendarDay:
    date: _dt.date
    count: int = 0
    services: List[str] = field(default_factory=list)
    appointment_ids: List[int] = field(default_factory=list)


@dataclass
class CalendarMonth:
    year: int
    month: int
    label: str
    days: Dict[str, CalendarDay] = field(default_factory=OrderedDict)
    """Keyed by ISO date in the business timezone; only dates with bookings."""


class AppointmentService:
    def __init__(self, repos: SchedulingRepositories) -> None:
        self._repos = repos

    async def list_appointments(
        self,
        business_id: int,
        *,
        staff_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        status: Optional[str] = None,
        start_from: Optional[_dt.datetime] = None,
        start_to: Optional[_dt.datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Appointment]:
        """Appointments of one business ordered by start time; every filter is optional."""
        if status is not None and status not in _VALID_STATUSES:
            raise ValidationError(
                f"Unknown status {status!r}",
                details={"allowed": sorted(_VALID_STATUSES)},
            )
        if start_from is not None and start_to is not None and start_to < start_from:
            raise InvalidRangeError(
                "start_to is before start_from",
                details={"start_from": start_from.isoformat(), "start_to": start_to.isoformat()},
            )
        return await self._repos.appointments.list_filtered(
            business_id,
            staff_id=staff_id,
            customer_id=customer_id,
            status=status,
            start_from=start_from,
            start_to=start_to,
            skip=skip,
            limit=limit,
        )

    async def calendar_month(self, business_id: int, year: int, month: int) -> CalendarMonth:
        """Non-cancelled appointments of a month grouped by local date, with a count per day."""
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12", details={"month": month})
        if year < 1 or (year, month) >= (_dt.MAXYEAR, 12):
            # the month after must still be a representable date
            raise ValidationError(
                "year/month is outside the supported calendar range",
                details={"year": year, "month": month},
            )
        business = await self._repos.businesses.get(business_id)
        if business is None:
            raise NotFoundError("Business not found", details={"business_id": business_id})

        tz = business_zone(business)
        month_start = _dt.datetime(year, month, 1, tzinfo=tz)
        next_month = _dt.datetime(year + month // 12, month % 12 + 1, 1, tzinfo=tz)
        rows = await self._repos.appointments.list_filtered(
            business_id,
            start_from=month_start,
            start_to=next_month,
            include_cancelled=False,
            limit=None,
        )

        service_names: Dict[int, str] = {}
        out = CalendarMonth(year=year, month=month, label=f"{calendar.month_name[month]} {year}")
        for appt in rows:
            if appt.start_time >= next_month:
                continue
            if appt.service_id not in service_names:
                svc = await self._repos.services.get_for_business(business_id, appt.service_id)
                service_names[appt.service_id] = svc.name if svc is not None else "-"
            day = appt.start_time.astimezone(tz).date()
            entry = out.days.setdefault(day.isoformat(), CalendarDay(date=day))
            entry.count += 1
            entry.services.append(service_names[appt.service_id])
            entry.appointment_ids.append(appt.id)

        logger.debug(
            "AppointmentService: %d appointment(s) in %s",
            len(rows), out.label,
            extra={"business_id": business_id},
        )
        return out
