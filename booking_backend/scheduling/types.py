"""Core data structures for the scheduling layer."""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from booking_backend.core.exceptions import InvalidTransitionError, ValidationError
from booking_backend.infra.database.models.appointment import AppointmentStatus


@dataclass(frozen=True, order=True)
class Interval:
    """Half-open time interval [start, end) between timezone-aware datetimes."""

    start: _dt.datetime
    end: _dt.datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Interval end {self.end} must be after start {self.start}")

    @property
    def duration(self) -> _dt.timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    """Union of intervals, sorted. Touching intervals ([9,12) and [12,15)) are joined."""
    merged: List[Interval] = []
    for current in sorted(intervals):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            if current.end > last.end:
                merged[-1] = Interval(last.start, current.end)
        else:
            merged.append(current)
    return merged


def footprint(start: _dt.datetime, duration_minutes: int, buffer_minutes: int = 0) -> Interval:
    """Staff time occupied by a booking: [start, start + duration + buffer).

    Elapsed-time arithmetic: the end is computed in UTC so a wall-clock shift
    (DST) inside the booking does not stretch or shrink it.
    """
    start = start.astimezone(_dt.timezone.utc)
    return Interval(start, start + _dt.timedelta(minutes=duration_minutes + (buffer_minutes or 0)))


def day_of_week(day: _dt.date) -> int:
    """0 = Sunday ... 6 = Saturday (the availability table's numbering)."""
    return (day.weekday() + 1) % 7


def require_aware(value: _dt.datetime, field: str = "start") -> _dt.datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValidationError(
            f"{field} must include a timezone offset",
            details={"field": field, "value": value.isoformat()},
        )
    return value


class TransitionAction(str, Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    MARK_NO_SHOW = "mark_no_show"


# cancelled, completed and no_show are terminal
TRANSITIONS: Dict[AppointmentStatus, Dict[TransitionAction, AppointmentStatus]] = {
    AppointmentStatus.PENDING: {
        TransitionAction.CONFIRM: AppointmentStatus.CONFIRMED,
        TransitionAction.CANCEL: AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.CONFIRMED: {
        TransitionAction.CANCEL: AppointmentStatus.CANCELLED,
        TransitionAction.COMPLETE: AppointmentStatus.COMPLETED,
        TransitionAction.MARK_NO_SHOW: AppointmentStatus.NO_SHOW,
    },
}


def next_status(current: str, action: TransitionAction) -> AppointmentStatus:
    target = TRANSITIONS.get(AppointmentStatus(current), {}).get(action)
    if target is None:
        raise InvalidTransitionError(
            f"Cannot {action.value.replace('_', ' ')} an appointment that is {current}",
            details={"status": current, "action": action.value},
        )
    return target


@dataclass
class BookingRequest:
    """Inbound booking request, already authenticated and validated by the caller."""

    service_id: int
    customer_id: int
    start: _dt.datetime
    staff_id: Optional[int] = None
    """None lets the engine pick any staff member offering the service."""

    booking_source: str = "online"
    notes: Optional[str] = None
