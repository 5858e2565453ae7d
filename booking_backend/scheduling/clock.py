"""Clock abstraction: the engine never calls datetime.now() directly."""
from __future__ import annotations

import datetime as _dt
from typing import Protocol


class Clock(Protocol):
    def now(self) -> _dt.datetime: ...


class SystemClock:
    def now(self) -> _dt.datetime:
        return _dt.datetime.now(_dt.timezone.utc)


class FixedClock:
    """Deterministic clock for tests and replays."""

    def __init__(self, at: _dt.datetime) -> None:
        if at.tzinfo is None:
            raise ValueError("FixedClock needs a timezone-aware datetime")
        self._at = at

    def now(self) -> _dt.datetime:
        return self._at

    def advance(self, **delta: float) -> None:
        self._at = self._at + _dt.timedelta(**delta)
