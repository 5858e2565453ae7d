"""
booking_backend.config.scheduling – scheduling engine defaults.

Env vars: SCHEDULING_LOCK_BACKEND, SCHEDULING_LOCK_TIMEOUT_SECONDS,
          SCHEDULING_CANCELLATION_WINDOW_HOURS, SCHEDULING_REQUIRE_CONFIRMATION,
          SCHEDULING_MAX_RANGE_DAYS, SCHEDULING_SLOT_STEP_MINUTES.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

_VALID_LOCK_BACKENDS = frozenset({"advisory", "memory"})


@dataclass(frozen=True)
class SchedulingConfig:
    """
    Engine-wide defaults. Per-business columns (cancellation window,
    confirmation requirement) override the matching fields when set.
    """

    lock_backend: str = "advisory"
    """"advisory" (PostgreSQL pg_advisory_xact_lock) or "memory" (single-process writer)."""

    lock_timeout_seconds: float = 3.0
    """Bounded wait for the per-(staff, date) lock before failing with SlotConflictError."""

    cancellation_window_hours: int = 24
    require_confirmation: bool = True
    """New bookings start as pending when True, confirmed otherwise."""

    max_range_days: int = 62
    """Longest date range accepted by the availability resolver."""

    slot_step_minutes: int = 15
    """Granularity of the bookable-slot listing."""

    def __post_init__(self) -> None:
        if self.lock_backend not in _VALID_LOCK_BACKENDS:
            raise ValueError(
                f"lock_backend must be one of {sorted(_VALID_LOCK_BACKENDS)}, got {self.lock_backend!r}"
            )
        if not isinstance(self.lock_timeout_seconds, (int, float)) or self.lock_timeout_seconds <= 0:
            raise ValueError(f"lock_timeout_seconds must be positive, got {self.lock_timeout_seconds!r}")
        if not isinstance(self.cancellation_window_hours, int) or self.cancellation_window_hours < 0:
            raise ValueError(
                f"cancellation_window_hours must be a non-negative integer, got {self.cancellation_window_hours!r}"
            )
        if not isinstance(self.max_range_days, int) or self.max_range_days < 1:
            raise ValueError(f"max_range_days must be a positive integer, got {self.max_range_days!r}")
        if not isinstance(self.slot_step_minutes, int) or self.slot_step_minutes < 1:
            raise ValueError(f"slot_step_minutes must be a positive integer, got {self.slot_step_minutes!r}")

    @classmethod
    def from_env(cls, **overrides: object) -> SchedulingConfig:
        def _get(attr: str, var: str, default: str) -> str:
            value = overrides.get(attr)
            return str(value) if value is not None else os.environ.get(var, default)

        return cls(
            lock_backend=_get("lock_backend", "SCHEDULING_LOCK_BACKEND", "advisory").strip().lower(),
            lock_timeout_seconds=float(_get("lock_timeout_seconds", "SCHEDULING_LOCK_TIMEOUT_SECONDS", "3")),
            cancellation_window_hours=int(
                _get("cancellation_window_hours", "SCHEDULING_CANCELLATION_WINDOW_HOURS", "24")
            ),
            require_confirmation=_get(
                "require_confirmation", "SCHEDULING_REQUIRE_CONFIRMATION", "true"
            ).strip().lower() in ("1", "true", "yes"),
            max_range_days=int(_get("max_range_days", "SCHEDULING_MAX_RANGE_DAYS", "62")),
            slot_step_minutes=int(_get("slot_step_minutes", "SCHEDULING_SLOT_STEP_MINUTES", "15")),
        )


def load_scheduling_config(**overrides: object) -> SchedulingConfig:
    return SchedulingConfig.from_env(**overrides)
