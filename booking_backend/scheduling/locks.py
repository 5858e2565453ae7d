"""
Scheduling locks: the serialization point for one (business, staff, date).

A lock's guard() both serializes and owns the write transaction, so the
re-check and the insert commit (or roll back) before anyone else for the
same staff member and date gets in. Reads never take the lock.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import hashlib
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Dict, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

from booking_backend.config import SchedulingConfig
from booking_backend.core.exceptions import SlotConflictError

logger = logging.getLogger(__name__)

LockKey = Tuple[int, int, _dt.date]

# PostgreSQL SQLSTATE lock_not_available
_LOCK_NOT_AVAILABLE = "55P03"


def _busy(business_id: int, staff_id: int, day: _dt.date, cause: BaseException) -> SlotConflictError:
    return SlotConflictError(
        "Another booking for this staff member and date is in progress, please retry",
        details={"reason": "lock_timeout", "staff_id": staff_id, "date": day.isoformat()},
        cause=cause,
    )


class SchedulingLock(ABC):
    @abstractmethod
    def guard(
        self,
        uow,
        business_id: int,
        staff_id: int,
        day: _dt.date,
    ):
        """Async context manager yielding the repositories of the locked transaction."""


class InProcessSchedulingLock(SchedulingLock):
    """
    asyncio locks keyed by (business, staff, date). Only correct when this
    process is the sole writer of appointments.
    """

    def __init__(self, timeout_seconds: float = 3.0) -> None:
        self._timeout = timeout_seconds
        self._locks: Dict[LockKey, asyncio.Lock] = {}
        self._holders: Dict[LockKey, int] = {}

    @asynccontextmanager
    async def guard(self, uow, business_id: int, staff_id: int, day: _dt.date) -> AsyncIterator:
        key = (business_id, staff_id, day)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self._timeout)
            except asyncio.TimeoutError as exc:
                logger.warning(
                    "Scheduling lock wait exceeded %.1fs", self._timeout,
                    extra={"business_id": business_id, "staff_id": staff_id},
                )
                raise _busy(business_id, staff_id, day, exc) from exc
            try:
                async with uow.writing() as repos:
                    yield repos
            finally:
                lock.release()
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)


def advisory_key(business_id: int, staff_id: int, day: _dt.date) -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock."""
    digest = hashlib.blake2b(
        f"{business_id}:{staff_id}:{day.isoformat()}".encode(), digest_size=8
    ).digest()
    return int.from_bytes(digest, "big", signed=True)


class AdvisorySchedulingLock(SchedulingLock):
    """
    PostgreSQL transaction-scoped advisory lock. Released by the database on
    commit or rollback; waits at most timeout_seconds (lock_timeout).
    """

    def __init__(self, timeout_seconds: float = 3.0) -> None:
        self._timeout_ms = max(1, int(timeout_seconds * 1000))

    @asynccontextmanager
    async def guard(self, uow, business_id: int, staff_id: int, day: _dt.date) -> AsyncIterator:
        async with uow.writing() as repos:
            session = repos.session
            await session.execute(text(f"SET LOCAL lock_timeout = '{self._timeout_ms}ms'"))
            try:
                await session.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"),
                    {"key": advisory_key(business_id, staff_id, day)},
                )
            except DBAPIError as exc:
                if _sqlstate(exc) == _LOCK_NOT_AVAILABLE:
                    logger.warning(
                        "Advisory lock wait exceeded %dms", self._timeout_ms,
                        extra={"business_id": business_id, "staff_id": staff_id},
                    )
                    raise _busy(business_id, staff_id, day, exc) from exc
                raise
            yield repos


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def build_lock(config: Optional[SchedulingConfig] = None) -> SchedulingLock:
    config = config or SchedulingConfig()
    if config.lock_backend == "memory":
        return InProcessSchedulingLock(config.lock_timeout_seconds)
    return AdvisorySchedulingLock(config.lock_timeout_seconds)
