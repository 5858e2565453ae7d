"""Tests for the scheduling locks (in-process and PostgreSQL advisory)."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock

from sqlalchemy.exc import DBAPIError

from booking_backend.config import SchedulingConfig
from booking_backend.core.exceptions import SlotConflictError
from booking_backend.scheduling.locks import (
    AdvisorySchedulingLock,
    InProcessSchedulingLock,
    advisory_key,
    build_lock,
)
from booking_backend.tests.fakes import MONDAY, FakeStore, InMemoryUnitOfWork, at, seed_salon


def _run(coro):
    return asyncio.run(coro)


class _PgError(Exception):
    def __init__(self, sqlstate):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


class _SessionUoW:
    """Unit of work whose writing() yields a namespace around a mocked session."""

    def __init__(self, session):
        self.session = session
        self.entered = 0
        self.failed = 0

    @asynccontextmanager
    async def writing(self):
        self.entered += 1
        try:
            yield SimpleNamespace(session=self.session)
        except BaseException:
            self.failed += 1
            raise


class TestInProcessSchedulingLock(unittest.TestCase):
    def test_holds_lock_until_transaction_ends(self):
        store = FakeStore()
        uow = InMemoryUnitOfWork(store)
        lock = InProcessSchedulingLock(timeout_seconds=1)
        order = []

        async def _worker(name, pause):
            async with lock.guard(uow, 1, 2, MONDAY):
                order.append(f"{name}-in")
                await asyncio.sleep(pause)
                order.append(f"{name}-out")

        async def _both():
            await asyncio.gather(_worker("a", 0.02), _worker("b", 0))

        _run(_both())
        self.assertEqual(order, ["a-in", "a-out", "b-in", "b-out"])
        self.assertEqual(uow.commits, 2)

    def test_different_keys_do_not_block(self):
        uow = InMemoryUnitOfWork(FakeStore())
        lock = InProcessSchedulingLock(timeout_seconds=0.05)

        async def _nested():
            async with lock.guard(uow, 1, 2, MONDAY):
                async with lock.guard(uow, 1, 3, MONDAY):
                    pass
                async with lock.guard(uow, 1, 2, MONDAY + _dt.timedelta(days=1)):
                    pass

        _run(_nested())
        self.assertEqual(uow.commits, 3)

    def test_timeout_raises_retryable_conflict(self):
        uow = InMemoryUnitOfWork(FakeStore())
        lock = InProcessSchedulingLock(timeout_seconds=0.01)

        async def _contended():
            async with lock.guard(uow, 1, 2, MONDAY):
                async with lock.guard(uow, 1, 2, MONDAY):
                    pass

        with self.assertRaises(SlotConflictError) as ctx:
            _run(_contended())
        self.assertEqual(ctx.exception.details["reason"], "lock_timeout")
        self.assertEqual(ctx.exception.http_status, 409)

    def test_error_inside_guard_rolls_back_and_releases(self):
        store = FakeStore()
        world = seed_salon(store)
        uow = InMemoryUnitOfWork(store)
        lock = InProcessSchedulingLock(timeout_seconds=0.05)

        async def _failing():
            async with lock.guard(uow, world.business.id, world.staff.id, MONDAY) as repos:
                await repos.appointments.create({
                    "business_id": world.business.id,
                    "service_id": world.service.id,
                    "staff_id": world.staff.id,
                    "customer_id": world.customer.id,
                    "start_time": at(MONDAY, "09:00"),
                    "end_time": at(MONDAY, "09:30"),
                    "reserved_until": at(MONDAY, "09:30"),
                    "status": "pending",
                })
                raise RuntimeError("boom")

        async def _again():
            async with lock.guard(uow, world.business.id, world.staff.id, MONDAY):
                pass

        with self.assertRaises(RuntimeError):
            _run(_failing())
        self.assertEqual(store.appointments, {})
        self.assertEqual(uow.rollbacks, 1)
        _run(_again())
        self.assertEqual(lock._locks, {})
        self.assertEqual(lock._holders, {})


class TestAdvisorySchedulingLock(unittest.TestCase):
    def test_sets_timeout_and_takes_xact_lock(self):
        session = AsyncMock()
        uow = _SessionUoW(session)
        lock = AdvisorySchedulingLock(timeout_seconds=2.5)

        async def _use():
            async with lock.guard(uow, 1, 2, MONDAY) as repos:
                self.assertIs(repos.session, session)

        _run(_use())
        self.assertEqual(session.execute.await_count, 2)
        first_sql = str(session.execute.await_args_list[0].args[0])
        self.assertIn("lock_timeout = '2500ms'", first_sql)
        second = session.execute.await_args_list[1]
        self.assertIn("pg_advisory_xact_lock", str(second.args[0]))
        self.assertEqual(second.args[1], {"key": advisory_key(1, 2, MONDAY)})

    def test_lock_not_available_becomes_slot_conflict(self):
        session = AsyncMock()
        session.execute.side_effect = [None, DBAPIError("SELECT pg_advisory_xact_lock", {}, _PgError("55P03"))]
        uow = _SessionUoW(session)

        async def _use():
            async with AdvisorySchedulingLock(0.1).guard(uow, 1, 2, MONDAY):
                self.fail("guard body must not run")

        with self.assertRaises(SlotConflictError) as ctx:
            _run(_use())
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(uow.failed, 1)

    def test_other_database_errors_propagate(self):
        session = AsyncMock()
        session.execute.side_effect = [None, DBAPIError("SELECT", {}, _PgError("57014"))]

        async def _use():
            async with AdvisorySchedulingLock(0.1).guard(_SessionUoW(session), 1, 2, MONDAY):
                pass

        with self.assertRaises(DBAPIError):
            _run(_use())


class TestAdvisoryKey(unittest.TestCase):
    def test_stable_and_in_bigint_range(self):
        key = advisory_key(1, 2, MONDAY)
        self.assertEqual(key, advisory_key(1, 2, MONDAY))
        self.assertTrue(-(2 ** 63) <= key < 2 ** 63)

    def test_differs_by_component(self):
        keys = {
            advisory_key(1, 2, MONDAY),
            advisory_key(1, 3, MONDAY),
            advisory_key(2, 2, MONDAY),
            advisory_key(1, 2, MONDAY + _dt.timedelta(days=1)),
        }
        self.assertEqual(len(keys), 4)


class TestBuildLock(unittest.TestCase):
    def test_selects_backend(self):
        self.assertIsInstance(build_lock(SchedulingConfig(lock_backend="memory")), InProcessSchedulingLock)
        self.assertIsInstance(build_lock(SchedulingConfig()), AdvisorySchedulingLock)


if __name__ == "__main__":
    unittest.main()
