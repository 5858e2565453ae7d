"""SchedulingEngine tests against the in-memory unit of work.

Covers proposal (explicit and auto-assigned staff), the locked re-check under
concurrency, buffers, notice, containment, status transitions and
cancellation windows.
"""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest
from zoneinfo import ZoneInfo

from booking_backend.config import SchedulingConfig
from booking_backend.core.exceptions import (
    CancellationWindowPassed,
    EntityUnavailable,
    InsufficientNotice,
    InvalidRangeError,
    InvalidTransitionError,
    NotFoundError,
    OutsideAvailability,
    SlotConflictError,
    ValidationError,
)
from booking_backend.scheduling import (
    BookingRequest,
    FixedClock,
    InProcessSchedulingLock,
    Interval,
    SchedulingEngine,
)
from booking_backend.tests.fakes import (
    MONDAY,
    FakeStore,
    InMemoryUnitOfWork,
    NoLock,
    at,
    seed_salon,
)


def _run(coro):
    return asyncio.run(coro)


def _engine(store, *, now=None, lock=None, config=None):
    config = config or SchedulingConfig(lock_backend="memory")
    return SchedulingEngine(
        InMemoryUnitOfWork(store),
        lock=lock or InProcessSchedulingLock(config.lock_timeout_seconds),
        clock=FixedClock(now or at(MONDAY - _dt.timedelta(days=2), "08:00")),
        config=config,
    )


class _EngineCase(unittest.TestCase):
    seed_kwargs: dict = {}

    def setUp(self):
        self.store = FakeStore()
        self.world = seed_salon(self.store, **self.seed_kwargs)
        self.engine = _engine(self.store)

    def _request(self, hhmm, *, staff_id="default", day=MONDAY, tz=_dt.timezone.utc, **kwargs):
        if staff_id == "default":
            staff_id = self.world.staff.id
        return BookingRequest(
            service_id=self.world.service.id,
            customer_id=self.world.customer.id,
            start=at(day, hhmm, tz),
            staff_id=staff_id,
            **kwargs,
        )

    def _propose(self, hhmm, engine=None, **kwargs):
        return _run((engine or self.engine).propose_booking(
            self.world.business.id, self._request(hhmm, **kwargs)
        ))


class TestProposeBooking(_EngineCase):
    seed_kwargs = {"duration": 30, "buffer": 10}

    def test_creates_pending_appointment_with_footprint(self):
        appt = self._propose("09:00", notes="first visit")
        self.assertEqual(appt.status, "pending")
        self.assertEqual(appt.end_time, at(MONDAY, "09:30"))
        self.assertEqual(appt.reserved_until, at(MONDAY, "09:40"))
        self.assertEqual(appt.price, self.world.service.price)
        self.assertEqual(appt.notes, "first visit")
        self.assertEqual(appt.booking_source, "online")
        self.assertIn(appt.id, self.store.appointments)

    def test_confirmed_when_business_skips_confirmation(self):
        self.world.business.require_confirmation = False
        self.assertEqual(self._propose("09:00").status, "confirmed")

    def test_buffer_blocks_next_start_until_it_ends(self):
        self._propose("09:00")
        with self.assertRaises(SlotConflictError) as ctx:
            self._propose("09:35")
        self.assertTrue(ctx.exception.retryable)
        self.assertEqual(len(ctx.exception.conflicting_ids), 1)
        appt = self._propose("09:40")
        self.assertEqual(appt.start_time, at(MONDAY, "09:40"))

    def test_cancelled_booking_frees_the_slot(self):
        first = self._propose("09:00")
        _run(self.engine.cancel_booking(self.world.business.id, first.id))
        self.assertEqual(self._propose("09:00").start_time, at(MONDAY, "09:00"))

    def test_containment(self):
        # 16:20 + 30 + 10 ends exactly at 17:00
        self._propose("16:20")
        with self.assertRaises(OutsideAvailability):
            self._propose("16:30", day=MONDAY + _dt.timedelta(days=1))
        with self.assertRaises(OutsideAvailability):
            self._propose("08:30", day=MONDAY + _dt.timedelta(days=1))

    def test_weekend_is_outside_availability(self):
        with self.assertRaises(OutsideAvailability):
            self._propose("10:00", day=MONDAY - _dt.timedelta(days=1))

    def test_naive_start_is_rejected(self):
        request = self._request("09:00")
        request.start = request.start.replace(tzinfo=None)
        with self.assertRaises(ValidationError):
            _run(self.engine.propose_booking(self.world.business.id, request))

    def test_unknown_entities_are_not_found(self):
        with self.assertRaises(NotFoundError):
            self._propose("09:00", staff_id=9999)
        other = seed_salon(self.store)
        with self.assertRaises(NotFoundError):
            _run(self.engine.propose_booking(other.business.id, self._request("09:00")))
        with self.assertRaises(NotFoundError):
            _run(self.engine.propose_booking(9999, self._request("09:00")))

    def test_failed_proposal_writes_nothing(self):
        with self.assertRaises(OutsideAvailability):
            self._propose("20:00")
        self.assertEqual(self.store.appointments, {})


class TestAdvanceNotice(_EngineCase):
    seed_kwargs = {"notice": 60}

    def setUp(self):
        super().setUp()
        self.engine = _engine(self.store, now=at(MONDAY, "10:00"))

    def test_thirty_minutes_ahead_is_too_soon(self):
        with self.assertRaises(InsufficientNotice):
            self._propose("10:30")

    def test_sixty_one_minutes_ahead_is_accepted(self):
        self.assertEqual(self._propose("11:01").start_time, at(MONDAY, "11:01"))


class TestAutoAssign(_EngineCase):
    seed_kwargs = {"staff_count": 3}

    def test_lowest_id_free_staff_is_chosen(self):
        appt = self._propose("09:00", staff_id=None)
        self.assertEqual(appt.staff_id, self.world.all_staff[0].id)

    def test_busy_staff_is_skipped(self):
        first = self._propose("09:00", staff_id=None)
        second = self._propose("09:00", staff_id=None)
        self.assertNotEqual(first.staff_id, second.staff_id)
        self.assertEqual(second.staff_id, self.world.all_staff[1].id)

    def test_all_busy_is_slot_conflict(self):
        for _ in range(3):
            self._propose("09:00", staff_id=None)
        with self.assertRaises(SlotConflictError):
            self._propose("09:00", staff_id=None)

    def test_staff_failing_policy_is_skipped(self):
        first = self.world.all_staff[0]
        self.store.add_time_off(first.id, MONDAY, MONDAY)
        appt = self._propose("09:00", staff_id=None)
        self.assertEqual(appt.staff_id, self.world.all_staff[1].id)

    def test_nobody_passing_policy_raises_first_violation(self):
        with self.assertRaises(OutsideAvailability):
            self._propose("20:00", staff_id=None)

    def test_no_staff_offers_service(self):
        self.store.service_staff.clear()
        with self.assertRaises(EntityUnavailable):
            self._propose("09:00", staff_id=None)

    def test_falls_through_when_slot_taken_after_advisory_read(self):
        engine = _engine(self.store)
        first, second = self.world.all_staff[0], self.world.all_staff[1]
        real_reserve = engine._reserve

        async def _reserve(business_id, staff_id, *args):
            if staff_id == first.id:
                # another request grabs the first staff member in between
                self.store.add_appointment(
                    business_id, self.world.service, first.id, self.world.customer.id, at(MONDAY, "09:00")
                )
            return await real_reserve(business_id, staff_id, *args)

        engine._reserve = _reserve
        appt = self._propose("09:00", engine=engine, staff_id=None)
        self.assertEqual(appt.staff_id, second.id)


class TestConcurrentProposals(_EngineCase):
    def _gather(self, engine, n):
        async def _all():
            return await asyncio.gather(
                *[engine.propose_booking(self.world.business.id, self._request("09:00")) for _ in range(n)],
                return_exceptions=True,
            )

        return _run(_all())

    def test_exactly_one_of_many_wins(self):
        results = self._gather(self.engine, 8)
        wins = [r for r in results if not isinstance(r, BaseException)]
        conflicts = [r for r in results if isinstance(r, SlotConflictError)]
        self.assertEqual(len(wins), 1)
        self.assertEqual(len(conflicts), 7)
        self.assertEqual(len(self.store.appointments), 1)

    def test_overlapping_but_different_starts_serialize(self):
        async def _both():
            return await asyncio.gather(
                self.engine.propose_booking(self.world.business.id, self._request("09:00")),
                self.engine.propose_booking(self.world.business.id, self._request("09:15")),
                return_exceptions=True,
            )

        results = _run(_both())
        self.assertEqual(sum(1 for r in results if isinstance(r, SlotConflictError)), 1)
        self.assertEqual(len(self.store.appointments), 1)

    def test_without_serialization_the_race_double_books(self):
        # guards the fakes: the race must be observable when nothing serializes it
        results = self._gather(_engine(self.store, lock=NoLock()), 3)
        self.assertTrue(all(not isinstance(r, BaseException) for r in results))
        self.assertEqual(len(self.store.appointments), 3)

    def test_lock_wait_timeout_is_retryable_conflict(self):
        lock = InProcessSchedulingLock(timeout_seconds=0.05)
        engine = _engine(self.store, lock=lock)
        uow = InMemoryUnitOfWork(self.store)

        async def _scenario():
            async with lock.guard(uow, self.world.business.id, self.world.staff.id, MONDAY):
                await engine.propose_booking(self.world.business.id, self._request("11:00"))

        with self.assertRaises(SlotConflictError) as ctx:
            _run(_scenario())
        self.assertEqual(ctx.exception.details["reason"], "lock_timeout")
        self.assertTrue(ctx.exception.retryable)


class TestTransitions(_EngineCase):
    def setUp(self):
        super().setUp()
        self.appt = self._propose("10:00")

    def _act(self, name, *args, **kwargs):
        return _run(getattr(self.engine, name)(self.world.business.id, self.appt.id, *args, **kwargs))

    def test_confirm_then_complete(self):
        self.assertEqual(self._act("confirm_booking").status, "confirmed")
        self.assertEqual(self._act("complete_booking").status, "completed")

    def test_confirm_then_no_show(self):
        self._act("confirm_booking")
        self.assertEqual(self._act("mark_no_show").status, "no_show")

    def test_pending_cannot_complete(self):
        with self.assertRaises(InvalidTransitionError):
            self._act("complete_booking")
        self.assertEqual(self.appt.status, "pending")

    def test_terminal_states_reject_further_changes(self):
        self._act("cancel_booking")
        for name in ("confirm_booking", "complete_booking", "mark_no_show", "cancel_booking"):
            with self.subTest(action=name):
                with self.assertRaises(InvalidTransitionError):
                    self._act(name)

    def test_other_business_sees_not_found(self):
        other = seed_salon(self.store)
        with self.assertRaises(NotFoundError):
            _run(self.engine.confirm_booking(other.business.id, self.appt.id))


class TestCancellation(_EngineCase):
    def setUp(self):
        super().setUp()
        self.appt = self._propose("10:00")
        self.start = at(MONDAY, "10:00")

    def _cancel(self, now, reason=None):
        return _run(self.engine.cancel_booking(
            self.world.business.id, self.appt.id, reason=reason, now=now
        ))

    def test_cancel_a_day_and_a_minute_ahead(self):
        appt = self._cancel(self.start - _dt.timedelta(hours=24, minutes=1), reason="sick")
        self.assertEqual(appt.status, "cancelled")
        self.assertEqual(appt.cancellation_reason, "sick")

    def test_cancel_at_exact_window_boundary(self):
        self.assertEqual(self._cancel(self.start - _dt.timedelta(hours=24)).status, "cancelled")

    def test_cancel_inside_window_is_rejected(self):
        with self.assertRaises(CancellationWindowPassed):
            self._cancel(self.start - _dt.timedelta(hours=23, minutes=59))
        self.assertEqual(self.appt.status, "pending")

    def test_business_window_override(self):
        self.world.business.cancellation_window_hours = 1
        self.assertEqual(self._cancel(self.start - _dt.timedelta(hours=2)).status, "cancelled")

    def test_clock_is_used_when_now_is_omitted(self):
        engine = _engine(self.store, now=self.start - _dt.timedelta(hours=2))
        with self.assertRaises(CancellationWindowPassed):
            _run(engine.cancel_booking(self.world.business.id, self.appt.id))


class TestDaylightSaving(_EngineCase):
    seed_kwargs = {"timezone": "America/New_York", "duration": 60, "buffer": 15}

    def test_footprint_is_elapsed_time_across_fall_back(self):
        # clocks in New York go from 02:00 EDT back to 01:00 EST on 3 Nov 2030
        sunday = _dt.date(2030, 11, 3)
        self.store.add_rule(self.world.staff.id, 0, "00:00", "06:00")
        appt = self._propose("01:30", day=sunday, tz=ZoneInfo("America/New_York"))

        self.assertEqual(appt.end_time.timestamp() - appt.start_time.timestamp(), 3600)
        self.assertEqual(appt.reserved_until.timestamp() - appt.end_time.timestamp(), 900)
        self.assertEqual(appt.start_time, _dt.datetime(2030, 11, 3, 5, 30, tzinfo=_dt.timezone.utc))


class TestQueries(_EngineCase):
    def test_free_intervals_delegate_to_resolver(self):
        intervals = _run(self.engine.get_free_intervals(
            self.world.business.id, self.world.staff.id, MONDAY, MONDAY
        ))
        self.assertEqual([(i.start, i.end) for i in intervals], [(at(MONDAY, "09:00"), at(MONDAY, "17:00"))])

    def test_booking_does_not_change_free_intervals(self):
        before = _run(self.engine.get_free_intervals(
            self.world.business.id, self.world.staff.id, MONDAY, MONDAY
        ))
        appt = self._propose("10:00")
        after = _run(self.engine.get_free_intervals(
            self.world.business.id, self.world.staff.id, MONDAY, MONDAY
        ))
        self.assertEqual(before, after)
        booked = Interval(appt.start_time, appt.reserved_until)
        self.assertTrue(any(window.contains(booked) for window in after))

    def test_find_conflicts(self):
        appt = self._propose("10:00")
        found = _run(self.engine.find_conflicts(
            self.world.business.id, self.world.staff.id, at(MONDAY, "10:15"), at(MONDAY, "10:45")
        ))
        self.assertEqual(found, [appt.id])

    def test_find_conflicts_rejects_inverted_range(self):
        with self.assertRaises(InvalidRangeError):
            _run(self.engine.find_conflicts(
                self.world.business.id, self.world.staff.id, at(MONDAY, "11:00"), at(MONDAY, "10:00")
            ))


if __name__ == "__main__":
    unittest.main()
