"""Unit tests for AvailabilityService.get_bookable_slots."""
from __future__ import annotations

import asyncio
import datetime as _dt
import unittest

from booking_backend.config import SchedulingConfig
from booking_backend.core.exceptions import EntityUnavailable, NotFoundError
from booking_backend.scheduling.clock import FixedClock
from booking_backend.services.availability_service import AvailabilityService, BookableSlot
from booking_backend.tests.fakes import MONDAY, FakeStore, at, fake_repositories, seed_salon


def _run(coro):
    return asyncio.run(coro)


class TestBookableSlots(unittest.TestCase):
    def setUp(self):
        self.store = FakeStore()
        self.world = seed_salon(self.store, duration=30, buffer=10, hours=("09:00", "11:00"))
        self.svc = AvailabilityService(
            fake_repositories(self.store),
            clock=FixedClock(at(MONDAY - _dt.timedelta(days=1), "12:00")),
            config=SchedulingConfig(slot_step_minutes=20),
        )

    def _starts(self, **kwargs):
        slots = _run(self.svc.get_bookable_slots(
            self.world.business.id, self.world.service.id, MONDAY, **kwargs
        ))
        return [s.start.strftime("%H:%M") for s in slots]

    def test_steps_through_window_keeping_footprint_inside(self):
        # last start whose 40 minute footprint ends by 11:00 is 10:20
        self.assertEqual(self._starts(), ["09:00", "09:20", "09:40", "10:00", "10:20"])

    def test_slot_end_excludes_buffer(self):
        slots = _run(self.svc.get_bookable_slots(self.world.business.id, self.world.service.id, MONDAY))
        self.assertEqual(slots[0], BookableSlot(self.world.staff.id, at(MONDAY, "09:00"), at(MONDAY, "09:30")))

    def test_existing_booking_footprint_is_removed(self):
        self.store.add_appointment(
            self.world.business.id, self.world.service, self.world.staff.id,
            self.world.customer.id, at(MONDAY, "09:40"),
        )
        # booked 09:40-10:20 (with buffer); 09:20 would run to 10:00
        self.assertEqual(self._starts(), ["09:00", "10:20"])

    def test_cancelled_booking_is_ignored(self):
        self.store.add_appointment(
            self.world.business.id, self.world.service, self.world.staff.id,
            self.world.customer.id, at(MONDAY, "09:40"), status="cancelled",
        )
        self.assertEqual(len(self._starts()), 5)

    def test_advance_notice_trims_early_slots(self):
        self.world.service.booking_advance_notice_minutes = 60
        svc = AvailabilityService(
            fake_repositories(self.store),
            clock=FixedClock(at(MONDAY, "08:30")),
            config=SchedulingConfig(slot_step_minutes=20),
        )
        slots = _run(svc.get_bookable_slots(self.world.business.id, self.world.service.id, MONDAY))
        self.assertEqual(slots[0].start, at(MONDAY, "09:40"))

    def test_step_override(self):
        self.assertEqual(self._starts(step_minutes=60), ["09:00", "10:00"])

    def test_multiple_staff_sorted_by_start_then_staff(self):
        other = self.store.add_staff(self.world.business.id)
        self.store.service_staff.add((self.world.service.id, other.id))
        self.store.add_rule(other.id, 1, "10:00", "11:00")
        slots = _run(self.svc.get_bookable_slots(self.world.business.id, self.world.service.id, MONDAY))
        at_ten = [s.staff_id for s in slots if s.start == at(MONDAY, "10:00")]
        self.assertEqual(at_ten, [self.world.staff.id, other.id])

    def test_explicit_staff_filter(self):
        other = self.store.add_staff(self.world.business.id)
        self.store.service_staff.add((self.world.service.id, other.id))
        self.store.add_rule(other.id, 1, "10:00", "11:00")
        self.assertEqual(self._starts(staff_id=other.id), ["10:00", "10:20"])

    def test_time_off_day_has_no_slots(self):
        self.store.add_time_off(self.world.staff.id, MONDAY, MONDAY)
        self.assertEqual(self._starts(), [])

    def test_staff_not_offering_service(self):
        other = self.store.add_staff(self.world.business.id)
        with self.assertRaises(EntityUnavailable):
            self._starts(staff_id=other.id)

    def test_inactive_service(self):
        self.world.service.is_active = False
        with self.assertRaises(EntityUnavailable):
            self._starts()

    def test_unknown_service(self):
        with self.assertRaises(NotFoundError):
            _run(self.svc.get_bookable_slots(self.world.business.id, 9999, MONDAY))


if __name__ == "__main__":
    unittest.main()
