import unittest
from datetime import date, datetime, timedelta

from opsboard.domain.scheduling.intervals import overlaps
from opsboard.domain.scheduling.policy import (
    AvailabilityPolicy,
    resolve_policy,
    weekday_index,
    working_window,
)
from opsboard.domain.scheduling.slots import CLOSED, FULLY_BOOKED, align_up, generate_slots
from opsboard.models import BookingConfig

MONDAY = date(2030, 1, 7)
SATURDAY = date(2030, 1, 5)
LONG_BEFORE = datetime(2030, 1, 1, 0, 0)


def at(hour, minute=0, day=MONDAY):
    return datetime(day.year, day.month, day.day, hour, minute)


class PolicyTests(unittest.TestCase):
    def test_weekday_numbering_starts_on_sunday(self):
        self.assertEqual(weekday_index(date(2030, 1, 6)), 0)
        self.assertEqual(weekday_index(MONDAY), 1)
        self.assertEqual(weekday_index(SATURDAY), 6)

    def test_missing_config_resolves_to_defaults(self):
        policy = resolve_policy(None)
        self.assertEqual(policy.working_days, [1, 2, 3, 4, 5])
        self.assertEqual((policy.start, policy.end), ("09:00", "17:00"))
        self.assertEqual(policy.timezone, "UTC")
        self.assertEqual((policy.slot_interval, policy.buffer_time, policy.lead_time), (15, 15, 60))

    def test_partial_config_keeps_defaults_for_unset_fields(self):
        config = BookingConfig(timezone="Europe/London", buffer_time=0)
        policy = resolve_policy(config)
        self.assertEqual(policy.timezone, "Europe/London")
        self.assertEqual(policy.buffer_time, 0)
        self.assertEqual(policy.working_days, [1, 2, 3, 4, 5])
        self.assertEqual(policy.start, "09:00")

    def test_working_window_follows_local_timezone(self):
        policy = AvailabilityPolicy(timezone="America/New_York")
        window = working_window(policy, MONDAY)
        self.assertEqual(window.start, at(14))
        self.assertEqual(window.end, at(22))

    def test_excluded_weekday_has_no_window(self):
        self.assertIsNone(working_window(AvailabilityPolicy(), SATURDAY))

    def test_unknown_timezone_falls_back_to_utc(self):
        policy = AvailabilityPolicy(timezone="Mars/Olympus")
        self.assertEqual(working_window(policy, MONDAY).start, at(9))

    def test_policy_round_trips_through_cache_dict(self):
        policy = AvailabilityPolicy(working_days=[2, 3], timezone="Asia/Tokyo", lead_time=0)
        self.assertEqual(AvailabilityPolicy.from_dict(policy.to_dict()), policy)


class SlotGenerationTests(unittest.TestCase):
    def test_buffered_slots_around_existing_event(self):
        result = generate_slots(
            AvailabilityPolicy(), MONDAY, 30, [(at(10), at(10, 30))], LONG_BEFORE
        )
        starts = [slot.start for slot in result.slots]

        self.assertIn(at(9), starts)
        self.assertIn(at(10, 45), starts)
        self.assertNotIn(at(10), starts)
        for slot in result.slots:
            self.assertFalse(overlaps(slot.start, slot.end, at(10), at(10, 30)))

    def test_full_day_sequence(self):
        result = generate_slots(AvailabilityPolicy(), MONDAY, 30, [], LONG_BEFORE)
        starts = [slot.start for slot in result.slots]
        self.assertEqual(starts[:3], [at(9), at(9, 45), at(10, 30)])
        self.assertTrue(all(slot.end <= at(17) for slot in result.slots))
        self.assertTrue(all(slot.available for slot in result.slots))

    def test_no_slot_inside_lead_time(self):
        now = at(9, 50)
        result = generate_slots(AvailabilityPolicy(), MONDAY, 30, [(at(10), at(10, 30))], now)
        earliest = now + timedelta(minutes=60)

        self.assertTrue(result.slots)
        self.assertTrue(all(slot.start > earliest for slot in result.slots))
        self.assertEqual(result.slots[0].start, at(11, 30))

    def test_excluded_weekday_returns_no_slots(self):
        result = generate_slots(AvailabilityPolicy(), SATURDAY, 30, [], LONG_BEFORE)
        self.assertEqual(result.slots, [])
        self.assertTrue(result.no_availability)
        self.assertEqual(result.reason, CLOSED)

    def test_fully_booked_day(self):
        result = generate_slots(AvailabilityPolicy(), MONDAY, 30, [(at(8), at(18))], LONG_BEFORE)
        self.assertEqual(result.slots, [])
        self.assertEqual(result.reason, FULLY_BOOKED)

    def test_slots_never_overlap_existing_events(self):
        busy = [
            (at(9, 10), at(9, 40)),
            (at(11), at(12, 15)),
            (at(12, 20), at(12, 25)),
            (at(15, 55), at(16, 5)),
        ]
        result = generate_slots(AvailabilityPolicy(buffer_time=0), MONDAY, 45, busy, LONG_BEFORE)
        self.assertTrue(result.slots)
        for slot in result.slots:
            for start, end in busy:
                self.assertFalse(overlaps(slot.start, slot.end, start, end))

    def test_slots_respect_local_working_hours(self):
        policy = AvailabilityPolicy(timezone="America/New_York")
        result = generate_slots(policy, MONDAY, 60, [], LONG_BEFORE)
        self.assertEqual(result.slots[0].start, at(14))
        self.assertTrue(all(slot.end <= at(22) for slot in result.slots))

    def test_duration_longer_than_window(self):
        result = generate_slots(AvailabilityPolicy(), MONDAY, 9 * 60, [], LONG_BEFORE)
        self.assertEqual(result.slots, [])


class AlignTests(unittest.TestCase):
    def test_align_up_to_next_boundary(self):
        zone = AvailabilityPolicy().zone
        self.assertEqual(align_up(at(9, 46), 15, zone), at(10))
        self.assertEqual(align_up(at(9, 45), 15, zone), at(9, 45))
        self.assertEqual(align_up(at(9, 46), 1, zone), at(9, 46))


if __name__ == "__main__":
    unittest.main()
