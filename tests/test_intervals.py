import unittest
from datetime import datetime, timedelta, timezone

from opsboard.domain.scheduling.intervals import Interval, gaps, merge_sorted, overlaps, to_utc_naive


def at(hour, minute=0):
    return datetime(2030, 1, 7, hour, minute)


class OverlapTests(unittest.TestCase):
    def test_overlap_is_symmetric(self):
        cases = [
            (at(9), at(10), at(9, 30), at(11)),
            (at(9), at(10), at(10), at(11)),
            (at(9), at(12), at(10), at(11)),
            (at(9), at(10), at(11), at(12)),
            (at(9), at(9), at(9), at(10)),
        ]
        for a_start, a_end, b_start, b_end in cases:
            self.assertEqual(
                overlaps(a_start, a_end, b_start, b_end),
                overlaps(b_start, b_end, a_start, a_end),
            )

    def test_back_to_back_intervals_do_not_overlap(self):
        self.assertFalse(overlaps(at(9), at(9, 30), at(9, 30), at(10)))
        self.assertFalse(overlaps(at(9, 30), at(10), at(9), at(9, 30)))

    def test_containment_overlaps(self):
        self.assertTrue(overlaps(at(9), at(12), at(10), at(11)))

    def test_partial_overlap(self):
        self.assertTrue(overlaps(at(9), at(10), at(9, 59), at(11)))


class MergeAndGapTests(unittest.TestCase):
    def test_merge_joins_overlapping_and_touching(self):
        merged = merge_sorted([(at(11), at(12)), (at(9), at(10)), (at(10), at(10, 30)), (at(11, 30), at(13))])
        self.assertEqual(merged, [Interval(at(9), at(10, 30)), Interval(at(11), at(13))])

    def test_gaps_inside_window(self):
        free = gaps(at(9), at(17), [(at(10), at(11)), (at(13), at(14))])
        self.assertEqual(
            free,
            [Interval(at(9), at(10)), Interval(at(11), at(13)), Interval(at(14), at(17))],
        )

    def test_busy_outside_window_is_clipped(self):
        free = gaps(at(9), at(17), [(at(8), at(9, 30)), (at(16), at(18))])
        self.assertEqual(free, [Interval(at(9, 30), at(16))])

    def test_fully_busy_window_has_no_gaps(self):
        self.assertEqual(gaps(at(9), at(17), [(at(8), at(18))]), [])

    def test_empty_or_inverted_window(self):
        self.assertEqual(gaps(at(9), at(9), []), [])
        self.assertEqual(gaps(at(10), at(9), []), [])

    def test_interval_minutes(self):
        self.assertEqual(Interval(at(9), at(10, 30)).minutes, 90)


class UtcNormalizationTests(unittest.TestCase):
    def test_aware_values_become_naive_utc(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2030, 1, 7, 11, 0, tzinfo=plus_two)
        self.assertEqual(to_utc_naive(value), datetime(2030, 1, 7, 9, 0))

    def test_naive_and_none_pass_through(self):
        self.assertIsNone(to_utc_naive(None))
        self.assertEqual(to_utc_naive(at(9)), at(9))


if __name__ == "__main__":
    unittest.main()
