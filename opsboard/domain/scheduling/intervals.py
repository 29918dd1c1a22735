"""Interval utilities - half-open [start, end) overlap, merge and gap finding"""

from datetime import datetime, timezone
from typing import Iterable, NamedTuple, Optional


class Interval(NamedTuple):
    start: datetime
    end: datetime

    @property
    def minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to naive UTC (the storage convention).

    Naive values are assumed to already be UTC and are returned unchanged.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """True iff [a_start, a_end) and [b_start, b_end) share at least one instant.

    Back-to-back intervals (a_end == b_start) do not overlap.
    """
    return a_start < b_end and a_end > b_start


def merge_sorted(intervals: Iterable[tuple[datetime, datetime]]) -> list[Interval]:
    """Merge overlapping or touching intervals into a sorted, disjoint list"""
    merged: list[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1].end:
            if end > merged[-1].end:
                merged[-1] = Interval(merged[-1].start, end)
            continue
        merged.append(Interval(start, end))
    return merged


def gaps(
    window_start: datetime,
    window_end: datetime,
    busy: Iterable[tuple[datetime, datetime]],
) -> list[Interval]:
    """Return the free sub-intervals of [window_start, window_end) not covered by busy.

    Busy intervals may extend beyond the window; they are clipped. An empty
    or inverted window yields no gaps.
    """
    if window_end <= window_start:
        return []

    free: list[Interval] = []
    cursor = window_start
    for start, end in merge_sorted(busy):
        if end <= window_start or start >= window_end:
            continue
        if start > cursor:
            free.append(Interval(cursor, start))
        cursor = max(cursor, end)
        if cursor >= window_end:
            break

    if cursor < window_end:
        free.append(Interval(cursor, window_end))
    return free
