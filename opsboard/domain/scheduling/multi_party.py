"""Multi-party scheduling - start times that fit every participant's free gaps"""

from datetime import datetime, timedelta
from typing import Optional

from ...config import MAX_SUGGESTED_TIMES
from .intervals import Interval


def covers(free: list[Interval], start: datetime, end: datetime) -> bool:
    """True when a single free gap contains [start, end)"""
    return any(gap.start <= start and gap.end >= end for gap in free)


def find_common_slots(
    free_by_participant: dict[str, list[Interval]],
    duration_minutes: int,
    participant_order: Optional[list[str]] = None,
    limit: int = MAX_SUGGESTED_TIMES,
    not_before: Optional[datetime] = None,
) -> list[datetime]:
    """Anchor on the first participant's gaps and keep starts that work for all.

    Each anchor gap contributes at most its own start (or not_before, when the
    gap is already under way). The cost is participants x gaps, which stays
    small for a week of working hours.
    """
    order = participant_order or list(free_by_participant)
    if not order:
        return []

    duration = timedelta(minutes=duration_minutes)
    anchor, others = order[0], order[1:]
    results: list[datetime] = []

    for gap in sorted(free_by_participant.get(anchor, [])):
        start = gap.start
        if not_before is not None and start < not_before:
            start = not_before
        end = start + duration
        if end > gap.end:
            continue
        if all(covers(free_by_participant.get(pid, []), start, end) for pid in others):
            results.append(start)
            if len(results) >= limit:
                break

    return results
