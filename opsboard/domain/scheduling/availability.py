"""Availability calculator - free working-hour gaps for a participant over a date range"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable

from sqlalchemy.orm import Session

from .intervals import Interval, gaps, to_utc_naive
from .policy import AvailabilityPolicy, days_in_range, working_window
from .repository import CalendarRepository

logger = logging.getLogger(__name__)


def range_bounds(policy: AvailabilityPolicy, start_day: date, end_day: date) -> Interval:
    """Naive-UTC bounds covering every local calendar day in [start_day, end_day]"""
    start_local = datetime.combine(start_day, time.min, tzinfo=policy.zone)
    end_local = datetime.combine(end_day + timedelta(days=1), time.min, tzinfo=policy.zone)
    return Interval(to_utc_naive(start_local), to_utc_naive(end_local))


def free_intervals(
    policy: AvailabilityPolicy,
    start_day: date,
    end_day: date,
    busy: Iterable[tuple[datetime, datetime]],
) -> list[Interval]:
    """Working-hours gaps per day, skipping days the policy does not work.

    Pure: busy intervals are supplied by the caller, fetched once for the
    whole range.
    """
    busy = list(busy)
    free: list[Interval] = []
    for day in days_in_range(start_day, end_day):
        window = working_window(policy, day)
        if window is None:
            continue
        day_busy = [(s, e) for s, e in busy if s < window.end and e > window.start]
        free.extend(gaps(window.start, window.end, day_busy))
    return free


class AvailabilityCalculator:
    """Computes advisory free capacity; bookings re-check at commit time"""

    def __init__(self, db: Session, tenant_id: str, policy: AvailabilityPolicy):
        self.db = db
        self.tenant_id = tenant_id
        self.policy = policy
        self.repo = CalendarRepository()

    def availability(self, participant_id: str, start_day: date, end_day: date) -> list[Interval]:
        if end_day < start_day:
            return []
        bounds = range_bounds(self.policy, start_day, end_day)
        events = self.repo.get_events(
            self.db, self.tenant_id, participant_id, bounds.start, bounds.end
        )
        busy = [(e.start_time, e.end_time) for e in events]
        return free_intervals(self.policy, start_day, end_day, busy)

    def availability_for_many(
        self, participant_ids: list[str], start_day: date, end_day: date
    ) -> dict[str, list[Interval]]:
        """Free gaps for several participants from a single store read"""
        if end_day < start_day:
            return {pid: [] for pid in participant_ids}
        bounds = range_bounds(self.policy, start_day, end_day)
        events_by_participant = self.repo.get_events_for_participants(
            self.db, self.tenant_id, participant_ids, bounds.start, bounds.end
        )
        logger.debug(
            f"📅 Loaded availability inputs for {len(participant_ids)} participants "
            f"({start_day} → {end_day})"
        )
        return {
            pid: free_intervals(
                self.policy,
                start_day,
                end_day,
                [(e.start_time, e.end_time) for e in events],
            )
            for pid, events in events_by_participant.items()
        }
