"""Conflict detection - advisory overlap checks with suggested alternatives"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import MAX_SUGGESTED_TIMES
from ...models import CalendarEvent
from .intervals import gaps
from .policy import DEFAULT_WORKING_HOURS, AvailabilityPolicy, local_date, working_window
from .repository import CalendarRepository

logger = logging.getLogger(__name__)


@dataclass
class ConflictDetection:
    has_conflict: bool
    conflicting_events: list[CalendarEvent] = field(default_factory=list)
    suggested_times: Optional[list[datetime]] = None


def suggest_start_times(
    window_start: datetime,
    window_end: datetime,
    busy: list[tuple[datetime, datetime]],
    duration: timedelta,
    limit: int = MAX_SUGGESTED_TIMES,
) -> list[datetime]:
    """Start of every free gap in the window long enough to hold duration"""
    suggestions = []
    for gap in gaps(window_start, window_end, busy):
        if gap.end - gap.start >= duration:
            suggestions.append(gap.start)
            if len(suggestions) >= limit:
                break
    return suggestions


class ConflictDetector:
    """Checks a participant's calendar for overlaps with a candidate interval"""

    def __init__(self, db: Session, tenant_id: str, policy: Optional[AvailabilityPolicy] = None):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = CalendarRepository()
        self.policy = policy or AvailabilityPolicy()

    def detect_conflicts(
        self,
        participant_id: str,
        start: datetime,
        end: datetime,
        exclude_event_id: Optional[str] = None,
        strict: bool = False,
    ) -> ConflictDetection:
        """Find events overlapping [start, end) for the participant.

        Read failures are treated as "no conflict" so listing stays usable
        during store outages. Pass strict=True right before a write commit
        to let the failure propagate instead.
        """
        try:
            conflicting = self.repo.find_overlapping(
                self.db, self.tenant_id, participant_id, start, end, exclude_event_id
            )
            if not conflicting:
                return ConflictDetection(has_conflict=False)

            suggested = self.suggest_times(participant_id, start, end, exclude_event_id)
            logger.info(
                f"⚠️ {len(conflicting)} conflict(s) for participant {participant_id} "
                f"at {start.isoformat()}"
            )
            return ConflictDetection(
                has_conflict=True,
                conflicting_events=conflicting,
                suggested_times=suggested,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            if strict:
                logger.error(f"❌ Conflict check failed before commit: {e}")
                raise
            logger.error(f"❌ Conflict detection error, treating as no conflict: {e}")
            return ConflictDetection(has_conflict=False)

    def suggest_times(
        self,
        participant_id: str,
        requested_start: datetime,
        requested_end: datetime,
        exclude_event_id: Optional[str] = None,
    ) -> list[datetime]:
        """Alternative start times on the requested day's working window"""
        duration = requested_end - requested_start
        # Suggestions are offered even on non-working days, using the default hours
        day = local_date(self.policy, requested_start)
        day_policy = AvailabilityPolicy(
            working_days=list(range(7)),
            start=self.policy.start or DEFAULT_WORKING_HOURS["start"],
            end=self.policy.end or DEFAULT_WORKING_HOURS["end"],
            timezone=self.policy.timezone,
        )
        window = working_window(day_policy, day)
        if window is None:
            return []

        day_events = self.repo.find_overlapping(
            self.db, self.tenant_id, participant_id, window.start, window.end, exclude_event_id
        )
        busy = [(e.start_time, e.end_time) for e in day_events]
        return suggest_start_times(window.start, window.end, busy, duration)
