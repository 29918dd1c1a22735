from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from opsboard.domain.scheduling.availability import AvailabilityCalculator, free_intervals
from opsboard.domain.scheduling.conflicts import ConflictDetector, suggest_start_times
from opsboard.domain.scheduling.intervals import Interval, overlaps
from opsboard.domain.scheduling.multi_party import find_common_slots
from opsboard.domain.scheduling.policy import AvailabilityPolicy
from opsboard.domain.scheduling.repository import CalendarRepository
from opsboard.domain.scheduling.service import CalendarService
from opsboard.tenancy import TenantContext


def at(hour, minute=0, day=7):
    return datetime(2030, 1, day, hour, minute)


def add_event(db, workspace, who, start, end, attendees=None):
    return CalendarRepository.create_event(
        db,
        workspace["tenant"].id,
        user_id=workspace[who].id,
        title="Busy",
        start_time=start,
        end_time=end,
        attendees=attendees or [],
    )


def owner_context(workspace):
    return TenantContext(
        tenant_id=workspace["tenant"].id, user_id=workspace["owner"].id, role="owner"
    )


# ============================================================================
# CONFLICT DETECTION
# ============================================================================


def test_back_to_back_events_do_not_conflict(db, workspace):
    add_event(db, workspace, "owner", at(10), at(10, 30))
    detector = ConflictDetector(db, workspace["tenant"].id)

    result = detector.detect_conflicts(workspace["owner"].id, at(10, 30), at(11))

    assert result.has_conflict is False
    assert result.suggested_times is None


def test_overlap_reports_events_and_suggestions(db, workspace):
    event = add_event(db, workspace, "owner", at(10), at(11))
    detector = ConflictDetector(db, workspace["tenant"].id)

    result = detector.detect_conflicts(workspace["owner"].id, at(10, 30), at(11))

    assert result.has_conflict is True
    assert [e.id for e in result.conflicting_events] == [event.id]
    assert result.suggested_times == [at(9), at(11)]


def test_moving_an_event_does_not_conflict_with_itself(db, workspace):
    event = add_event(db, workspace, "owner", at(10), at(11))
    detector = ConflictDetector(db, workspace["tenant"].id)

    result = detector.detect_conflicts(
        workspace["owner"].id, at(10, 15), at(11, 15), exclude_event_id=event.id
    )

    assert result.has_conflict is False


def test_attendee_events_count_as_commitments(db, workspace):
    add_event(db, workspace, "member", at(13), at(14), attendees=[workspace["owner"].id])
    detector = ConflictDetector(db, workspace["tenant"].id)

    assert detector.detect_conflicts(workspace["owner"].id, at(13, 30), at(14)).has_conflict
    assert not detector.detect_conflicts(workspace["outsider"].id, at(13, 30), at(14)).has_conflict


def test_suggestions_skip_gaps_that_are_too_short():
    busy = [(at(9, 30), at(16, 45))]
    suggestions = suggest_start_times(at(9), at(17), busy, timedelta(minutes=30))
    assert suggestions == [at(9)]


def test_store_failure_fails_open_for_listing(db, workspace):
    detector = ConflictDetector(db, workspace["tenant"].id)
    error = OperationalError("SELECT", {}, Exception("database is down"))

    with patch.object(CalendarRepository, "find_overlapping", side_effect=error):
        result = detector.detect_conflicts(workspace["owner"].id, at(10), at(11))

    assert result.has_conflict is False


def test_store_failure_raises_when_strict(db, workspace):
    detector = ConflictDetector(db, workspace["tenant"].id)
    error = OperationalError("SELECT", {}, Exception("database is down"))

    with patch.object(CalendarRepository, "find_overlapping", side_effect=error):
        with pytest.raises(OperationalError):
            detector.detect_conflicts(workspace["owner"].id, at(10), at(11), strict=True)


# ============================================================================
# AVAILABILITY
# ============================================================================


def test_free_intervals_skip_closed_days():
    policy = AvailabilityPolicy()
    # Saturday 5th to Monday 7th
    free = free_intervals(policy, at(0, day=5).date(), at(0, day=7).date(), [(at(10), at(11))])
    assert free == [Interval(at(9), at(10)), Interval(at(11), at(17))]


def test_availability_reads_participant_calendar(db, workspace):
    add_event(db, workspace, "owner", at(12), at(13))
    add_event(db, workspace, "member", at(9), at(17))
    calculator = AvailabilityCalculator(db, workspace["tenant"].id, AvailabilityPolicy())

    free = calculator.availability(workspace["owner"].id, at(0).date(), at(0).date())

    assert free == [Interval(at(9), at(12)), Interval(at(13), at(17))]


# ============================================================================
# MULTI-PARTY
# ============================================================================


def test_common_slots_fit_every_participant(db, workspace):
    owner_events = [(at(9), at(10)), (at(14), at(15))]
    member_events = [(at(10), at(12)), (at(9, day=8), at(9, 30, day=8))]
    for start, end in owner_events:
        add_event(db, workspace, "owner", start, end)
    for start, end in member_events:
        add_event(db, workspace, "member", start, end)

    service = CalendarService(db)
    participants = [workspace["owner"].id, workspace["member"].id]
    suggestions = service.find_optimal_meeting_time(
        owner_context(workspace), participants, 60, preferred_date=at(0).date(), now=at(0, day=6)
    )

    assert suggestions
    assert len(suggestions) <= 5
    for start in suggestions:
        end = start + timedelta(minutes=60)
        for busy_start, busy_end in owner_events + member_events:
            assert not overlaps(start, end, busy_start, busy_end)


def test_common_slots_empty_when_nobody_overlaps():
    free = {
        "a": [Interval(at(9), at(10))],
        "b": [Interval(at(10), at(11))],
    }
    assert find_common_slots(free, 30) == []


def test_common_slots_respect_not_before():
    free = {
        "a": [Interval(at(9), at(12))],
        "b": [Interval(at(9), at(12))],
    }
    assert find_common_slots(free, 30, not_before=at(10, 10)) == [at(10, 10)]


def test_common_slots_reject_non_member(db, workspace):
    from fastapi import HTTPException

    service = CalendarService(db)
    with pytest.raises(HTTPException) as exc:
        service.find_optimal_meeting_time(
            owner_context(workspace), [workspace["outsider"].id], 30, now=at(0, day=6)
        )
    assert exc.value.status_code == 404
