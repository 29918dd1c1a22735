"""Calendar router - FastAPI endpoints for events, conflicts and availability"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...models import CalendarEvent
from ...tenancy import TenantContext, get_tenant_context
from .conflicts import ConflictDetection
from .policy import AvailabilityPolicy
from .schemas import (
    AvailabilityResponse,
    BookingPolicyResponse,
    ConflictCheckRequest,
    ConflictResponse,
    EventCreate,
    EventResponse,
    EventUpdate,
    EventWriteResponse,
    IntervalResponse,
    OptimalTimeRequest,
    OptimalTimeResponse,
)
from .service import CalendarService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/calendar", tags=["Calendar"])


def get_calendar_service(db: Session = Depends(get_db)) -> CalendarService:
    """Dependency injection for CalendarService"""
    return CalendarService(db)


def serialize_event(event: CalendarEvent) -> EventResponse:
    return EventResponse(
        id=event.id,
        userId=event.user_id,
        title=event.title,
        description=event.description,
        startTime=event.start_time,
        endTime=event.end_time,
        type=event.event_type,
        attendees=event.attendees or [],
        videoRoomId=event.video_room_id,
        location=event.location,
        color=event.color,
        isAllDay=event.is_all_day,
        reminderMinutes=event.reminder_minutes,
        metadata=event.event_metadata or {},
        createdAt=event.created_at,
        updatedAt=event.updated_at,
    )


def serialize_conflict(conflict: ConflictDetection) -> ConflictResponse:
    return ConflictResponse(
        hasConflict=conflict.has_conflict,
        conflictingEvents=[serialize_event(e) for e in conflict.conflicting_events],
        suggestedTimes=conflict.suggested_times,
    )


def serialize_policy(policy: AvailabilityPolicy) -> BookingPolicyResponse:
    return BookingPolicyResponse(
        workingDays=policy.working_days,
        workingHours={"start": policy.start, "end": policy.end},
        timezone=policy.timezone,
        slotInterval=policy.slot_interval,
        bufferTime=policy.buffer_time,
        leadTime=policy.lead_time,
    )


# ============================================================================
# EVENTS
# ============================================================================


@router.get("/events", response_model=list[EventResponse])
async def get_events(
    participant_id: Optional[str] = Query(None, description="Defaults to the caller"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    """Events the participant owns or attends"""
    events = service.get_events(context, participant_id, start, end)
    return [serialize_event(e) for e in events]


@router.get("/events/upcoming", response_model=list[EventResponse])
async def get_upcoming_events(
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    return [serialize_event(e) for e in service.get_upcoming_events(context)]


@router.get("/events/today", response_model=list[EventResponse])
async def get_today_events(
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    return [serialize_event(e) for e in service.get_today_events(context)]


@router.get("/events/all", response_model=list[EventResponse])
async def get_all_events(
    limit: int = Query(100, ge=1, le=500),
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    """All workspace events (admin only)"""
    return [serialize_event(e) for e in service.get_all_events(context, limit)]


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    return serialize_event(service.get_event(context, event_id))


@router.post("/events", response_model=EventWriteResponse)
async def create_event(
    data: EventCreate,
    force: bool = Query(False, description="Store the event even if it conflicts"),
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    """Create an event. A conflict is returned as data, not as an error status."""
    event, conflict = service.create_event(context, data, force_create=force)
    if conflict:
        return EventWriteResponse(
            conflict=serialize_conflict(conflict), error="Scheduling conflict detected"
        )
    return EventWriteResponse(event=serialize_event(event))


@router.patch("/events/{event_id}", response_model=EventWriteResponse)
async def update_event(
    event_id: str,
    data: EventUpdate,
    force: bool = Query(False, description="Apply the change even if it conflicts"),
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    event, conflict = service.update_event(context, event_id, data, force_update=force)
    if conflict:
        return EventWriteResponse(
            conflict=serialize_conflict(conflict), error="Scheduling conflict detected"
        )
    return EventWriteResponse(event=serialize_event(event))


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    return service.delete_event(context, event_id)


# ============================================================================
# CONFLICTS & AVAILABILITY
# ============================================================================


@router.post("/conflicts", response_model=ConflictResponse)
async def detect_conflicts(
    data: ConflictCheckRequest,
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    conflict = service.detect_conflicts(
        context, data.participantId, data.startTime, data.endTime, data.excludeEventId
    )
    return serialize_conflict(conflict)


@router.get("/availability", response_model=AvailabilityResponse)
async def get_availability(
    start_date: date,
    end_date: date,
    participant_id: Optional[str] = None,
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    """Free working-hour gaps per day for a participant"""
    participant = participant_id or context.user_id
    free = service.get_availability(context, participant, start_date, end_date)
    return AvailabilityResponse(
        participantId=participant,
        startDate=start_date,
        endDate=end_date,
        availableSlots=[IntervalResponse(start=gap.start, end=gap.end) for gap in free],
    )


@router.post("/optimal-time", response_model=OptimalTimeResponse)
async def find_optimal_meeting_time(
    data: OptimalTimeRequest,
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    """Common free start times for several participants over the next week"""
    suggestions = service.find_optimal_meeting_time(
        context, data.participantIds, data.durationMinutes, data.preferredDate
    )
    return OptimalTimeResponse(suggestedTimes=suggestions)
