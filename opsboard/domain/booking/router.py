"""Booking router - public booking endpoints and tenant booking config"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...config import (
    BOOKING_CREATE_RATE_LIMIT,
    BOOKING_SLOTS_RATE_LIMIT,
    RATE_LIMIT_WINDOW_SECONDS,
)
from ...database import get_db
from ...models import Booking
from ...rate_limiter import create_rate_limiter
from ...services.video_service import VideoService
from ...tenancy import TenantContext, get_tenant_context
from ..scheduling.router import get_calendar_service, serialize_policy
from ..scheduling.schemas import BookingConfigUpdate, BookingPolicyResponse, SlotResponse, SlotsResponse
from ..scheduling.service import CalendarService
from .schemas import BookingCreate, BookingProfileResponse, BookingResponse, MeetingTypeResponse
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/booking", tags=["Booking"])

slots_rate_limiter = create_rate_limiter(
    limit=BOOKING_SLOTS_RATE_LIMIT,
    window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    key_prefix="booking_slots",
)
booking_rate_limiter = create_rate_limiter(
    limit=BOOKING_CREATE_RATE_LIMIT,
    window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    key_prefix="booking_create",
)


def get_video_service() -> VideoService:
    return VideoService()


def get_booking_service(
    db: Session = Depends(get_db),
    video: VideoService = Depends(get_video_service),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, video)


def serialize_booking(booking: Booking, meeting_url: Optional[str]) -> BookingResponse:
    return BookingResponse(
        bookingId=booking.id,
        status=booking.status,
        startTime=booking.start_time,
        endTime=booking.end_time,
        hostId=booking.host_id,
        meetingUrl=meeting_url,
        calendarEventId=booking.calendar_event_id,
        shadowTaskId=booking.shadow_task_id,
    )


# ============================================================================
# TENANT CONFIG (authenticated)
# ============================================================================


@router.get("/config", response_model=BookingPolicyResponse)
async def get_booking_config(
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    return serialize_policy(service.get_policy(context))


@router.put("/config", response_model=BookingPolicyResponse)
async def update_booking_config(
    data: BookingConfigUpdate,
    context: TenantContext = Depends(get_tenant_context),
    service: CalendarService = Depends(get_calendar_service),
):
    """Update working days, hours, timezone, buffer and lead time (admin only)"""
    return serialize_policy(service.update_policy(context, data))


# ============================================================================
# PUBLIC BOOKING
# ============================================================================


@router.get("/{tenant_id}/meeting-types", response_model=BookingProfileResponse)
async def get_booking_profile(
    tenant_id: str,
    service: BookingService = Depends(get_booking_service),
):
    tenant, policy, meeting_types = service.get_booking_profile(tenant_id)
    return BookingProfileResponse(
        tenantId=tenant.id,
        name=tenant.name,
        timezone=policy.timezone,
        meetingTypes=[
            MeetingTypeResponse(
                id=m.id, name=m.name, slug=m.slug, description=m.description, duration=m.duration
            )
            for m in meeting_types
        ],
    )


@router.get("/{tenant_id}/slots", response_model=SlotsResponse)
async def get_available_slots(
    tenant_id: str,
    day: date = Query(..., alias="date", description="Day to list, in the host's timezone"),
    duration: Optional[int] = Query(None, gt=0, le=24 * 60),
    meeting_type_id: Optional[str] = Query(None),
    _: None = Depends(slots_rate_limiter),
    service: BookingService = Depends(get_booking_service),
):
    """Bookable slots for one day. Size them by duration or by a meeting type."""
    result, duration_minutes = service.get_available_slots(
        tenant_id, day, duration_minutes=duration, meeting_type_id=meeting_type_id
    )
    return SlotsResponse(
        date=result.date,
        durationMinutes=duration_minutes,
        slots=[SlotResponse(start=s.start, end=s.end, available=s.available) for s in result.slots],
        noAvailability=result.no_availability,
        reason=result.reason,
    )


@router.post("", response_model=BookingResponse)
async def create_booking(
    data: BookingCreate,
    _: None = Depends(booking_rate_limiter),
    service: BookingService = Depends(get_booking_service),
):
    booking = await service.create_booking(data)
    return serialize_booking(booking, service.get_meeting_url(booking))
