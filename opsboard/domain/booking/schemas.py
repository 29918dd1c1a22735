"""Booking domain schemas - Pydantic models for public booking requests"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class BookingCreate(BaseModel):
    """Schema for a client booking a meeting with a tenant"""

    tenantId: str
    meetingTypeId: str
    startTime: datetime
    clientName: str = Field(..., min_length=1, max_length=255)
    clientEmail: EmailStr
    clientPhone: Optional[str] = Field(None, max_length=50)
    clientNotes: Optional[str] = Field(None, max_length=2000)
    timeZone: Optional[str] = None  # Client's display timezone
    idempotencyKey: Optional[str] = Field(None, max_length=200)


class BookingResponse(BaseModel):
    bookingId: str
    status: str
    startTime: datetime
    endTime: datetime
    hostId: Optional[str] = None
    meetingUrl: Optional[str] = None
    calendarEventId: Optional[str] = None
    shadowTaskId: Optional[str] = None


class MeetingTypeResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    duration: int


class BookingProfileResponse(BaseModel):
    """Public booking page data for a tenant"""

    tenantId: str
    name: str
    timezone: str
    meetingTypes: list[MeetingTypeResponse]
