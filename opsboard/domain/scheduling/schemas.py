"""Calendar domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

EventType = Literal["meeting", "call", "reminder", "deadline", "task-shadow", "invoice-shadow"]


class EventCreate(BaseModel):
    """Schema for creating a calendar event"""

    userId: Optional[str] = None  # Owner participant, defaults to the caller
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    startTime: datetime
    endTime: datetime
    type: EventType = "meeting"
    attendees: list[str] = Field(default_factory=list)
    videoRoomId: Optional[str] = None
    location: Optional[str] = None
    color: Optional[str] = None
    isAllDay: bool = False
    reminderMinutes: int = Field(15, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_order(self):
        if self.endTime < self.startTime:
            raise ValueError("endTime must not be before startTime")
        return self


class EventUpdate(BaseModel):
    """Schema for updating an existing event"""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    type: Optional[EventType] = None
    attendees: Optional[list[str]] = None
    videoRoomId: Optional[str] = None
    location: Optional[str] = None
    color: Optional[str] = None
    isAllDay: Optional[bool] = None
    reminderMinutes: Optional[int] = Field(None, ge=0)
    metadata: Optional[dict[str, Any]] = None


class EventResponse(BaseModel):
    id: str
    userId: str
    title: str
    description: Optional[str] = None
    startTime: datetime
    endTime: datetime
    type: str
    attendees: list[str] = Field(default_factory=list)
    videoRoomId: Optional[str] = None
    location: Optional[str] = None
    color: Optional[str] = None
    isAllDay: bool = False
    reminderMinutes: int = 15
    metadata: dict[str, Any] = Field(default_factory=dict)
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ConflictResponse(BaseModel):
    hasConflict: bool
    conflictingEvents: list[EventResponse] = Field(default_factory=list)
    suggestedTimes: Optional[list[datetime]] = None


class EventWriteResponse(BaseModel):
    """Create/update outcome: either the stored event or the blocking conflict"""

    event: Optional[EventResponse] = None
    conflict: Optional[ConflictResponse] = None
    error: Optional[str] = None


class ConflictCheckRequest(BaseModel):
    participantId: str
    startTime: datetime
    endTime: datetime
    excludeEventId: Optional[str] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.endTime < self.startTime:
            raise ValueError("endTime must not be before startTime")
        return self


class IntervalResponse(BaseModel):
    start: datetime
    end: datetime


class AvailabilityResponse(BaseModel):
    participantId: str
    startDate: date
    endDate: date
    availableSlots: list[IntervalResponse]


class OptimalTimeRequest(BaseModel):
    participantIds: list[str] = Field(..., min_length=1)
    durationMinutes: int = Field(..., gt=0, le=24 * 60)
    preferredDate: Optional[date] = None

    @field_validator("participantIds")
    @classmethod
    def dedupe(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


class OptimalTimeResponse(BaseModel):
    suggestedTimes: list[datetime]


class SlotResponse(BaseModel):
    start: datetime
    end: datetime
    available: bool = True


class SlotsResponse(BaseModel):
    date: date
    durationMinutes: int
    slots: list[SlotResponse]
    noAvailability: bool
    reason: Optional[str] = None  # closed, fully_booked


class BookingConfigUpdate(BaseModel):
    """Schema for updating a tenant's availability policy"""

    workingDays: Optional[list[int]] = None
    workingHours: Optional[dict[str, str]] = None
    timezone: Optional[str] = None
    slotInterval: Optional[int] = Field(None, gt=0, le=240)
    bufferTime: Optional[int] = Field(None, ge=0, le=480)
    leadTime: Optional[int] = Field(None, ge=0)

    @field_validator("workingDays")
    @classmethod
    def check_days(cls, value: Optional[list[int]]) -> Optional[list[int]]:
        if value is None:
            return value
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("workingDays must contain weekday numbers 0-6 (0 = Sunday)")
        return sorted(set(value))

    @field_validator("workingHours")
    @classmethod
    def check_hours(cls, value: Optional[dict[str, str]]) -> Optional[dict[str, str]]:
        if value is None:
            return value
        try:
            start = datetime.strptime(value["start"], "%H:%M").time()
            end = datetime.strptime(value["end"], "%H:%M").time()
        except (KeyError, ValueError) as e:
            raise ValueError('workingHours must look like {"start": "09:00", "end": "17:00"}') from e
        if end <= start:
            raise ValueError("workingHours end must be after start")
        return {"start": value["start"], "end": value["end"]}

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value


class BookingPolicyResponse(BaseModel):
    workingDays: list[int]
    workingHours: dict[str, str]
    timezone: str
    slotInterval: int
    bufferTime: int
    leadTime: int
