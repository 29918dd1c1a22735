"""Booking service - public slot lookup and the booking saga.

A booking runs as a sequence of committed steps, each recorded on the
Booking row:

    requested -> slot_validated -> room_provisioned -> event_persisted
              -> shadow_task_created -> complete

Any failure marks the booking failed and undoes what this run created
(calendar event, shadow task, video room) before the error is raised.
A retry with the same idempotency key resumes the same Booking row and
reuses its video room record.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import FRONTEND_URL
from ...models import Booking, CalendarEvent, MeetingType, Task, Tenant, VideoRoom
from ...services.video_service import VideoProvisioningError, VideoService, generate_room_name
from ...utils.sanitization import sanitize_string
from ..scheduling.conflicts import ConflictDetector
from ..scheduling.intervals import to_utc_naive
from ..scheduling.policy import AvailabilityPolicy
from ..scheduling.repository import CalendarRepository, TenantRepository
from ..scheduling.service import CalendarService, load_tenant_policy
from ..scheduling.slots import SlotResult
from ..tasks.repository import TaskRepository
from .repository import BookingRepository
from .schemas import BookingCreate

logger = logging.getLogger(__name__)

# Booking states
REQUESTED = "requested"
SLOT_VALIDATED = "slot_validated"
ROOM_PROVISIONED = "room_provisioned"
EVENT_PERSISTED = "event_persisted"
SHADOW_TASK_CREATED = "shadow_task_created"
COMPLETE = "complete"
FAILED = "failed"

SLOT_TAKEN_MESSAGE = "This slot was just taken. Please select another time."


def meeting_url(room: VideoRoom) -> str:
    """Masked link served by the frontend instead of the provider URL"""
    return f"{FRONTEND_URL.rstrip('/')}/meet/{room.room_name}"


class BookingService:
    """Service layer for public booking"""

    def __init__(self, db: Session, video: Optional[VideoService] = None):
        self.db = db
        self.repo = BookingRepository()
        self.tenants = TenantRepository()
        self.events = CalendarRepository()
        self.tasks = TaskRepository()
        self.calendar = CalendarService(db)
        self.video = video or VideoService()

    # ------------------------------------------------------------------
    # Public lookups
    # ------------------------------------------------------------------

    def get_meeting_type(self, tenant_id: str, meeting_type_id: str) -> MeetingType:
        meeting_type = self.tenants.get_meeting_type(self.db, tenant_id, meeting_type_id)
        if not meeting_type or not meeting_type.is_active:
            raise HTTPException(status_code=404, detail="Meeting type not found")
        return meeting_type

    def get_booking_profile(
        self, tenant_id: str
    ) -> tuple[Tenant, AvailabilityPolicy, list[MeetingType]]:
        tenant = self.calendar.get_bookable_tenant(tenant_id)
        policy = load_tenant_policy(self.db, tenant_id)
        return tenant, policy, self.tenants.get_meeting_types(self.db, tenant_id)

    def get_available_slots(
        self,
        tenant_id: str,
        day: date,
        duration_minutes: Optional[int] = None,
        meeting_type_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[SlotResult, int]:
        """Slots for a day, sized by an explicit duration or a meeting type"""
        if meeting_type_id:
            duration_minutes = self.get_meeting_type(tenant_id, meeting_type_id).duration
        if not duration_minutes:
            raise HTTPException(status_code=400, detail="duration or meeting_type_id is required")
        result = self.calendar.get_available_slots(tenant_id, day, duration_minutes, now)
        return result, duration_minutes

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        return booking

    def get_meeting_url(self, booking: Booking) -> Optional[str]:
        if not booking.video_room_id:
            return None
        room = self.repo.get_room(self.db, booking.video_room_id)
        return meeting_url(room) if room else None

    # ------------------------------------------------------------------
    # Booking saga
    # ------------------------------------------------------------------

    async def create_booking(self, data: BookingCreate, now: Optional[datetime] = None) -> Booking:
        now = now or datetime.utcnow()

        existing = None
        if data.idempotencyKey:
            existing = self.repo.get_by_idempotency_key(self.db, data.idempotencyKey)
            if existing and existing.tenant_id != data.tenantId:
                raise HTTPException(status_code=409, detail="Idempotency key already used")
            if existing and existing.status == COMPLETE:
                logger.info(f"♻️ Booking {existing.id} already complete, returning it")
                return existing

        tenant = self.calendar.get_bookable_tenant(data.tenantId)
        meeting_type = self.get_meeting_type(tenant.id, data.meetingTypeId)

        start = to_utc_naive(data.startTime)
        end = start + timedelta(minutes=meeting_type.duration)
        if start <= now:
            raise HTTPException(status_code=400, detail="Cannot book a time in the past")
        if existing and existing.start_time != start:
            raise HTTPException(
                status_code=409, detail="Idempotency key already used for a different time"
            )

        host_id = self.calendar.get_host_id(tenant.id)
        booking = self._open_booking(existing, data, meeting_type, host_id, start, end)

        created: dict = {}
        try:
            self._validate_slot(booking)
            room = await self._provision_room(booking, created)
            event = self._persist_event(booking, meeting_type, room, created)
            self._create_shadow_task(booking, meeting_type, event, room, created)
            booking = self.repo.set_status(self.db, booking, COMPLETE, error=None)
        except HTTPException as e:
            await self._fail(booking, str(e.detail), created)
            raise
        except VideoProvisioningError as e:
            await self._fail(booking, str(e), created)
            raise HTTPException(status_code=502, detail="Failed to generate video meeting") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Booking {booking.id} store error: {e}")
            await self._fail(booking, "Storage error", created)
            raise HTTPException(
                status_code=503, detail="Could not complete booking, please try again"
            ) from e

        logger.info(f"✅ Booking {booking.id} complete for host {host_id} at {start.isoformat()}")
        return booking

    def _open_booking(
        self,
        existing: Optional[Booking],
        data: BookingCreate,
        meeting_type: MeetingType,
        host_id: str,
        start: datetime,
        end: datetime,
    ) -> Booking:
        try:
            if existing:
                logger.info(f"🔁 Resuming booking {existing.id} from state {existing.status}")
                return self.repo.set_status(
                    self.db, existing, REQUESTED, host_id=host_id, error=None
                )
            return self.repo.create_booking(
                self.db,
                tenant_id=data.tenantId,
                meeting_type_id=meeting_type.id,
                client_name=sanitize_string(data.clientName),
                client_email=str(data.clientEmail),
                client_phone=sanitize_string(data.clientPhone),
                client_notes=sanitize_string(data.clientNotes),
                start_time=start,
                end_time=end,
                time_zone=data.timeZone,
                status=REQUESTED,
                host_id=host_id,
                idempotency_key=data.idempotencyKey,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to record booking request: {e}")
            raise HTTPException(
                status_code=503, detail="Could not complete booking, please try again"
            ) from e

    def _validate_slot(self, booking: Booking) -> None:
        """Strict re-check of the host calendar right before committing"""
        policy = load_tenant_policy(self.db, booking.tenant_id)
        detector = ConflictDetector(self.db, booking.tenant_id, policy)
        conflict = detector.detect_conflicts(
            booking.host_id,
            booking.start_time,
            booking.end_time,
            exclude_event_id=booking.calendar_event_id,
            strict=True,
        )
        if conflict.has_conflict:
            logger.warning(f"⛔ Booking {booking.id} lost the race for {booking.start_time.isoformat()}")
            raise HTTPException(status_code=409, detail=SLOT_TAKEN_MESSAGE)
        self.repo.set_status(self.db, booking, SLOT_VALIDATED)

    async def _provision_room(self, booking: Booking, created: dict) -> VideoRoom:
        room = None
        if booking.video_room_id:
            room = self.repo.get_room(self.db, booking.video_room_id)
        room_key = f"{booking.idempotency_key}:room" if booking.idempotency_key else None
        if room is None and room_key:
            room = self.repo.get_room_by_key(self.db, room_key)

        if room is None or room.status != "scheduled":
            provider_room = await self.video.create_room(
                generate_room_name(), booking.start_time, booking.end_time
            )
            created["room_name"] = provider_room["name"]
            room_data = {
                "room_name": provider_room["name"],
                "room_url": provider_room["url"],
                "provider": self.video.provider,
                "status": "scheduled",
            }
            if room is None:
                room = self.repo.create_room(
                    self.db,
                    tenant_id=booking.tenant_id,
                    host_id=booking.host_id,
                    idempotency_key=room_key,
                    **room_data,
                )
            else:
                room = self.repo.update_room(self.db, room, **room_data)
            created["room"] = room
        else:
            logger.info(f"♻️ Reusing video room {room.room_name} for booking {booking.id}")

        self.repo.set_status(self.db, booking, ROOM_PROVISIONED, video_room_id=room.id)
        return room

    def _persist_event(
        self, booking: Booking, meeting_type: MeetingType, room: VideoRoom, created: dict
    ) -> CalendarEvent:
        if booking.calendar_event_id:
            event = self.events.get_event(self.db, booking.tenant_id, booking.calendar_event_id)
            if event:
                self.repo.set_status(self.db, booking, EVENT_PERSISTED)
                return event

        # Force-create: the slot was strictly re-validated, so no advisory check here.
        # Client fields were sanitized when the booking was recorded.
        event = self.events.create_event(
            self.db,
            booking.tenant_id,
            user_id=booking.host_id,
            title=f"{meeting_type.name} with {booking.client_name}",
            description=booking.client_notes,
            start_time=booking.start_time,
            end_time=booking.end_time,
            event_type="meeting",
            attendees=[booking.host_id, booking.client_email],
            video_room_id=room.id,
            location=meeting_url(room),
            event_metadata={"booking_id": booking.id, "client_email": booking.client_email},
        )
        created["event"] = event
        logger.info(f"📅 Booking {booking.id} placed on host calendar as event {event.id}")
        self.repo.set_status(self.db, booking, EVENT_PERSISTED, calendar_event_id=event.id)
        return event

    def _create_shadow_task(
        self,
        booking: Booking,
        meeting_type: MeetingType,
        event: CalendarEvent,
        room: VideoRoom,
        created: dict,
    ) -> Task:
        task = self.tasks.create_task(
            self.db,
            booking.tenant_id,
            title=f"Meeting: {meeting_type.name} with {booking.client_name}",
            description=booking.client_notes,
            assigned_to=booking.host_id,
            priority="medium",
            status="todo",
            start_date=booking.start_time,
            due_date=booking.start_time,
            is_booking_shadow=True,
            task_metadata={
                "booking_id": booking.id,
                "calendar_event_id": event.id,
                "video_room_id": room.id,
            },
        )
        created["task"] = task
        self.repo.set_status(self.db, booking, SHADOW_TASK_CREATED, shadow_task_id=task.id)
        return task

    async def _fail(self, booking: Booking, error: str, created: dict) -> None:
        """Mark the booking failed and undo what this run created"""
        logger.error(f"❌ Booking {booking.id} failed at {booking.status}: {error}")
        cleared = await self._compensate(created)
        try:
            self.repo.set_status(self.db, booking, FAILED, error=error, **cleared)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Could not mark booking {booking.id} as failed: {e}")

    async def _compensate(self, created: dict) -> dict:
        cleared = {}

        task = created.get("task")
        if task is not None:
            try:
                self.tasks.delete_task(self.db, task)
                cleared["shadow_task_id"] = None
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Compensation: could not delete shadow task {task.id}: {e}")

        event = created.get("event")
        if event is not None:
            try:
                self.events.delete_event(self.db, event)
                cleared["calendar_event_id"] = None
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Compensation: could not delete event {event.id}: {e}")

        room_name = created.get("room_name")
        if room_name and not await self.video.delete_room(room_name):
            logger.warning(f"⚠️ Compensation: provider room {room_name} left open")

        room = created.get("room")
        if room is not None:
            try:
                self.repo.cancel_room(self.db, room)
                cleared["video_room_id"] = None
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"❌ Compensation: could not cancel room {room.id}: {e}")

        if created:
            logger.info(f"↩️ Compensated booking steps: {sorted(created)}")
        return cleared
