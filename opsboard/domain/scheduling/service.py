"""Calendar service - Business logic for events, conflicts, availability and slots"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...cache import get_tenant_policy_cached, invalidate_tenant_policy_cache, set_tenant_policy_cached
from ...config import BOOKING_SEARCH_DAYS, TENANT_POLICY_CACHE_TTL
from ...models import CalendarEvent, Tenant
from ...tenancy import TenantContext
from ...utils.sanitization import sanitize_string
from .availability import AvailabilityCalculator, range_bounds
from .conflicts import ConflictDetection, ConflictDetector
from .intervals import Interval, to_utc_naive
from .multi_party import find_common_slots
from .policy import AvailabilityPolicy, local_date, resolve_policy, working_window
from .repository import CalendarRepository, TenantRepository
from .schemas import BookingConfigUpdate, EventCreate, EventUpdate
from .slots import SlotResult, generate_slots

logger = logging.getLogger(__name__)

# Event fields accepted from API payloads, mapped to model columns
EVENT_FIELD_MAP = {
    "title": "title",
    "description": "description",
    "startTime": "start_time",
    "endTime": "end_time",
    "type": "event_type",
    "attendees": "attendees",
    "videoRoomId": "video_room_id",
    "location": "location",
    "color": "color",
    "isAllDay": "is_all_day",
    "reminderMinutes": "reminder_minutes",
    "metadata": "event_metadata",
}

# Columns an update may change but never clear
REQUIRED_EVENT_COLUMNS = (
    "title",
    "start_time",
    "end_time",
    "event_type",
    "is_all_day",
    "reminder_minutes",
)


def load_tenant_policy(db: Session, tenant_id: str) -> AvailabilityPolicy:
    """Resolve a tenant's availability policy, served from cache when possible"""
    cached = get_tenant_policy_cached(tenant_id)
    if cached:
        try:
            return AvailabilityPolicy.from_dict(cached)
        except TypeError:
            logger.warning(f"⚠️ Discarding malformed cached policy for tenant {tenant_id}")

    policy = resolve_policy(TenantRepository.get_booking_config(db, tenant_id))
    set_tenant_policy_cached(tenant_id, policy.to_dict(), TENANT_POLICY_CACHE_TTL)
    return policy


class CalendarService:
    """Service layer for calendar and availability logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CalendarRepository()
        self.tenants = TenantRepository()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def get_events(
        self,
        context: TenantContext,
        participant_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[CalendarEvent]:
        """Events a participant owns or attends, optionally limited to [start, end)"""
        return self.repo.get_events(
            self.db,
            context.tenant_id,
            participant_id or context.user_id,
            to_utc_naive(start),
            to_utc_naive(end),
        )

    def get_upcoming_events(
        self, context: TenantContext, now: Optional[datetime] = None
    ) -> list[CalendarEvent]:
        """Events in the next 7 days"""
        now = now or datetime.utcnow()
        return self.get_events(context, context.user_id, now, now + timedelta(days=7))

    def get_today_events(
        self, context: TenantContext, now: Optional[datetime] = None
    ) -> list[CalendarEvent]:
        """Events on the caller's current local calendar day"""
        policy = load_tenant_policy(self.db, context.tenant_id)
        today = local_date(policy, now or datetime.utcnow())
        bounds = range_bounds(policy, today, today)
        return self.get_events(context, context.user_id, bounds.start, bounds.end)

    def get_event(self, context: TenantContext, event_id: str) -> CalendarEvent:
        event = self.repo.get_event(self.db, context.tenant_id, event_id)
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        return event

    def get_all_events(self, context: TenantContext, limit: int = 100) -> list[CalendarEvent]:
        if not context.is_admin:
            raise HTTPException(status_code=403, detail="Workspace admin access required")
        return self.repo.get_all_events(self.db, context.tenant_id, limit)

    def create_event(
        self, context: TenantContext, data: EventCreate, force_create: bool = False
    ) -> tuple[Optional[CalendarEvent], Optional[ConflictDetection]]:
        """Create an event unless it conflicts; force_create stores it anyway"""
        owner_id = data.userId or context.user_id
        if owner_id != context.user_id and not self.tenants.get_membership(
            self.db, context.tenant_id, owner_id
        ):
            raise HTTPException(status_code=404, detail="Participant not found")

        start = to_utc_naive(data.startTime)
        end = to_utc_naive(data.endTime)

        conflict = self._check_before_write(context, owner_id, start, end)
        if conflict.has_conflict and not force_create:
            logger.info(f"⛔ Event for {owner_id} not created: scheduling conflict")
            return None, conflict

        event_data = {
            "user_id": owner_id,
            "title": sanitize_string(data.title),
            "description": sanitize_string(data.description),
            "start_time": start,
            "end_time": end,
            "event_type": data.type,
            "attendees": data.attendees,
            "video_room_id": data.videoRoomId,
            "location": sanitize_string(data.location),
            "color": data.color,
            "is_all_day": data.isAllDay,
            "reminder_minutes": data.reminderMinutes,
            "event_metadata": data.metadata,
        }
        try:
            event = self.repo.create_event(self.db, context.tenant_id, **event_data)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create event: {e}")
            raise HTTPException(status_code=503, detail="Could not save event, please try again") from e

        logger.info(f"📅 Created event {event.id} for participant {owner_id}")
        return event, None

    def update_event(
        self,
        context: TenantContext,
        event_id: str,
        data: EventUpdate,
        force_update: bool = False,
    ) -> tuple[Optional[CalendarEvent], Optional[ConflictDetection]]:
        """Update an event; time changes are conflict-checked against other events"""
        event = self.get_event(context, event_id)
        payload = data.model_dump(exclude_unset=True)

        updates = {}
        for field_name, value in payload.items():
            column = EVENT_FIELD_MAP[field_name]
            if value is None and column in REQUIRED_EVENT_COLUMNS:
                raise HTTPException(status_code=400, detail=f"{field_name} cannot be cleared")
            if column in ("start_time", "end_time"):
                value = to_utc_naive(value)
            elif column in ("title", "description", "location"):
                value = sanitize_string(value)
            updates[column] = value

        if "start_time" in updates or "end_time" in updates:
            start = updates.get("start_time", event.start_time)
            end = updates.get("end_time", event.end_time)
            if end < start:
                raise HTTPException(status_code=400, detail="endTime must not be before startTime")

            conflict = self._check_before_write(
                context, event.user_id, start, end, exclude_event_id=event.id
            )
            if conflict.has_conflict and not force_update:
                logger.info(f"⛔ Event {event.id} not moved: scheduling conflict")
                return None, conflict

        try:
            event = self.repo.update_event(self.db, event, **updates)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to update event {event_id}: {e}")
            raise HTTPException(status_code=503, detail="Could not save event, please try again") from e
        return event, None

    def delete_event(self, context: TenantContext, event_id: str) -> dict:
        event = self.get_event(context, event_id)
        try:
            self.repo.delete_event(self.db, event)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to delete event {event_id}: {e}")
            raise HTTPException(status_code=503, detail="Could not delete event, please try again") from e
        logger.info(f"🗑️ Deleted event {event_id}")
        return {"message": "Event deleted successfully"}

    # ------------------------------------------------------------------
    # Conflicts and availability
    # ------------------------------------------------------------------

    def detect_conflicts(
        self,
        context: TenantContext,
        participant_id: str,
        start: datetime,
        end: datetime,
        exclude_event_id: Optional[str] = None,
        strict: bool = False,
    ) -> ConflictDetection:
        policy = load_tenant_policy(self.db, context.tenant_id)
        detector = ConflictDetector(self.db, context.tenant_id, policy)
        return detector.detect_conflicts(
            participant_id, to_utc_naive(start), to_utc_naive(end), exclude_event_id, strict=strict
        )

    def _check_before_write(
        self,
        context: TenantContext,
        participant_id: str,
        start: datetime,
        end: datetime,
        exclude_event_id: Optional[str] = None,
    ) -> ConflictDetection:
        """Strict conflict check; an unreadable calendar blocks the write"""
        try:
            return self.detect_conflicts(
                context, participant_id, start, end, exclude_event_id, strict=True
            )
        except SQLAlchemyError as e:
            raise HTTPException(
                status_code=503, detail="Could not check for conflicts, please try again"
            ) from e

    def get_availability(
        self, context: TenantContext, participant_id: str, start_date: date, end_date: date
    ) -> list[Interval]:
        if end_date < start_date:
            raise HTTPException(status_code=400, detail="end_date must not be before start_date")
        if (end_date - start_date).days > 62:
            raise HTTPException(status_code=400, detail="Date range too large (max 62 days)")
        policy = load_tenant_policy(self.db, context.tenant_id)
        calculator = AvailabilityCalculator(self.db, context.tenant_id, policy)
        return calculator.availability(participant_id, start_date, end_date)

    def find_optimal_meeting_time(
        self,
        context: TenantContext,
        participant_ids: list[str],
        duration_minutes: int,
        preferred_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> list[datetime]:
        """Up to five start times within a week that suit every participant"""
        for participant_id in participant_ids:
            if not self.tenants.get_membership(self.db, context.tenant_id, participant_id):
                raise HTTPException(status_code=404, detail=f"Participant {participant_id} not found")

        now = now or datetime.utcnow()
        policy = load_tenant_policy(self.db, context.tenant_id)
        start_day = preferred_date or local_date(policy, now)
        end_day = start_day + timedelta(days=BOOKING_SEARCH_DAYS)

        calculator = AvailabilityCalculator(self.db, context.tenant_id, policy)
        free = calculator.availability_for_many(participant_ids, start_day, end_day)
        suggestions = find_common_slots(
            free, duration_minutes, participant_order=participant_ids, not_before=now
        )
        logger.info(
            f"🤝 Found {len(suggestions)} common slot(s) for {len(participant_ids)} participants"
        )
        return suggestions

    # ------------------------------------------------------------------
    # Public booking slots
    # ------------------------------------------------------------------

    def get_bookable_tenant(self, tenant_id: str) -> Tenant:
        tenant = self.tenants.get_tenant(self.db, tenant_id)
        if not tenant:
            raise HTTPException(status_code=404, detail="Tenant not found")
        if not tenant.booking_enabled:
            raise HTTPException(status_code=400, detail="Booking is currently disabled for this workspace")
        return tenant

    def get_host_id(self, tenant_id: str) -> str:
        host = self.tenants.get_host(self.db, tenant_id)
        if not host:
            logger.warning(f"⚠️ No admin/owner found for tenant {tenant_id}")
            raise HTTPException(status_code=404, detail="No host available")
        return host.user_id

    def get_available_slots(
        self,
        tenant_id: str,
        day: date,
        duration_minutes: int,
        now: Optional[datetime] = None,
    ) -> SlotResult:
        """Bookable slots on the tenant host's calendar for one day"""
        if duration_minutes <= 0:
            raise HTTPException(status_code=400, detail="Duration must be positive")

        self.get_bookable_tenant(tenant_id)
        policy = load_tenant_policy(self.db, tenant_id)
        window = working_window(policy, day)
        if window is None:
            return generate_slots(policy, day, duration_minutes, [], now or datetime.utcnow())

        host_id = self.get_host_id(tenant_id)
        # Events just outside the window still push slots away by the buffer
        buffer = timedelta(minutes=policy.buffer_time)
        events = self.repo.get_events(
            self.db, tenant_id, host_id, window.start - buffer, window.end + buffer
        )
        logger.info(f"[get_available_slots] Found {len(events)} existing events for host {host_id}")

        result = generate_slots(
            policy,
            day,
            duration_minutes,
            [(e.start_time, e.end_time) for e in events],
            now or datetime.utcnow(),
        )
        logger.info(f"[get_available_slots] Generated {len(result.slots)} slots for {day}")
        return result

    # ------------------------------------------------------------------
    # Policy configuration
    # ------------------------------------------------------------------

    def get_policy(self, context: TenantContext) -> AvailabilityPolicy:
        return load_tenant_policy(self.db, context.tenant_id)

    def update_policy(self, context: TenantContext, data: BookingConfigUpdate) -> AvailabilityPolicy:
        if not context.is_admin:
            raise HTTPException(status_code=403, detail="Workspace admin access required")

        field_map = {
            "workingDays": "working_days",
            "workingHours": "working_hours",
            "timezone": "timezone",
            "slotInterval": "slot_interval",
            "bufferTime": "buffer_time",
            "leadTime": "lead_time",
        }
        updates = {field_map[k]: v for k, v in data.model_dump(exclude_unset=True).items()}
        config = self.tenants.upsert_booking_config(self.db, context.tenant_id, **updates)
        invalidate_tenant_policy_cache(context.tenant_id)
        logger.info(f"⚙️ Updated availability policy for tenant {context.tenant_id}")
        return resolve_policy(config)
