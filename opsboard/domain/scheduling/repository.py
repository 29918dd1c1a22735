"""Calendar repository - Tenant-scoped database operations for events and hosts"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import BookingConfig, CalendarEvent, MeetingType, Tenant, TenantUser

HOST_ROLES = ("owner", "admin")


def involves(event: CalendarEvent, participant_id: str) -> bool:
    """True when the participant owns the event or is listed as an attendee"""
    return event.user_id == participant_id or participant_id in (event.attendees or [])


class CalendarRepository:
    """Repository for calendar event database operations"""

    @staticmethod
    def _range_query(
        db: Session,
        tenant_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ):
        query = db.query(CalendarEvent).filter(CalendarEvent.tenant_id == tenant_id)
        # Overlap with [start, end): the event ends after start and begins before end
        if start is not None:
            query = query.filter(CalendarEvent.end_time > start)
        if end is not None:
            query = query.filter(CalendarEvent.start_time < end)
        return query

    @staticmethod
    def get_events(
        db: Session,
        tenant_id: str,
        participant_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[CalendarEvent]:
        """Events the participant owns or attends that overlap [start, end)"""
        events = (
            CalendarRepository._range_query(db, tenant_id, start, end)
            .order_by(CalendarEvent.start_time.asc())
            .all()
        )
        # Attendee lists are JSON, so membership is checked here rather than in SQL
        return [e for e in events if involves(e, participant_id)]

    @staticmethod
    def get_events_for_participants(
        db: Session,
        tenant_id: str,
        participant_ids: list[str],
        start: datetime,
        end: datetime,
    ) -> dict[str, list[CalendarEvent]]:
        """One read for many participants, grouped per participant"""
        events = (
            CalendarRepository._range_query(db, tenant_id, start, end)
            .order_by(CalendarEvent.start_time.asc())
            .all()
        )
        return {pid: [e for e in events if involves(e, pid)] for pid in participant_ids}

    @staticmethod
    def find_overlapping(
        db: Session,
        tenant_id: str,
        participant_id: str,
        start: datetime,
        end: datetime,
        exclude_event_id: Optional[str] = None,
    ) -> list[CalendarEvent]:
        """Events for the participant overlapping the half-open interval [start, end)"""
        query = CalendarRepository._range_query(db, tenant_id, start, end)
        if exclude_event_id:
            query = query.filter(CalendarEvent.id != exclude_event_id)
        events = query.order_by(CalendarEvent.start_time.asc()).all()
        return [e for e in events if involves(e, participant_id)]

    @staticmethod
    def get_event(db: Session, tenant_id: str, event_id: str) -> Optional[CalendarEvent]:
        return (
            db.query(CalendarEvent)
            .filter(CalendarEvent.id == event_id, CalendarEvent.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_all_events(db: Session, tenant_id: str, limit: int = 100) -> list[CalendarEvent]:
        """All tenant events, newest first (admin view)"""
        return (
            db.query(CalendarEvent)
            .filter(CalendarEvent.tenant_id == tenant_id)
            .order_by(CalendarEvent.start_time.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def create_event(db: Session, tenant_id: str, **event_data) -> CalendarEvent:
        event = CalendarEvent(tenant_id=tenant_id, **event_data)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def update_event(db: Session, event: CalendarEvent, **updates) -> CalendarEvent:
        """Update an event with provided fields"""
        for key, value in updates.items():
            if hasattr(event, key):
                setattr(event, key, value)
        db.commit()
        db.refresh(event)
        return event

    @staticmethod
    def delete_event(db: Session, event: CalendarEvent) -> None:
        db.delete(event)
        db.commit()


class TenantRepository:
    """Repository for tenant configuration lookups"""

    @staticmethod
    def get_tenant(db: Session, tenant_id: str) -> Optional[Tenant]:
        return db.query(Tenant).filter(Tenant.id == tenant_id).first()

    @staticmethod
    def get_booking_config(db: Session, tenant_id: str) -> Optional[BookingConfig]:
        return db.query(BookingConfig).filter(BookingConfig.tenant_id == tenant_id).first()

    @staticmethod
    def upsert_booking_config(db: Session, tenant_id: str, **fields) -> BookingConfig:
        config = TenantRepository.get_booking_config(db, tenant_id)
        if config is None:
            config = BookingConfig(tenant_id=tenant_id)
            db.add(config)
        for key, value in fields.items():
            setattr(config, key, value)
        db.commit()
        db.refresh(config)
        return config

    @staticmethod
    def get_meeting_type(db: Session, tenant_id: str, meeting_type_id: str) -> Optional[MeetingType]:
        return (
            db.query(MeetingType)
            .filter(MeetingType.id == meeting_type_id, MeetingType.tenant_id == tenant_id)
            .first()
        )

    @staticmethod
    def get_meeting_types(db: Session, tenant_id: str) -> list[MeetingType]:
        return (
            db.query(MeetingType)
            .filter(MeetingType.tenant_id == tenant_id, MeetingType.is_active.is_(True))
            .order_by(MeetingType.duration.asc())
            .all()
        )

    @staticmethod
    def get_membership(db: Session, tenant_id: str, user_id: str) -> Optional[TenantUser]:
        return (
            db.query(TenantUser)
            .filter(TenantUser.tenant_id == tenant_id, TenantUser.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_host(db: Session, tenant_id: str) -> Optional[TenantUser]:
        """The tenant's designated host: the owner, else the earliest admin"""
        members = (
            db.query(TenantUser)
            .filter(TenantUser.tenant_id == tenant_id, TenantUser.role.in_(HOST_ROLES))
            .order_by(TenantUser.id.asc())
            .all()
        )
        for role in HOST_ROLES:
            for member in members:
                if member.role == role:
                    return member
        return None
