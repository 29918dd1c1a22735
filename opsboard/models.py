import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    memberships = relationship("TenantUser", back_populates="user")


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=generate_id)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    booking_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    members = relationship("TenantUser", back_populates="tenant")
    booking_config = relationship("BookingConfig", back_populates="tenant", uselist=False)
    meeting_types = relationship("MeetingType", back_populates="tenant")


class TenantUser(Base):
    __tablename__ = "tenant_users"
    __table_args__ = (UniqueConstraint("tenant_id", "user_id", name="uq_tenant_user"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String(20), default="member", nullable=False)  # owner, admin, member
    created_at = Column(DateTime, server_default=func.now())

    tenant = relationship("Tenant", back_populates="members")
    user = relationship("User", back_populates="memberships")


class BookingConfig(Base):
    """Per-tenant availability policy. Null columns fall back to defaults."""

    __tablename__ = "booking_configs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), unique=True, nullable=False)
    working_days = Column(JSON, nullable=True)  # [1, 2, 3, 4, 5] (0 = Sunday)
    working_hours = Column(JSON, nullable=True)  # {"start": "09:00", "end": "17:00"}
    timezone = Column(String(64), nullable=True)  # IANA name, e.g. "Europe/London"
    slot_interval = Column(Integer, nullable=True)  # Presentation granularity in minutes
    buffer_time = Column(Integer, nullable=True)  # Minutes between booked slots
    lead_time = Column(Integer, nullable=True)  # Minimum notice in minutes
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="booking_config")


class MeetingType(Base):
    __tablename__ = "meeting_types"
    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uq_meeting_type_slug"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    duration = Column(Integer, default=30, nullable=False)  # minutes
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    tenant = relationship("Tenant", back_populates="meeting_types")


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False, index=True)  # naive UTC
    end_time = Column(DateTime, nullable=False, index=True)  # naive UTC
    # meeting, call, reminder, deadline, task-shadow, invoice-shadow
    event_type = Column(String(30), default="meeting", nullable=False)
    attendees = Column(JSON, default=list, nullable=True)  # participant ids or emails
    video_room_id = Column(String(36), nullable=True)
    location = Column(String(500), nullable=True)
    color = Column(String(7), nullable=True)
    is_all_day = Column(Boolean, default=False, nullable=False)
    reminder_minutes = Column(Integer, default=15, nullable=False)
    event_metadata = Column("metadata", JSON, default=dict, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    assigned_to = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    created_by = Column(String(36), nullable=True)
    project_id = Column(String(36), nullable=True, index=True)
    priority = Column(String(20), default="medium", nullable=False)  # low, medium, high, urgent
    # todo, in_progress, completed, cancelled
    status = Column(String(20), default="todo", nullable=False, index=True)
    start_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True, index=True)
    completed_at = Column(DateTime, nullable=True)
    # Synthetic task mirroring a booked meeting; hidden from boards and counts
    is_booking_shadow = Column(Boolean, default=False, nullable=False, index=True)
    task_metadata = Column("metadata", JSON, default=dict, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    activities = relationship("TaskActivity", back_populates="task", cascade="all, delete-orphan")


class TaskDependency(Base):
    """task_id depends on depends_on_task_id (task_id is the dependent)."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        UniqueConstraint("task_id", "depends_on_task_id", name="uq_task_dependency"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(String(36), ForeignKey("tasks.id"), nullable=False, index=True)
    depends_on_task_id = Column(String(36), ForeignKey("tasks.id"), nullable=False, index=True)
    # finish_to_start, start_to_start, finish_to_finish
    dependency_type = Column(String(30), default="finish_to_start", nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class TaskActivity(Base):
    __tablename__ = "task_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(String(36), ForeignKey("tasks.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False)  # created, updated, due_date_shifted, ...
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    actor_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    task = relationship("Task", back_populates="activities")


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    invoice_number = Column(String(50), nullable=True)
    title = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False, default=0.0)
    currency = Column(String(10), default="USD")
    # draft, sent, paid, overdue, cancelled
    status = Column(String(20), default="draft", nullable=False, index=True)
    due_date = Column(DateTime, nullable=True, index=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Contract(Base):
    __tablename__ = "contracts"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    title = Column(String(255), nullable=False)
    status = Column(String(30), default="draft", nullable=False)  # draft, sent, signed, ...
    total_value = Column(Float, nullable=True)
    payment_status = Column(String(20), default="pending", nullable=False)  # pending, partial, paid
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)  # Payment due marker on the timeline
    created_at = Column(DateTime, server_default=func.now())


class VideoRoom(Base):
    __tablename__ = "video_rooms"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    host_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    room_name = Column(String(255), nullable=False)
    room_url = Column(Text, nullable=True)
    provider = Column(String(30), default="daily", nullable=False)
    status = Column(String(20), default="scheduled", nullable=False)  # scheduled, cancelled
    idempotency_key = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    meeting_type_id = Column(String(36), ForeignKey("meeting_types.id"), nullable=True)
    client_name = Column(String(255), nullable=False)
    client_email = Column(String(255), nullable=False)
    client_phone = Column(String(50), nullable=True)
    client_notes = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    time_zone = Column(String(64), nullable=True)  # Client's timezone for display
    # requested -> slot_validated -> room_provisioned -> event_persisted
    # -> shadow_task_created -> complete (or failed)
    status = Column(String(30), default="requested", nullable=False, index=True)
    host_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    calendar_event_id = Column(String(36), nullable=True)
    video_room_id = Column(String(36), nullable=True)
    shadow_task_id = Column(String(36), nullable=True)
    idempotency_key = Column(String(255), unique=True, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
