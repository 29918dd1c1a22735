"""Availability policy - the single place where booking defaults are resolved"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .intervals import Interval, to_utc_naive

logger = logging.getLogger(__name__)

# Weekdays use the 0 = Sunday ... 6 = Saturday numbering stored in booking configs
DEFAULT_WORKING_DAYS = [1, 2, 3, 4, 5]
DEFAULT_WORKING_HOURS = {"start": "09:00", "end": "17:00"}
DEFAULT_TIMEZONE = "UTC"
DEFAULT_SLOT_INTERVAL = 15
DEFAULT_BUFFER_TIME = 15
DEFAULT_LEAD_TIME = 60


@dataclass(frozen=True)
class AvailabilityPolicy:
    """Fully-populated working-hours policy for a host or tenant"""

    working_days: list[int] = field(default_factory=lambda: list(DEFAULT_WORKING_DAYS))
    start: str = DEFAULT_WORKING_HOURS["start"]
    end: str = DEFAULT_WORKING_HOURS["end"]
    timezone: str = DEFAULT_TIMEZONE
    slot_interval: int = DEFAULT_SLOT_INTERVAL
    buffer_time: int = DEFAULT_BUFFER_TIME
    lead_time: int = DEFAULT_LEAD_TIME

    @property
    def zone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"⚠️ Unknown timezone '{self.timezone}', falling back to UTC")
            return ZoneInfo(DEFAULT_TIMEZONE)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AvailabilityPolicy":
        return cls(**data)


def weekday_index(day: date) -> int:
    """Weekday as 0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7


def parse_time_of_day(value: str) -> time:
    """Parse "HH:MM" into a time. "24:00" is not accepted."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def resolve_policy(config=None) -> AvailabilityPolicy:
    """Build a complete policy from a BookingConfig row (or None).

    Any field left unset on the row falls back to the Mon-Fri 09:00-17:00
    defaults, so callers never see a partially configured policy.
    """
    if config is None:
        return AvailabilityPolicy()

    hours = config.working_hours or {}
    days = config.working_days
    if not days:
        days = list(DEFAULT_WORKING_DAYS)

    return AvailabilityPolicy(
        working_days=sorted({int(d) for d in days if 0 <= int(d) <= 6}),
        start=hours.get("start") or DEFAULT_WORKING_HOURS["start"],
        end=hours.get("end") or DEFAULT_WORKING_HOURS["end"],
        timezone=config.timezone or DEFAULT_TIMEZONE,
        slot_interval=config.slot_interval or DEFAULT_SLOT_INTERVAL,
        buffer_time=config.buffer_time if config.buffer_time is not None else DEFAULT_BUFFER_TIME,
        lead_time=config.lead_time if config.lead_time is not None else DEFAULT_LEAD_TIME,
    )


def is_working_day(policy: AvailabilityPolicy, day: date) -> bool:
    return weekday_index(day) in policy.working_days


def working_window(policy: AvailabilityPolicy, day: date) -> Optional[Interval]:
    """The day's working window as a naive-UTC interval, or None if closed.

    The hours are wall-clock times in the policy timezone, so the UTC window
    moves with daylight saving transitions.
    """
    if not is_working_day(policy, day):
        return None

    zone = policy.zone
    start_local = datetime.combine(day, parse_time_of_day(policy.start), tzinfo=zone)
    end_local = datetime.combine(day, parse_time_of_day(policy.end), tzinfo=zone)
    if end_local <= start_local:
        return None
    return Interval(to_utc_naive(start_local), to_utc_naive(end_local))


def local_date(policy: AvailabilityPolicy, instant: datetime) -> date:
    """Calendar date of a naive-UTC instant in the policy timezone"""
    aware = instant.replace(tzinfo=ZoneInfo("UTC")) if instant.tzinfo is None else instant
    return aware.astimezone(policy.zone).date()


def days_in_range(start_day: date, end_day: date) -> list[date]:
    """Inclusive list of calendar days from start_day to end_day"""
    days = []
    current = start_day
    while current <= end_day:
        days.append(current)
        current += timedelta(days=1)
    return days
