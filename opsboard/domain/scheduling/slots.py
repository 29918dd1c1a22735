"""Slot generator - discrete bookable slots for one day under a host's policy.

Pure given its inputs: the host's busy intervals and the reference instant
("now") are passed in, never read from the store or the wall clock here.
All instants are naive UTC; alignment happens on the host's local clock.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from .intervals import overlaps, to_utc_naive
from .policy import AvailabilityPolicy, working_window

# Reasons attached to an empty result
CLOSED = "closed"
FULLY_BOOKED = "fully_booked"

UTC = ZoneInfo("UTC")


@dataclass(frozen=True)
class BookingSlot:
    start: datetime
    end: datetime
    available: bool = True


@dataclass
class SlotResult:
    date: date
    slots: list[BookingSlot] = field(default_factory=list)
    reason: Optional[str] = None

    @property
    def no_availability(self) -> bool:
        return not self.slots


def align_up(instant: datetime, granularity_minutes: int, zone: ZoneInfo) -> datetime:
    """Round a naive-UTC instant up to the next local granularity boundary"""
    if granularity_minutes <= 1:
        return instant
    local = instant.replace(tzinfo=UTC).astimezone(zone)
    minutes = local.hour * 60 + local.minute
    remainder = minutes % granularity_minutes
    if remainder == 0 and local.second == 0 and local.microsecond == 0:
        return instant
    bump = granularity_minutes - remainder
    aligned = local.replace(second=0, microsecond=0) + timedelta(minutes=bump)
    return to_utc_naive(aligned)


def generate_slots(
    policy: AvailabilityPolicy,
    day: date,
    duration_minutes: int,
    busy: Iterable[tuple[datetime, datetime]],
    now: datetime,
) -> SlotResult:
    """Walk the day's working window and emit every slot the host can take.

    Candidates advance by duration + buffer and are realigned to the
    policy's slot interval. A candidate is rejected when it touches an
    existing commitment padded by the buffer on both sides; the next
    candidate then starts once that padded commitment is over. Slots must
    also start strictly after now + lead time.
    """
    window = working_window(policy, day)
    if window is None:
        return SlotResult(date=day, reason=CLOSED)

    duration = timedelta(minutes=duration_minutes)
    buffer = timedelta(minutes=policy.buffer_time)
    earliest = to_utc_naive(now) + timedelta(minutes=policy.lead_time)
    padded = sorted((s - buffer, e + buffer) for s, e in busy)
    zone = policy.zone

    slots: list[BookingSlot] = []
    current = window.start
    while current + duration <= window.end:
        slot_end = current + duration
        blocking = [(s, e) for s, e in padded if overlaps(current, slot_end, s, e)]

        if blocking:
            next_start = max(e for _, e in blocking)
        else:
            if current > earliest:
                slots.append(BookingSlot(start=current, end=slot_end))
            next_start = slot_end + buffer

        current = align_up(next_start, policy.slot_interval, zone)

    return SlotResult(date=day, slots=slots, reason=None if slots else FULLY_BOOKED)
