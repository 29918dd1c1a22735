"""
Scheduling Domain

Conflict-aware calendar for tenant participants and the availability engine
behind public booking.

Layout:
- intervals.py     half-open interval overlap, merge and gap finding (pure)
- policy.py        availability policy defaults and working windows (pure)
- slots.py         bookable slot generation for one day (pure)
- multi_party.py   common free start times across participants (pure)
- availability.py  free gaps per participant over a date range
- conflicts.py     advisory conflict detection with suggested times
- repository.py    tenant-scoped event, host and config queries
- service.py       CalendarService used by the routers and the booking flow
- router.py        /calendar endpoints (policy endpoints live under /booking/config)
"""

from .router import router

__all__ = ["router"]
