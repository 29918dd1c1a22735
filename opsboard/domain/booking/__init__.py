"""
Booking Domain

Public booking pages: meeting types, bookable slots and the booking flow
that reserves the host's calendar, opens a video room and mirrors the
meeting as a shadow task.
"""

from .router import router

__all__ = ["router"]
