"""
Slot generation and the overlap engine.

Nothing in here touches the database; callers hand in facility hours and
the bookings already loaded for a court.
"""

from datetime import datetime, timedelta

from app.errors import InvalidInput
from app.models.facility import BookingStatus


def overlaps(a_start, a_end, b_start, b_end):
    # Half-open intervals: touching endpoints are not a conflict
    return a_start < b_end and a_end > b_start


def is_free(start, end, bookings):
    """True when [start, end) clashes with none of the live ``bookings``."""
    for booking in bookings:
        if getattr(booking, 'status', None) == BookingStatus.CANCELLED:
            continue
        if overlaps(start, end, booking.start, booking.end):
            return False
    return True


def generate_slot_starts(day, open_time, close_time, tz, slot_minutes=60, duration_minutes=None):
    """
    Yield aware start times on ``day`` from ``open_time`` in ``slot_minutes``
    steps, stopping at the last start whose slot still ends by ``close_time``.
    """
    if slot_minutes <= 0:
        raise InvalidInput('Slot granularity must be positive.', details={'slot_minutes': slot_minutes})
    if duration_minutes is None:
        duration_minutes = slot_minutes
    elif duration_minutes <= 0:
        raise InvalidInput('Booking duration must be positive.', details={'duration_minutes': duration_minutes})
    step = timedelta(minutes=slot_minutes)
    duration = timedelta(minutes=duration_minutes)
    current = datetime.combine(day, open_time, tzinfo=tz)
    close = datetime.combine(day, close_time, tzinfo=tz)
    while current + duration <= close:
        yield current
        current += step


def slot_label(moment, tz):
    return moment.astimezone(tz).strftime('%H:%M')


def compute_free_slots(day, open_time, close_time, court_bookings, now, tz, duration_minutes=60, slot_minutes=60):
    """
    Return the "HH:MM" labels of every slot on ``day`` that is free on one
    court. On the current local day, slots that have already started are
    left out entirely.
    """
    is_today = now.astimezone(tz).date() == day
    duration = timedelta(minutes=duration_minutes)
    free = []
    for start in generate_slot_starts(day, open_time, close_time, tz, slot_minutes, duration_minutes):
        if is_today and start <= now:
            continue
        if is_free(start, start + duration, court_bookings):
            free.append(slot_label(start, tz))
    return free
