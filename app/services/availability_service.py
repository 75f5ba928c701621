"""
Availability for one facility on one local calendar day.

``get_availability`` does every cross-facility lookup once; free-slot
computation and booking suggestions then run on its result without any
further queries.
"""

import logging
from collections import OrderedDict, namedtuple

from flask import current_app

from app.extensions import db
from app.models.facility import ACTIVE_BOOKING_STATUSES, Booking, Facility
from app.services.shared_courts import canonical_court_map
from app.services.slots import compute_free_slots
from app.utils import booking_tz, day_window, parse_time, utcnow

logger = logging.getLogger(__name__)

Availability = namedtuple('Availability', ['facility', 'courts', 'bookings', 'date'])
BookedInterval = namedtuple('BookedInterval', ['id', 'court_id', 'start', 'end', 'status'])
BookingSuggestion = namedtuple(
    'BookingSuggestion',
    [
        'facility_id', 'facility_name', 'court_id', 'court_name', 'date',
        'requested_label', 'suggested_label', 'is_exact_match', 'reason',
    ],
)


def facility_hours(facility):
    """Opening hours, falling back to the configured defaults."""
    open_time = facility.open_time or parse_time(current_app.config['DEFAULT_OPEN_TIME'])
    close_time = facility.close_time or parse_time(current_app.config['DEFAULT_CLOSE_TIME'])
    return open_time, close_time


def get_availability(facility_id, day):
    """
    Load the facility, its active courts and every live booking on the
    linked facility set for ``day``, with court ids remapped onto this
    facility's own courts. Returns None for a missing or inactive facility.
    """
    facility = db.session.get(Facility, facility_id)
    if facility is None or not facility.active:
        return None

    shared = canonical_court_map(facility)
    day_start, day_end = day_window(day, booking_tz())

    rows = (
        Booking.query
        .filter(
            Booking.facility_id.in_(shared.facility_ids),
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.start < day_end,
            Booking.end > day_start,
        )
        .order_by(Booking.start)
        .all()
    )
    bookings = [
        BookedInterval(b.id, shared.canonical.get(b.court_id, b.court_id), b.start, b.end, b.status)
        for b in rows
    ]
    logger.debug(
        'Availability for facility %s on %s: %d courts, %d bookings across facilities %s',
        facility.id, day, len(shared.courts), len(bookings), shared.facility_ids,
    )
    return Availability(facility, shared.courts, bookings, day)


def free_slots_by_court(data, now=None, duration_minutes=None):
    """Map each court in an ``Availability`` to its free start labels."""
    now = now or utcnow()
    day = data.date
    tz = booking_tz()
    slot_minutes = current_app.config['SLOT_MINUTES']
    if duration_minutes is None:
        duration_minutes = slot_minutes
    open_time, close_time = facility_hours(data.facility)

    result = OrderedDict()
    for court in data.courts:
        court_bookings = [b for b in data.bookings if b.court_id == court.id]
        result[court.id] = compute_free_slots(
            day, open_time, close_time, court_bookings, now, tz,
            duration_minutes=duration_minutes, slot_minutes=slot_minutes,
        )
    return result


def _no_suggestion(day, reason, facility=None):
    return BookingSuggestion(
        facility.id if facility else None,
        facility.name if facility else None,
        None, None, day, None, None, False, reason,
    )


def suggest_slot(facility_id, day, requested_hour=None, now=None):
    """
    Suggest a one-hour slot on the facility's first court: the requested
    hour when it is free, otherwise the free hour nearest to it (earliest
    wins a tie), otherwise the first free hour of the day.
    """
    data = get_availability(facility_id, day)
    if data is None:
        return _no_suggestion(day, f'There is no availability data for facility {facility_id} on {day}.')
    facility = data.facility
    if not data.courts:
        return _no_suggestion(day, f'The facility "{facility.name}" does not have any active courts configured.', facility)

    court = data.courts[0]
    open_time, close_time = facility_hours(facility)
    free = compute_free_slots(
        day, open_time, close_time,
        [b for b in data.bookings if b.court_id == court.id],
        now or utcnow(), booking_tz(),
    )
    if not free:
        return _no_suggestion(day, f'There are no free one hour slots for "{facility.name}" on {day}.', facility)

    requested_label = None
    suggested = free[0]
    exact = False
    if requested_hour is not None:
        requested_label = f'{int(requested_hour):02d}:00'
        if requested_label in free:
            suggested = requested_label
            exact = True
        else:
            suggested = min(free, key=lambda label: abs(int(label[:2]) - int(requested_hour)))

    return BookingSuggestion(
        facility.id, facility.name, court.id, court.name, day,
        requested_label, suggested, exact, None,
    )
