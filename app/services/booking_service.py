"""
Booking lifecycle: create, reschedule and cancel.

Each operation runs its precondition checks and its writes inside one
transaction. Before any overlap scan the court rows of the whole shared
court group are locked, so two callers racing for the same slot serialize
on those rows and the second one sees the first one's booking.
"""

import logging
from datetime import datetime, timedelta

from flask import current_app

from app.database import lock_row, lock_rows, transaction
from app.errors import (
    Forbidden,
    InvalidInput,
    ModificationWindowClosed,
    NotFound,
    QuotaExceeded,
    SlotConflict,
)
from app.extensions import db
from app.models.equipment import (
    OPEN_REQUEST_STATUSES,
    Equipment,
    EquipmentRequest,
    EquipmentRequestItem,
    EquipmentRequestStatus,
)
from app.models.facility import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus, Court, Facility
from app.services.authz import require_user
from app.services.booking_limits import check_booking_limit
from app.services.shared_courts import related_court_ids
from app.utils import booking_tz, ensure_aware, parse_time, utcnow

logger = logging.getLogger(__name__)


def _distinct_ids(values, field):
    ids = []
    for value in values or []:
        if isinstance(value, bool):
            raise InvalidInput(f'Invalid {field}.', details={field: value})
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            raise InvalidInput(f'Invalid {field}.', details={field: value})
        if parsed not in ids:
            ids.append(parsed)
    return ids


def minutes_until(start, now):
    return (start - now).total_seconds() / 60


def check_modification_window(booking, now, action):
    """Refuse changes once ``MODIFICATION_WINDOW_MINUTES`` or fewer remain."""
    window = current_app.config['MODIFICATION_WINDOW_MINUTES']
    remaining = minutes_until(booking.start, now)
    if remaining <= window:
        raise ModificationWindowClosed(
            f'{action} is not allowed within {window} minutes of start time.',
            details={'booking_id': booking.id, 'minutes_until_start': round(remaining, 2)},
        )


def _load_owned_booking(user, booking_id, lock=False):
    booking = lock_row(Booking, booking_id) if lock else db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFound('Booking not found.', details={'booking_id': booking_id})
    if booking.user_id != user.id:
        raise Forbidden('You can only change your own bookings.', details={'booking_id': booking_id})
    return booking


def find_clash(court_ids, start, end, exclude_id=None):
    """First live booking on any of ``court_ids`` overlapping [start, end)."""
    query = Booking.query.filter(
        Booking.court_id.in_(court_ids),
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.start < end,
        Booking.end > start,
    )
    if exclude_id is not None:
        query = query.filter(Booking.id != exclude_id)
    return query.order_by(Booking.start).first()


def _load_bookable_court(facility_id, court_id):
    facility = db.session.get(Facility, facility_id)
    if facility is None or not facility.active:
        raise NotFound('Facility not found.', details={'facility_id': facility_id})
    court = db.session.get(Court, court_id)
    if court is None or court.facility_id != facility.id or not court.active:
        raise NotFound('That court is no longer available for booking.', details={'court_id': court_id})
    return facility, court


def _load_facility_equipment(facility_id, equipment_ids):
    if not equipment_ids:
        return []
    rows = Equipment.query.filter(Equipment.id.in_(equipment_ids)).all()
    found = {e.id: e for e in rows if e.facility_id == facility_id}
    missing = [eid for eid in equipment_ids if eid not in found]
    if missing:
        raise NotFound('Equipment not found for this facility.', details={'equipment_ids': missing})
    return [found[eid] for eid in equipment_ids]


def create_booking(user, facility_id, court_id, start, end, equipment_ids=None, note=None, now=None, limit_check=None):
    """
    Reserve ``court_id`` for [start, end).

    Returns ``(booking, created)``. When the same user already holds a live
    booking for the same facility, court and start, that booking is returned
    with ``created == False`` instead of inserting a second row.
    """
    require_user(user)
    if not facility_id or not court_id:
        raise InvalidInput('Facility and court are required.')
    ensure_aware(start, 'start')
    ensure_aware(end, 'end')
    if start >= end:
        raise InvalidInput('A booking must end after it starts.', details={'start': start.isoformat(), 'end': end.isoformat()})
    now = now or utcnow()
    if start < now:
        raise InvalidInput('Cannot book a slot that has already started.', details={'start': start.isoformat()})
    equipment_ids = _distinct_ids(equipment_ids, 'equipment_id')
    limit_check = limit_check or check_booking_limit

    with transaction():
        facility, court = _load_bookable_court(facility_id, court_id)
        court_ids = related_court_ids(court)
        lock_rows(Court, court_ids)

        existing = Booking.query.filter(
            Booking.user_id == user.id,
            Booking.facility_id == facility.id,
            Booking.court_id == court.id,
            Booking.start == start,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        ).first()
        if existing is not None:
            logger.info('Duplicate booking request by user %s resolved to booking %s', user.id, existing.id)
            return existing, False

        ok, message = limit_check(user.id, start)
        if not ok:
            raise QuotaExceeded(message, details={'user_id': user.id})

        clash = find_clash(court_ids, start, end)
        if clash is not None:
            raise SlotConflict(
                'Sorry, that time slot has just been taken by someone else.',
                details={'court_id': court.id, 'start': start.isoformat(), 'end': end.isoformat()},
            )

        equipment = _load_facility_equipment(facility.id, equipment_ids)

        booking = Booking(
            user_id=user.id,
            facility_id=facility.id,
            court_id=court.id,
            start=start,
            end=end,
            status=BookingStatus.CONFIRMED,
        )
        db.session.add(booking)

        if equipment:
            request = EquipmentRequest(booking=booking, status=EquipmentRequestStatus.PENDING, note=note)
            request.items = [EquipmentRequestItem(equipment_id=e.id, qty=1, qty_returned=0) for e in equipment]
            db.session.add(request)

        db.session.flush()

    logger.info('Booking %s created: court %s, %s - %s, user %s', booking.id, court.id, start, end, user.id)
    return booking, True


def create_booking_from_suggestion(user, suggestion, now=None):
    """Book the one-hour slot picked by the availability suggestion."""
    if suggestion.reason:
        raise InvalidInput(suggestion.reason)
    if not suggestion.suggested_label:
        raise InvalidInput('No time slot was selected.')
    if not suggestion.court_id:
        raise InvalidInput('No valid court found for this facility.')
    start = datetime.combine(suggestion.date, parse_time(suggestion.suggested_label), tzinfo=booking_tz())
    end = start + timedelta(hours=1)
    return create_booking(user, suggestion.facility_id, suggestion.court_id, start, end, now=now)


def reschedule_booking(user, booking_id, new_start, now=None):
    """
    Move a booking to ``new_start`` keeping its duration. The row is updated
    in place, marked rescheduled, and its reminder marker is cleared.
    """
    require_user(user)
    ensure_aware(new_start, 'new_start')
    now = now or utcnow()

    with transaction():
        booking = _load_owned_booking(user, booking_id, lock=True)
        if booking.status == BookingStatus.CANCELLED:
            raise InvalidInput('Cancelled bookings cannot be rescheduled.', details={'booking_id': booking.id})
        check_modification_window(booking, now, 'Rescheduling')
        if new_start < now:
            raise InvalidInput('Cannot move a booking into the past.', details={'new_start': new_start.isoformat()})

        new_end = new_start + booking.duration
        court_ids = related_court_ids(booking.court)
        lock_rows(Court, court_ids)

        clash = find_clash(court_ids, new_start, new_end, exclude_id=booking.id)
        if clash is not None:
            raise SlotConflict(
                'Time slot is already taken.',
                details={'court_id': booking.court_id, 'start': new_start.isoformat(), 'end': new_end.isoformat()},
            )

        old_start = booking.start
        booking.start = new_start
        booking.end = new_end
        booking.status = BookingStatus.RESCHEDULED
        booking.reminder_sent_at = None

    logger.info('Booking %s rescheduled from %s to %s', booking.id, old_start, new_start)
    return booking


def cancel_booking(user, booking_id, now=None):
    """
    Cancel a booking and close out its open equipment requests. Nothing is
    returned to stock here: items that were never issued never left it.
    """
    require_user(user)
    now = now or utcnow()

    with transaction():
        booking = _load_owned_booking(user, booking_id, lock=True)
        if booking.status == BookingStatus.CANCELLED:
            logger.info('Booking %s already cancelled', booking.id)
            return booking
        check_modification_window(booking, now, 'Cancellation')

        booking.status = BookingStatus.CANCELLED
        closed = 0
        for request in EquipmentRequest.query.filter(
            EquipmentRequest.booking_id == booking.id,
            EquipmentRequest.status.in_(OPEN_REQUEST_STATUSES),
        ).all():
            request.status = EquipmentRequestStatus.DONE
            closed += 1

    logger.info('Booking %s cancelled, %d equipment request(s) closed', booking.id, closed)
    return booking


def existing_bookings_for_reschedule(user, booking_id):
    """Other live bookings on the same physical court, for the reschedule picker."""
    require_user(user)
    booking = _load_owned_booking(user, booking_id)
    court_ids = related_court_ids(booking.court)
    return (
        Booking.query
        .filter(
            Booking.court_id.in_(court_ids),
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.id != booking.id,
        )
        .order_by(Booking.start)
        .all()
    )


def list_user_bookings(user):
    require_user(user)
    return Booking.query.filter_by(user_id=user.id).order_by(Booking.start.desc()).all()
