import logging

from app.database import lock_row, transaction
from app.errors import InvalidInput, NotFound
from app.extensions import db
from app.models.facility import Booking, Court, Facility, LocationType, SportType
from app.services.authz import require_admin
from app.utils import parse_time

logger = logging.getLogger(__name__)


def _sport(value):
    try:
        return SportType(value)
    except ValueError:
        raise InvalidInput('Unknown sport type.', details={'sport_type': value})


def _location_type(value):
    try:
        return LocationType(value)
    except ValueError:
        raise InvalidInput('Unknown location type.', details={'location_type': value})


def _court_count(value):
    if value in (None, ''):
        return 1
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise InvalidInput('Number of courts must be a whole number.', details={'number_of_courts': value})
    if count < 1:
        raise InvalidInput('A facility needs at least one court.', details={'number_of_courts': count})
    return count


def validate_hours(open_time, close_time):
    if open_time is None and close_time is None:
        return None, None
    if open_time is None or close_time is None:
        raise InvalidInput('Both opening and closing times are required.')
    open_time, close_time = parse_time(open_time), parse_time(close_time)
    if open_time >= close_time:
        raise InvalidInput(
            'Opening time must be before closing time.',
            details={'open_time': open_time.strftime('%H:%M'), 'close_time': close_time.strftime('%H:%M')},
        )
    return open_time, close_time


def sync_courts(facility, number_of_courts):
    """
    Keep exactly ``number_of_courts`` courts active: the first N by creation
    order stay (or become) active, the rest are deactivated, and missing
    ones are created as "Court <n>". Courts are never deleted.
    """
    if number_of_courts < 1:
        raise InvalidInput('A facility needs at least one court.', details={'number_of_courts': number_of_courts})
    courts = Court.query.filter_by(facility_id=facility.id).order_by(Court.id).all()
    for index, court in enumerate(courts):
        court.active = index < number_of_courts

    names = {c.name for c in courts}
    next_number = 1
    created = 0
    for _ in range(len(courts), number_of_courts):
        while f'Court {next_number}' in names:
            next_number += 1
        name = f'Court {next_number}'
        names.add(name)
        db.session.add(Court(facility_id=facility.id, name=name, active=True))
        created += 1
    logger.info('Facility %s courts synced to %d (%d created)', facility.id, number_of_courts, created)


def save_facility(admin, data, facility_id=None):
    """Create or update a facility from a validated dict and sync its courts."""
    require_admin(admin)
    name = (data.get('name') or '').strip()
    if not name:
        raise InvalidInput('Facility name is required.')
    sport_type = _sport(data.get('sport_type'))
    shared_sports = []
    for value in data.get('shared_sports') or []:
        sport = _sport(value)
        if sport.value not in shared_sports:
            shared_sports.append(sport.value)
    open_time, close_time = validate_hours(data.get('open_time'), data.get('close_time'))
    rules = [r.strip() for r in data.get('rules') or [] if r and r.strip()]
    number_of_courts = _court_count(data.get('number_of_courts'))

    with transaction():
        if facility_id is None:
            facility = Facility()
            db.session.add(facility)
        else:
            facility = lock_row(Facility, facility_id)
            if facility is None:
                raise NotFound('Facility not found.', details={'facility_id': facility_id})

        facility.name = name
        facility.sport_type = sport_type
        facility.location = data.get('location') or ''
        facility.location_type = _location_type(data.get('location_type') or LocationType.INDOOR.value)
        facility.description = data.get('description') or None
        facility.capacity = data.get('capacity') or 0
        facility.open_time = open_time
        facility.close_time = close_time
        facility.rules = rules
        facility.is_multi_sport = bool(data.get('is_multi_sport'))
        facility.shared_sports = shared_sports
        facility.active = bool(data.get('active', True))
        db.session.flush()
        sync_courts(facility, number_of_courts)

    return facility


def update_hours(admin, facility_id, open_time, close_time):
    require_admin(admin)
    open_time, close_time = validate_hours(open_time, close_time)
    with transaction():
        facility = lock_row(Facility, facility_id)
        if facility is None:
            raise NotFound('Facility not found.', details={'facility_id': facility_id})
        facility.open_time = open_time
        facility.close_time = close_time
    return facility


def set_facility_active(admin, facility_id, active):
    require_admin(admin)
    with transaction():
        facility = lock_row(Facility, facility_id)
        if facility is None:
            raise NotFound('Facility not found.', details={'facility_id': facility_id})
        facility.active = bool(active)
    return facility


def delete_facility(admin, facility_id):
    """Hard delete, refused while any booking still references the facility."""
    require_admin(admin)
    with transaction():
        facility = lock_row(Facility, facility_id)
        if facility is None:
            raise NotFound('Facility not found.', details={'facility_id': facility_id})
        if Booking.query.filter_by(facility_id=facility.id).count() > 0:
            raise InvalidInput('Cannot delete: bookings reference this facility. Deactivate it instead.',
                               details={'facility_id': facility.id})
        for equipment in list(facility.equipment):
            db.session.delete(equipment)
        for court in list(facility.courts):
            db.session.delete(court)
        db.session.delete(facility)
