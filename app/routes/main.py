from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from app.errors import InvalidInput
from app.services import availability_service, booking_service
from app.services.audit import log_event
from app.utils import booking_tz, parse_date, parse_instant, utcnow

main = Blueprint('main', __name__)


def acting_user():
    """The logged-in user, or None so the services can refuse with Unauthorized."""
    return current_user if current_user.is_authenticated else None


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput('A JSON object body is required.')
    return data


def booking_to_dict(booking, now):
    tz = booking_tz()
    return {
        'id': booking.id,
        'facility_id': booking.facility_id,
        'facility_name': booking.facility.name,
        'court_id': booking.court_id,
        'court_name': booking.court.name,
        'start': booking.start.astimezone(tz).isoformat(),
        'end': booking.end.astimezone(tz).isoformat(),
        'duration_hours': booking.duration.total_seconds() / 3600,
        'status': booking.display_status(now),
        'equipment': [
            item.equipment.name
            for req in booking.equipment_requests
            for item in req.items
        ],
    }


def suggestion_to_dict(suggestion):
    return {
        'facility_id': suggestion.facility_id,
        'facility_name': suggestion.facility_name,
        'court_id': suggestion.court_id,
        'court_name': suggestion.court_name,
        'date': suggestion.date.isoformat(),
        'requested_time': suggestion.requested_label,
        'suggested_time': suggestion.suggested_label,
        'is_exact_match': suggestion.is_exact_match,
        'reason': suggestion.reason,
    }


def _optional_hour(value):
    if value in (None, ''):
        return None
    try:
        hour = int(value)
    except (TypeError, ValueError):
        raise InvalidInput('Hour must be a number between 0 and 23.', details={'hour': value})
    if not 0 <= hour <= 23:
        raise InvalidInput('Hour must be a number between 0 and 23.', details={'hour': value})
    return hour


# --- AVAILABILITY ---
@main.route('/facilities/<int:facility_id>/availability')
def facility_availability(facility_id):
    day = parse_date(request.args.get('date') or utcnow().astimezone(booking_tz()).date().isoformat())
    duration = request.args.get('duration', type=int)

    data = availability_service.get_availability(facility_id, day)
    if data is None:
        return jsonify({'error': 'Facility not found or inactive.'}), 404

    tz = booking_tz()
    free = availability_service.free_slots_by_court(data, duration_minutes=duration)
    return jsonify({
        'facility': {
            'id': data.facility.id,
            'name': data.facility.name,
            'sport_type': data.facility.sport_type.value,
        },
        'date': day.isoformat(),
        'courts': [
            {'id': court.id, 'name': court.name, 'free_slots': free[court.id]}
            for court in data.courts
        ],
        'bookings': [
            {
                'court_id': b.court_id,
                'start': b.start.astimezone(tz).isoformat(),
                'end': b.end.astimezone(tz).isoformat(),
            }
            for b in data.bookings
        ],
    })


@main.route('/facilities/<int:facility_id>/suggest')
def suggest_slot(facility_id):
    day = parse_date(request.args.get('date'))
    hour = _optional_hour(request.args.get('hour'))
    suggestion = availability_service.suggest_slot(facility_id, day, requested_hour=hour)
    return jsonify(suggestion_to_dict(suggestion))


# --- BOOKING LIFECYCLE ---
@main.route('/bookings', methods=['POST'])
def create_booking():
    data = json_body()
    tz = booking_tz()
    booking, created = booking_service.create_booking(
        acting_user(),
        data.get('facility_id'),
        data.get('court_id'),
        parse_instant(data.get('start'), tz),
        parse_instant(data.get('end'), tz),
        equipment_ids=data.get('equipment_ids') or [],
        note=data.get('note'),
    )
    if created:
        log_event('Booking Created', 'SUCCESS',
                  {'booking_id': booking.id, 'court_id': booking.court_id, 'start': booking.start.isoformat()},
                  user_id=booking.user_id, ip_address=request.remote_addr)
    else:
        current_app.logger.info('Duplicate booking submission returned booking %s', booking.id)
    body = {'success': True, 'duplicate': not created, 'booking': booking_to_dict(booking, utcnow())}
    return jsonify(body), 201 if created else 200


@main.route('/bookings/suggested', methods=['POST'])
def create_suggested_booking():
    data = json_body()
    if not data.get('facility_id'):
        raise InvalidInput('Facility is required.')
    day = parse_date(data.get('date'))
    suggestion = availability_service.suggest_slot(data['facility_id'], day, requested_hour=_optional_hour(data.get('hour')))
    booking, created = booking_service.create_booking_from_suggestion(acting_user(), suggestion)
    if created:
        log_event('Booking Created (Suggested)', 'SUCCESS',
                  {'booking_id': booking.id, 'suggested_time': suggestion.suggested_label},
                  user_id=booking.user_id, ip_address=request.remote_addr)
    return jsonify({
        'success': True,
        'duplicate': not created,
        'suggestion': suggestion_to_dict(suggestion),
        'booking': booking_to_dict(booking, utcnow()),
    }), 201 if created else 200


@main.route('/bookings/<int:booking_id>/reschedule', methods=['POST'])
def reschedule_booking(booking_id):
    data = json_body()
    new_start = parse_instant(data.get('new_start'), booking_tz())
    booking = booking_service.reschedule_booking(acting_user(), booking_id, new_start)
    log_event('Booking Rescheduled', 'SUCCESS',
              {'booking_id': booking.id, 'start': booking.start.isoformat(), 'end': booking.end.isoformat()},
              user_id=booking.user_id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'booking': booking_to_dict(booking, utcnow())})


@main.route('/bookings/<int:booking_id>/cancel', methods=['POST'])
def cancel_booking(booking_id):
    booking = booking_service.cancel_booking(acting_user(), booking_id)
    log_event('Booking Cancelled', 'SUCCESS', {'booking_id': booking.id},
              user_id=booking.user_id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'booking': booking_to_dict(booking, utcnow())})


@main.route('/bookings/<int:booking_id>/existing')
def existing_bookings(booking_id):
    rows = booking_service.existing_bookings_for_reschedule(acting_user(), booking_id)
    return jsonify([
        {
            'id': b.id,
            'start': b.start.isoformat(),
            'end': b.end.isoformat(),
            'status': b.status.value,
        }
        for b in rows
    ])


@main.route('/my-bookings')
def my_bookings():
    now = utcnow()
    bookings = booking_service.list_user_bookings(acting_user())
    return jsonify([booking_to_dict(b, now) for b in bookings])
