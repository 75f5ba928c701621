from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from app.errors import InvalidInput
from app.forms.forms import EquipmentForm, FacilityForm, HoursForm
from app.models.equipment import Equipment
from app.models.facility import Facility
from app.models.user import User
from app.routes.auth import user_to_dict
from app.routes.main import acting_user, json_body
from app.services import equipment_service, facility_service, user_service
from app.services.audit import log_event
from app.services.authz import require_admin

admin = Blueprint('admin', __name__)


# --- Admin Required Decorator ---
def admin_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        require_admin(acting_user())
        return f(*args, **kwargs)
    return decorated_function


def _validated(form):
    if not form.validate_on_submit():
        raise InvalidInput('Please correct the highlighted fields.', details=form.errors)
    return form


def facility_to_dict(facility):
    return {
        'id': facility.id,
        'name': facility.name,
        'sport_type': facility.sport_type.value,
        'location': facility.location,
        'location_type': facility.location_type.value if facility.location_type else None,
        'description': facility.description,
        'capacity': facility.capacity,
        'open_time': facility.open_time.strftime('%H:%M') if facility.open_time else None,
        'close_time': facility.close_time.strftime('%H:%M') if facility.close_time else None,
        'rules': list(facility.rules or []),
        'is_multi_sport': facility.is_multi_sport,
        'shared_sports': list(facility.shared_sports or []),
        'active': facility.active,
        'courts': [{'id': c.id, 'name': c.name, 'active': c.active} for c in facility.courts],
    }


def equipment_to_dict(equipment):
    return {
        'id': equipment.id,
        'facility_id': equipment.facility_id,
        'name': equipment.name,
        'qty_total': equipment.qty_total,
        'qty_available': equipment.qty_available,
    }


# --- Facility management ---
@admin.route('/facilities')
@admin_required
def facilities_list():
    facilities = Facility.query.order_by(Facility.name).all()
    return jsonify([facility_to_dict(f) for f in facilities])


@admin.route('/facilities', methods=['POST'])
@admin_required
def add_facility():
    form = _validated(FacilityForm())
    facility = facility_service.save_facility(acting_user(), form.to_dict())
    current_app.logger.info('Facility %s created', facility.id)
    return jsonify({'success': True, 'facility': facility_to_dict(facility)}), 201


@admin.route('/facilities/<int:facility_id>', methods=['POST'])
@admin_required
def edit_facility(facility_id):
    form = _validated(FacilityForm())
    facility = facility_service.save_facility(acting_user(), form.to_dict(), facility_id=facility_id)
    return jsonify({'success': True, 'facility': facility_to_dict(facility)})


@admin.route('/facilities/<int:facility_id>/hours', methods=['POST'])
@admin_required
def facility_hours(facility_id):
    form = _validated(HoursForm())
    facility = facility_service.update_hours(acting_user(), facility_id, form.open_time.data, form.close_time.data)
    return jsonify({'success': True, 'facility': facility_to_dict(facility)})


@admin.route('/facilities/<int:facility_id>/active', methods=['POST'])
@admin_required
def facility_active(facility_id):
    active = request.values.get('active', '').lower() in ('1', 'true', 'y', 'yes', 'on')
    facility = facility_service.set_facility_active(acting_user(), facility_id, active)
    return jsonify({'success': True, 'facility': facility_to_dict(facility)})


@admin.route('/facilities/<int:facility_id>/delete', methods=['POST'])
@admin_required
def delete_facility(facility_id):
    facility_service.delete_facility(acting_user(), facility_id)
    current_app.logger.info('Facility %s deleted', facility_id)
    return jsonify({'success': True})


# --- Equipment inventory ---
@admin.route('/equipment')
@admin_required
def equipment_list():
    query = Equipment.query
    facility_id = request.args.get('facility_id', type=int)
    if facility_id:
        query = query.filter_by(facility_id=facility_id)
    return jsonify([equipment_to_dict(e) for e in query.order_by(Equipment.name).all()])


@admin.route('/equipment', methods=['POST'])
@admin.route('/equipment/<int:equipment_id>', methods=['POST'])
@admin_required
def save_equipment(equipment_id=None):
    form = _validated(EquipmentForm())
    qty_available = form.qty_available.data
    if qty_available is None:
        qty_available = form.qty_total.data
    equipment = equipment_service.upsert_equipment(
        acting_user(), form.name.data, form.facility_id.data,
        form.qty_total.data, qty_available, equipment_id=equipment_id,
    )
    status = 201 if equipment_id is None else 200
    return jsonify({'success': True, 'equipment': equipment_to_dict(equipment)}), status


@admin.route('/equipment/<int:equipment_id>/delete', methods=['POST'])
@admin_required
def delete_equipment(equipment_id):
    equipment_service.delete_equipment(acting_user(), equipment_id)
    return jsonify({'success': True})


# --- User management ---
@admin.route('/users')
@admin_required
def users_list():
    page = request.args.get('page', 1, type=int)
    query = User.query
    search = (request.args.get('query') or '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.filter(User.name.ilike(pattern) | User.email.ilike(pattern))
    users = query.order_by(User.name).paginate(page=page, per_page=20, error_out=False)
    return jsonify({
        'users': [user_to_dict(u) for u in users.items],
        'page': users.page,
        'pages': users.pages,
        'total': users.total,
    })


@admin.route('/users/<int:user_id>/role', methods=['POST'])
@admin_required
def set_user_role(user_id):
    role = json_body().get('role') if request.is_json else request.form.get('role')
    admin_user = acting_user()
    user, previous = user_service.set_user_role(admin_user, user_id, role)
    log_event('User Role Changed', 'SUCCESS',
              {'user_id': user.id, 'from': previous.value, 'to': user.role.value},
              user_id=admin_user.id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'user': user_to_dict(user)})
