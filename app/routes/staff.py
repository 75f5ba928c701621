from flask import Blueprint, jsonify, request

from app.errors import InvalidInput
from app.routes.main import acting_user, json_body
from app.services import equipment_service
from app.services.audit import log_event

staff = Blueprint('staff', __name__)


def request_to_dict(req):
    return {
        'id': req.id,
        'booking_id': req.booking_id,
        'status': req.status.value,
        'resolved': req.is_resolved(),
        'decided_by': req.decided_by,
        'decided_at': req.decided_at.isoformat() if req.decided_at else None,
        'returned_at': req.returned_at.isoformat() if req.returned_at else None,
        'items': [item_to_dict(item) for item in req.items],
    }


def item_to_dict(item):
    return {
        'id': item.id,
        'equipment_id': item.equipment_id,
        'equipment_name': item.equipment.name,
        'qty': item.qty,
        'qty_returned': item.qty_returned,
        'issued_at': item.issued_at.isoformat() if item.issued_at else None,
        'condition': item.condition.value if item.condition else None,
        'dismissed': item.dismissed,
        'damage_notes': item.damage_notes,
    }


def _issue_lines(data):
    items = data.get('items')
    if not isinstance(items, list):
        raise InvalidInput('items must be a list of {equipment_id, qty}.')
    lines = []
    for entry in items:
        if not isinstance(entry, dict):
            raise InvalidInput('items must be a list of {equipment_id, qty}.')
        lines.append((entry.get('equipment_id'), entry.get('qty')))
    return lines


@staff.route('/requests/<int:request_id>/approve', methods=['POST'])
def approve_request(request_id):
    req = equipment_service.approve_request(acting_user(), request_id)
    return jsonify({'success': True, 'request': request_to_dict(req)})


@staff.route('/requests/<int:request_id>/deny', methods=['POST'])
def deny_request(request_id):
    req = equipment_service.deny_request(acting_user(), request_id)
    return jsonify({'success': True, 'request': request_to_dict(req)})


@staff.route('/requests/<int:request_id>/issue', methods=['POST'])
def issue_equipment(request_id):
    lines = _issue_lines(json_body())
    user = acting_user()
    req = equipment_service.issue_equipment(user, request_id, lines)
    log_event('Equipment Issued', 'SUCCESS', {'request_id': req.id, 'items': lines},
              user_id=user.id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'request': request_to_dict(req)})


@staff.route('/items/<int:item_id>/return', methods=['POST'])
def return_equipment(item_id):
    data = json_body()
    user = acting_user()
    item = equipment_service.return_equipment(
        user, item_id, data.get('quantity'), data.get('condition'),
        damage_notes=data.get('damage_notes'),
    )
    log_event('Equipment Returned', 'SUCCESS',
              {'item_id': item.id, 'quantity': data.get('quantity'), 'condition': item.condition.value},
              user_id=user.id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'item': item_to_dict(item), 'request': request_to_dict(item.request)})


@staff.route('/items/<int:item_id>/dismiss', methods=['POST'])
def dismiss_item(item_id):
    item = equipment_service.dismiss_item(acting_user(), item_id)
    return jsonify({'success': True, 'item': item_to_dict(item)})
