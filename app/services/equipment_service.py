"""
Equipment ledger: staff issue and return against booking requests, plus
admin inventory maintenance.

Stock is only ever read after its row is locked, so two concurrent issues
for the same equipment cannot both pass a stale availability check.
"""

import logging
import math

from app.database import lock_row, lock_rows, transaction
from app.errors import (
    IllegalQuantityReduction,
    InsufficientStock,
    InvalidInput,
    NotFound,
    QuantityOutOfRange,
)
from app.extensions import db
from app.models.equipment import (
    Equipment,
    EquipmentRequest,
    EquipmentRequestItem,
    EquipmentRequestStatus,
    ReturnCondition,
)
from app.models.facility import Facility
from app.services.authz import require_admin, require_staff
from app.utils import utcnow

logger = logging.getLogger(__name__)

CLOSED_REQUEST_STATUSES = (EquipmentRequestStatus.DONE, EquipmentRequestStatus.DENIED)


def _whole_number(value, field):
    """Accept ints and integral floats; reject bools, NaN, infinities and fractions."""
    if isinstance(value, bool):
        raise InvalidInput(f'{field} must be a whole number.', details={field: value})
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise InvalidInput(f'{field} must be a whole number.', details={field: value})
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise InvalidInput(f'{field} must be a whole number.', details={field: value})


def normalize_issue_lines(items):
    """
    Collapse ``(equipment_id, qty)`` pairs to one line per equipment,
    keeping the largest quantity asked for, in ascending id order.
    """
    if not items:
        raise InvalidInput('No items to issue.')
    lines = {}
    for equipment_id, qty in items:
        equipment_id = _whole_number(equipment_id, 'equipment_id')
        qty = _whole_number(qty, 'qty')
        if qty <= 0:
            raise InvalidInput('Quantity must be at least 1.', details={'equipment_id': equipment_id, 'qty': qty})
        lines[equipment_id] = max(qty, lines.get(equipment_id, 0))
    return sorted(lines.items())


def _load_open_request(request_id):
    request = lock_row(EquipmentRequest, request_id)
    if request is None:
        raise NotFound('Equipment request not found.', details={'request_id': request_id})
    return request


def issue_equipment(staff, request_id, items, now=None):
    """
    Hand out equipment for a request. ``items`` is a list of
    ``(equipment_id, qty)`` where ``qty`` is the total that should be out
    for that line after this call, so retrying the same call is a no-op.
    """
    require_staff(staff)
    lines = normalize_issue_lines(items)
    now = now or utcnow()

    with transaction():
        request = _load_open_request(request_id)
        if request.status in CLOSED_REQUEST_STATUSES:
            raise InvalidInput(
                f'Equipment request is already {request.status.value}.',
                details={'request_id': request.id, 'status': request.status.value},
            )

        equipment_by_id = {e.id: e for e in lock_rows(Equipment, [eid for eid, _ in lines])}
        existing_items = {item.equipment_id: item for item in request.items}

        # Validate every line before touching stock
        plan = []
        for equipment_id, qty in lines:
            equipment = equipment_by_id.get(equipment_id)
            if equipment is None:
                raise NotFound('Equipment not found.', details={'equipment_id': equipment_id})
            if equipment.facility_id != request.booking.facility_id:
                raise NotFound('Equipment not found for this facility.', details={'equipment_id': equipment_id})
            item = existing_items.get(equipment_id)
            previous = item.issued_qty if item is not None else 0
            delta = qty - previous
            if delta < 0:
                raise IllegalQuantityReduction(
                    f'{equipment.name}: {previous} already issued, use a return to reduce it.',
                    details={'equipment_id': equipment_id, 'issued': previous, 'requested': qty},
                )
            if delta > equipment.qty_available:
                raise InsufficientStock(
                    f'Not enough {equipment.name} available.',
                    details={'equipment_id': equipment_id, 'available': equipment.qty_available, 'needed': delta},
                )
            plan.append((equipment, item, qty, delta))

        for equipment, item, qty, delta in plan:
            if delta > 0:
                equipment.qty_available -= delta
            if item is None:
                item = EquipmentRequestItem(equipment_id=equipment.id, qty=qty, qty_returned=0, issued_at=now)
                request.items.append(item)
            else:
                item.qty = qty
                if item.issued_at is None:
                    item.issued_at = now
                item.dismissed = False
            logger.info('Request %s: issued %s x%d (delta %d)', request.id, equipment.name, qty, delta)

        # Items are out, so the request stays approved until everything is back
        request.status = EquipmentRequestStatus.APPROVED
        if request.decided_at is None:
            request.decided_at = now
            request.decided_by = staff.id

    return request


def return_equipment(staff, item_id, quantity, condition, damage_notes=None, now=None):
    """
    Record a return for one request line. Good returns go back to stock,
    lost ones shrink the fleet, damaged and not-returned leave both counts
    as they are.
    """
    require_staff(staff)
    quantity = _whole_number(quantity, 'quantity')
    try:
        condition = ReturnCondition(condition)
    except ValueError:
        raise InvalidInput('Unknown return condition.', details={'condition': condition})
    now = now or utcnow()

    with transaction():
        item = db.session.get(EquipmentRequestItem, item_id)
        if item is None:
            raise NotFound('Request item not found.', details={'item_id': item_id})
        # Same lock order as issuing: request, then item, then equipment
        request = lock_row(EquipmentRequest, item.request_id)
        item = lock_row(EquipmentRequestItem, item.id)
        if item.issued_at is None:
            raise InvalidInput('This item has not been issued yet.', details={'item_id': item.id})

        outstanding = item.outstanding
        if quantity < 1 or quantity > outstanding:
            raise QuantityOutOfRange(
                f'Invalid quantity, outstanding: {outstanding}',
                details={'item_id': item.id, 'quantity': quantity, 'outstanding': outstanding},
            )

        equipment = lock_row(Equipment, item.equipment_id)
        if condition == ReturnCondition.GOOD:
            equipment.qty_available += quantity
        elif condition == ReturnCondition.LOST:
            equipment.qty_total -= quantity

        item.qty_returned += quantity
        item.condition = condition
        item.damage_notes = damage_notes or None

        db.session.flush()
        items = EquipmentRequestItem.query.filter_by(request_id=request.id).all()
        if all(i.is_resolved() for i in items):
            request.status = EquipmentRequestStatus.DONE
            request.returned_at = now
            logger.info('Request %s fully resolved', request.id)

    logger.info('Item %s: returned %d as %s', item.id, quantity, condition.value)
    return item


def _decide(staff, request_id, status, now):
    require_staff(staff)
    with transaction():
        request = _load_open_request(request_id)
        if request.status != EquipmentRequestStatus.PENDING:
            raise InvalidInput(
                f'Only pending requests can be {status.value}.',
                details={'request_id': request.id, 'status': request.status.value},
            )
        request.status = status
        request.decided_by = staff.id
        request.decided_at = now or utcnow()
    logger.info('Request %s %s by %s', request.id, status.value, staff.id)
    return request


def approve_request(staff, request_id, now=None):
    return _decide(staff, request_id, EquipmentRequestStatus.APPROVED, now)


def deny_request(staff, request_id, now=None):
    return _decide(staff, request_id, EquipmentRequestStatus.DENIED, now)


def dismiss_item(staff, item_id):
    """Hide a line from the equipment status board."""
    require_staff(staff)
    with transaction():
        item = db.session.get(EquipmentRequestItem, item_id)
        if item is None:
            raise NotFound('Request item not found.', details={'item_id': item_id})
        item.dismissed = True
    return item


# --- Admin inventory ---

def upsert_equipment(admin, name, facility_id, qty_total, qty_available, equipment_id=None):
    require_admin(admin)
    name = (name or '').strip()
    if not name:
        raise InvalidInput('Equipment name is required.')
    qty_total = _whole_number(qty_total, 'qty_total')
    qty_available = _whole_number(qty_available, 'qty_available')
    if qty_total < 0 or qty_available < 0:
        raise InvalidInput('Quantities cannot be negative.')
    if qty_available > qty_total:
        raise InvalidInput('Available quantity cannot exceed total quantity.')

    with transaction():
        if db.session.get(Facility, facility_id) is None:
            raise NotFound('Facility not found.', details={'facility_id': facility_id})
        clash = Equipment.query.filter_by(facility_id=facility_id, name=name).first()
        if clash is not None and clash.id != equipment_id:
            raise InvalidInput('An item with this name already exists in this facility.', details={'name': name})

        if equipment_id is None:
            equipment = Equipment(facility_id=facility_id, name=name)
            db.session.add(equipment)
        else:
            equipment = lock_row(Equipment, equipment_id)
            if equipment is None:
                raise NotFound('Equipment not found.', details={'equipment_id': equipment_id})
            equipment.facility_id = facility_id
            equipment.name = name
        equipment.qty_total = qty_total
        equipment.qty_available = qty_available
        db.session.flush()
    return equipment


def delete_equipment(admin, equipment_id):
    require_admin(admin)
    with transaction():
        equipment = lock_row(Equipment, equipment_id)
        if equipment is None:
            raise NotFound('Equipment not found.', details={'equipment_id': equipment_id})
        if EquipmentRequestItem.query.filter_by(equipment_id=equipment.id).count() > 0:
            raise InvalidInput('Cannot delete: equipment is referenced by requests.', details={'equipment_id': equipment.id})
        db.session.delete(equipment)
