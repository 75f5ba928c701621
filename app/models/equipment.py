import enum

from app.extensions import db
from app.models.types import UTCDateTime, utcnow


class EquipmentRequestStatus(str, enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    DENIED = 'denied'
    DONE = 'done'


OPEN_REQUEST_STATUSES = (EquipmentRequestStatus.PENDING, EquipmentRequestStatus.APPROVED)


class ReturnCondition(str, enum.Enum):
    GOOD = 'good'
    DAMAGED = 'damaged'
    LOST = 'lost'
    NOT_RETURNED = 'not_returned'


def _enum_type(enum_cls, length):
    return db.Enum(enum_cls, native_enum=False, length=length, values_callable=lambda e: [m.value for m in e])


class Equipment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey('facility.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    qty_total = db.Column(db.Integer, nullable=False, default=0)
    qty_available = db.Column(db.Integer, nullable=False, default=0)
    request_items = db.relationship('EquipmentRequestItem', backref='equipment', lazy='dynamic')
    __table_args__ = (
        db.UniqueConstraint('facility_id', 'name', name='_facility_equipment_name_uc'),
        db.CheckConstraint('qty_available >= 0', name='ck_equipment_available_non_negative'),
        db.CheckConstraint('qty_total >= 0', name='ck_equipment_total_non_negative'),
    )

    def __repr__(self):
        return f"Equipment('{self.name}', {self.qty_available}/{self.qty_total})"


class EquipmentRequest(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey('booking.id'), nullable=False, index=True)
    status = db.Column(_enum_type(EquipmentRequestStatus, 10), nullable=False, default=EquipmentRequestStatus.PENDING, index=True)
    note = db.Column(db.Text)
    decided_by = db.Column(db.Integer, db.ForeignKey('user.id'))
    decided_at = db.Column(UTCDateTime)
    returned_at = db.Column(UTCDateTime)
    created_at = db.Column(UTCDateTime, default=utcnow)
    items = db.relationship('EquipmentRequestItem', backref='request', lazy=True, order_by='EquipmentRequestItem.id')

    def __repr__(self):
        return f"EquipmentRequest(Booking: {self.booking_id}, {self.status.value})"

    def is_resolved(self):
        return all(item.is_resolved() for item in self.items)


class EquipmentRequestItem(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    request_id = db.Column(db.Integer, db.ForeignKey('equipment_request.id'), nullable=False)
    equipment_id = db.Column(db.Integer, db.ForeignKey('equipment.id'), nullable=False)
    qty = db.Column(db.Integer, nullable=False, default=1)
    qty_returned = db.Column(db.Integer, nullable=False, default=0)
    issued_at = db.Column(UTCDateTime)
    condition = db.Column(_enum_type(ReturnCondition, 12))
    dismissed = db.Column(db.Boolean, nullable=False, default=False)
    damage_notes = db.Column(db.Text)
    __table_args__ = (
        db.UniqueConstraint('request_id', 'equipment_id', name='_request_equipment_uc'),
        db.CheckConstraint('qty_returned >= 0 AND qty_returned <= qty', name='ck_item_returned_range'),
    )

    def __repr__(self):
        return f"EquipmentRequestItem(Equipment: {self.equipment_id}, {self.qty_returned}/{self.qty})"

    @property
    def outstanding(self):
        return self.qty - self.qty_returned

    @property
    def issued_qty(self):
        # Requested-but-never-issued lines hold nothing from stock yet
        return self.qty if self.issued_at is not None else 0

    def is_resolved(self):
        return self.qty_returned >= self.qty or self.condition == ReturnCondition.LOST
