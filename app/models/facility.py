import enum

from app.extensions import db
from app.models.types import StringArrayType, UTCDateTime, utcnow


def _enum_column(enum_cls, length, **kwargs):
    return db.Column(
        db.Enum(enum_cls, native_enum=False, length=length, values_callable=lambda e: [m.value for m in e]),
        **kwargs,
    )


class SportType(str, enum.Enum):
    BASKETBALL = 'Basketball'
    BADMINTON = 'Badminton'
    TENNIS = 'Tennis'
    FOOTBALL = 'Football'
    VOLLEYBALL = 'Volleyball'
    SWIMMING = 'Swimming'
    FUTSAL = 'Futsal'
    SQUASH = 'Squash'
    TABLE_TENNIS = 'Table Tennis'


class LocationType(str, enum.Enum):
    INDOOR = 'Indoor'
    OUTDOOR = 'Outdoor'


class BookingStatus(str, enum.Enum):
    CONFIRMED = 'confirmed'
    RESCHEDULED = 'rescheduled'
    CANCELLED = 'cancelled'


# Statuses that hold a court
ACTIVE_BOOKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.RESCHEDULED)


class Facility(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    sport_type = _enum_column(SportType, 20, nullable=False)
    location = db.Column(db.String(200), nullable=False, default='')
    location_type = _enum_column(LocationType, 10, nullable=False, default=LocationType.INDOOR)
    description = db.Column(db.Text)
    capacity = db.Column(db.Integer, default=0)
    open_time = db.Column(db.Time)
    close_time = db.Column(db.Time)
    rules = db.Column(StringArrayType, default=list)
    is_multi_sport = db.Column(db.Boolean, default=False, nullable=False)
    shared_sports = db.Column(StringArrayType, default=list)
    active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(UTCDateTime, default=utcnow)

    courts = db.relationship('Court', backref='facility', lazy=True, order_by='Court.id')
    equipment = db.relationship('Equipment', backref='facility', lazy=True, order_by='Equipment.name')
    bookings = db.relationship('Booking', backref='facility', lazy='dynamic')

    def __repr__(self):
        return f"Facility('{self.name}', '{self.sport_type.value}')"

    @property
    def shared_sport_types(self):
        return [SportType(s) for s in (self.shared_sports or [])]

    def active_courts(self):
        return sorted((c for c in self.courts if c.active), key=lambda c: c.name)


class Court(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    facility_id = db.Column(db.Integer, db.ForeignKey('facility.id'), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    active = db.Column(db.Boolean, default=True, nullable=False)
    bookings = db.relationship('Booking', backref='court', lazy='dynamic')
    __table_args__ = (db.UniqueConstraint('facility_id', 'name', name='_facility_court_name_uc'),)

    def __repr__(self):
        return f"Court('{self.name}', facility={self.facility_id}, active={self.active})"


class Booking(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    facility_id = db.Column(db.Integer, db.ForeignKey('facility.id'), nullable=False, index=True)
    court_id = db.Column(db.Integer, db.ForeignKey('court.id'), nullable=False)
    start = db.Column(UTCDateTime, nullable=False)
    end = db.Column(UTCDateTime, nullable=False)
    status = _enum_column(BookingStatus, 12, nullable=False, default=BookingStatus.CONFIRMED, index=True)
    reminder_sent_at = db.Column(UTCDateTime)
    created_at = db.Column(UTCDateTime, default=utcnow)
    equipment_requests = db.relationship('EquipmentRequest', backref='booking', lazy=True)
    __table_args__ = (
        db.Index('ix_booking_court_start', 'court_id', 'start'),
        db.CheckConstraint('start < "end"', name='ck_booking_interval'),
    )

    def __repr__(self):
        return f"Booking(User: {self.user_id}, Court: {self.court_id}, Start: {self.start}, End: {self.end}, {self.status.value})"

    @property
    def duration(self):
        return self.end - self.start

    def is_completed(self, now):
        # Never stored: a booking is past once its end has gone by
        return self.status != BookingStatus.CANCELLED and self.end <= now

    def display_status(self, now):
        if self.is_completed(now):
            return 'completed'
        return self.status.value
