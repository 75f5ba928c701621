import enum

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from app.extensions import db, login_manager
from app.models.types import UTCDateTime, utcnow


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


class UserRole(str, enum.Enum):
    USER = 'user'
    STAFF = 'staff'
    ADMIN = 'admin'


# --- Models ---
class User(db.Model, UserMixin):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(150), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.Enum(UserRole, native_enum=False, length=10, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.USER,
    )
    created_at = db.Column(UTCDateTime, default=utcnow)
    bookings = db.relationship('Booking', backref='user', lazy='dynamic')

    def __repr__(self):
        return f"User('{self.name}', '{self.email}', '{self.role.value}')"

    @property
    def is_staff(self):
        return self.role in (UserRole.STAFF, UserRole.ADMIN)

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class ApiLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(UTCDateTime, default=utcnow, index=True)
    event_type = db.Column(db.String(100), index=True)
    status = db.Column(db.String(50), index=True)
    details = db.Column(db.Text)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    ip_address = db.Column(db.String(45))
