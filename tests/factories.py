from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from app.extensions import db
from app.models import Booking, BookingStatus, Court, Equipment, Facility, SportType, User, UserRole

KL = ZoneInfo('Asia/Kuala_Lumpur')
# Fixed clock for service calls; every booking below is after it
NOW = datetime(2030, 6, 1, tzinfo=timezone.utc)
# A Monday
DAY = date(2030, 6, 10)


def local(day, hour, minute=0):
    return datetime.combine(day, time(hour, minute), tzinfo=KL)


def make_user(name, role=UserRole.USER, password='secret123'):
    user = User(name=name, email=f'{name.lower()}@example.com', role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def make_facility(name, sport=SportType.BASKETBALL, courts=2, shared=None,
                  open_time=time(8, 0), close_time=time(22, 0), active=True):
    facility = Facility(
        name=name, sport_type=sport, open_time=open_time, close_time=close_time,
        shared_sports=[s.value for s in shared or []], is_multi_sport=bool(shared), active=active,
    )
    db.session.add(facility)
    db.session.flush()
    for n in range(1, courts + 1):
        db.session.add(Court(facility_id=facility.id, name=f'Court {n}'))
    db.session.commit()
    return facility


def court_named(facility, name):
    return Court.query.filter_by(facility_id=facility.id, name=name).one()


def make_equipment(facility, name, qty):
    equipment = Equipment(facility_id=facility.id, name=name, qty_total=qty, qty_available=qty)
    db.session.add(equipment)
    db.session.commit()
    return equipment


def make_booking(user, court, start, hours=1, status=BookingStatus.CONFIRMED):
    booking = Booking(
        user_id=user.id, facility_id=court.facility_id, court_id=court.id,
        start=start, end=start + timedelta(hours=hours), status=status,
    )
    db.session.add(booking)
    db.session.commit()
    return booking
