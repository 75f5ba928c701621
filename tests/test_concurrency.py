import threading
import time

import pytest

from app import create_app
from app.errors import BookingCoreError
from app.extensions import db
from app.models import Booking, Equipment, EquipmentRequest, SportType, User, UserRole
from app.services import booking_service, equipment_service
from config import TestingConfig
from tests.factories import DAY, NOW, court_named, local, make_equipment, make_facility, make_user


@pytest.fixture
def file_app(tmp_path):
    # Threads need a database they can all open, so no in-memory SQLite here
    config = type('FileConfig', (TestingConfig,), {'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'race.db'}"})
    app = create_app(config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


def race(app, *calls):
    """Run each call in its own thread and app context, return outcome names sorted."""
    results = []

    def worker(call):
        with app.app_context():
            try:
                call()
                results.append('ok')
            except BookingCoreError as error:
                results.append(type(error).__name__)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(call,)) for call in calls]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    return sorted(results)


def slow(monkeypatch, module, name):
    original = getattr(module, name)

    def wrapper(*args, **kwargs):
        result = original(*args, **kwargs)
        time.sleep(0.2)
        return result

    monkeypatch.setattr(module, name, wrapper)


def test_concurrent_creates_for_one_slot(file_app, monkeypatch):
    arena = make_facility('Arena', SportType.BADMINTON, courts=1)
    facility_id = arena.id
    court_id = court_named(arena, 'Court 1').id
    user_ids = [make_user('Player').id, make_user('Other').id]
    # The reads above hold the write lock until the session lets go
    db.session.remove()

    # Widen the window between the clash scan and the insert
    slow(monkeypatch, booking_service, 'find_clash')

    def book(user_id):
        def call():
            user = db.session.get(User, user_id)
            booking_service.create_booking(user, facility_id, court_id, local(DAY, 10), local(DAY, 11), now=NOW)
        return call

    assert race(file_app, *[book(uid) for uid in user_ids]) == ['SlotConflict', 'ok']
    assert Booking.query.count() == 1


def test_concurrent_issues_cannot_oversell(file_app, monkeypatch):
    arena = make_facility('Arena', SportType.BADMINTON, courts=2)
    racket = make_equipment(arena, 'Racket', 5)
    racket_id = racket.id
    staff_id = make_user('Staff', role=UserRole.STAFF).id
    request_ids = []
    for name, court in (('Player', 'Court 1'), ('Other', 'Court 2')):
        booking, _ = booking_service.create_booking(
            make_user(name), arena.id, court_named(arena, court).id, local(DAY, 10), local(DAY, 11),
            equipment_ids=[racket_id], now=NOW,
        )
        request_ids.append(EquipmentRequest.query.filter_by(booking_id=booking.id).one().id)
    db.session.remove()

    slow(monkeypatch, equipment_service, 'lock_rows')

    def issue(request_id):
        def call():
            staff = db.session.get(User, staff_id)
            equipment_service.issue_equipment(staff, request_id, [(racket_id, 3)], now=NOW)
        return call

    assert race(file_app, *[issue(rid) for rid in request_ids]) == ['InsufficientStock', 'ok']
    assert db.session.get(Equipment, racket_id).qty_available == 2
