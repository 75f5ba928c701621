from datetime import date, datetime, time, timezone

import pytest

from app.errors import SlotConflict
from app.extensions import db
from app.models import BookingStatus, SportType
from app.services import availability_service, booking_service
from app.services.shared_courts import canonical_court_map, linked_facility_ids, related_court_ids
from tests.factories import KL, court_named, make_booking, make_facility

JUNE_10 = date(2025, 6, 10)
BEFORE = datetime(2025, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def hall(app):
    basketball = make_facility('Hall Basketball', SportType.BASKETBALL, shared=[SportType.VOLLEYBALL])
    volleyball = make_facility('Hall Volleyball', SportType.VOLLEYBALL, shared=[SportType.BASKETBALL])
    tennis = make_facility('Tennis', SportType.TENNIS)
    return basketball, volleyball, tennis


def at(hour):
    return datetime.combine(JUNE_10, time(hour), tzinfo=KL)


def test_linked_set_includes_self_and_siblings(hall):
    basketball, volleyball, tennis = hall
    assert linked_facility_ids(basketball) == sorted([basketball.id, volleyball.id])
    assert linked_facility_ids(tennis) == [tennis.id]


def test_one_sided_listing_still_links(app):
    futsal = make_facility('Futsal', SportType.FUTSAL, shared=[SportType.FOOTBALL])
    football = make_facility('Football', SportType.FOOTBALL)
    assert futsal.id in linked_facility_ids(football)
    assert football.id in linked_facility_ids(futsal)


def test_linking_is_one_hop(app):
    a = make_facility('A', SportType.BASKETBALL, shared=[SportType.VOLLEYBALL])
    b = make_facility('B', SportType.VOLLEYBALL, shared=[SportType.BADMINTON])
    c = make_facility('C', SportType.BADMINTON)
    assert c.id not in linked_facility_ids(a)
    assert b.id in linked_facility_ids(c)


def test_related_courts_join_by_name(hall):
    basketball, volleyball, tennis = hall
    b1 = court_named(basketball, 'Court 1')
    v1 = court_named(volleyball, 'Court 1')
    v2 = court_named(volleyball, 'Court 2')
    related = related_court_ids(b1)
    assert related == sorted([b1.id, v1.id])
    assert v2.id not in related
    assert related_court_ids(court_named(tennis, 'Court 1')) == [court_named(tennis, 'Court 1').id]


def test_inactive_court_still_relates_to_itself(hall):
    basketball, volleyball, _ = hall
    b1 = court_named(basketball, 'Court 1')
    b1.active = False
    db.session.commit()
    assert related_court_ids(b1) == sorted([b1.id, court_named(volleyball, 'Court 1').id])


def test_canonical_map_points_siblings_at_own_courts(hall):
    basketball, volleyball, _ = hall
    shared = canonical_court_map(basketball)
    b1 = court_named(basketball, 'Court 1')
    v1 = court_named(volleyball, 'Court 1')
    assert [c.name for c in shared.courts] == ['Court 1', 'Court 2']
    assert shared.canonical[v1.id] == b1.id
    assert shared.canonical[b1.id] == b1.id


def test_sibling_booking_blocks_availability(hall, player):
    basketball, volleyball, _ = hall
    make_booking(player, court_named(volleyball, 'Court 1'), at(18))

    data = availability_service.get_availability(basketball.id, JUNE_10)
    b1 = court_named(basketball, 'Court 1')
    b2 = court_named(basketball, 'Court 2')
    assert [b.court_id for b in data.bookings] == [b1.id]

    free = availability_service.free_slots_by_court(data, now=BEFORE)
    assert '18:00' not in free[b1.id]
    assert '18:00' in free[b2.id]
    assert '17:00' in free[b1.id] and '19:00' in free[b1.id]


def test_sibling_booking_blocks_create(hall, player, other_player):
    basketball, volleyball, _ = hall
    make_booking(player, court_named(volleyball, 'Court 1'), at(18))
    with pytest.raises(SlotConflict):
        booking_service.create_booking(
            other_player, basketball.id, court_named(basketball, 'Court 1').id, at(18), at(19), now=BEFORE,
        )
    booking, created = booking_service.create_booking(
        other_player, basketball.id, court_named(basketball, 'Court 2').id, at(18), at(19), now=BEFORE,
    )
    assert created


def test_booking_blocks_the_sibling_facility_both_ways(hall, player, other_player):
    basketball, volleyball, _ = hall
    make_booking(player, court_named(basketball, 'Court 1'), at(18))
    v1 = court_named(volleyball, 'Court 1')
    v2 = court_named(volleyball, 'Court 2')

    data = availability_service.get_availability(volleyball.id, JUNE_10)
    free = availability_service.free_slots_by_court(data, now=BEFORE)
    assert '18:00' not in free[v1.id]
    assert '18:00' in free[v2.id]

    with pytest.raises(SlotConflict):
        booking_service.create_booking(other_player, volleyball.id, v1.id, at(18), at(19), now=BEFORE)


def test_inactive_sibling_still_blocks(hall, player, other_player):
    basketball, volleyball, _ = hall
    make_booking(player, court_named(volleyball, 'Court 1'), at(18))
    volleyball.active = False
    db.session.commit()
    with pytest.raises(SlotConflict):
        booking_service.create_booking(
            other_player, basketball.id, court_named(basketball, 'Court 1').id, at(18), at(19), now=BEFORE,
        )


def test_cancelled_sibling_booking_frees_the_floor(hall, player):
    basketball, volleyball, _ = hall
    make_booking(player, court_named(volleyball, 'Court 1'), at(18), status=BookingStatus.CANCELLED)
    data = availability_service.get_availability(basketball.id, JUNE_10)
    assert data.bookings == []


def test_availability_missing_or_inactive_facility(hall):
    basketball, _, _ = hall
    assert availability_service.get_availability(9999, JUNE_10) is None
    basketball.active = False
    db.session.commit()
    assert availability_service.get_availability(basketball.id, JUNE_10) is None


def test_booking_crossing_midnight_shows_on_both_days(hall, player):
    basketball, _, _ = hall
    b1 = court_named(basketball, 'Court 1')
    make_booking(player, b1, at(23), hours=2)
    today = availability_service.get_availability(basketball.id, JUNE_10)
    tomorrow = availability_service.get_availability(basketball.id, date(2025, 6, 11))
    assert len(today.bookings) == 1
    assert len(tomorrow.bookings) == 1
