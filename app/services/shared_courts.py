"""
Multi-sport facilities can share physical courts.

Two facilities are linked when one lists the other's sport type in its
``shared_sports``. Courts are joined across linked facilities by their
literal name: "Court 1" under Basketball and "Court 1" under Volleyball
are the same floor, so a booking on either blocks both.
"""

from collections import namedtuple

from app.models.facility import Court, Facility

SharedCourts = namedtuple('SharedCourts', ['facility_ids', 'courts', 'canonical'])


def is_linked(target, other):
    if other.id == target.id:
        return True
    target_type = target.sport_type.value
    return target_type in (other.shared_sports or []) or other.sport_type.value in (target.shared_sports or [])


def linked_facility_ids(facility):
    """
    Ids of the facility itself, facilities whose ``shared_sports`` name its
    type, and facilities whose type it names. One hop only.

    Inactive siblings are kept: their live bookings still occupy the floor.
    """
    candidates = Facility.query.order_by(Facility.id).all()
    return [f.id for f in candidates if is_linked(facility, f)]


def canonical_court_map(facility):
    """
    Return the facility's own active courts plus a mapping from every
    same-named court in the linked set to the facility's own court id.
    Sibling courts with no namesake here are left out of the mapping.
    """
    facility_ids = linked_facility_ids(facility)
    all_courts = (
        Court.query
        .filter(Court.facility_id.in_(facility_ids), Court.active.is_(True))
        .order_by(Court.name, Court.id)
        .all()
    )
    own_courts = [c for c in all_courts if c.facility_id == facility.id]
    own_by_name = {c.name: c.id for c in own_courts}

    canonical = {}
    for court in all_courts:
        if court.name in own_by_name:
            canonical[court.id] = own_by_name[court.name]
    return SharedCourts(facility_ids, own_courts, canonical)


def related_court_ids(court):
    """Every active court that is physically the same as ``court``, itself included."""
    facility_ids = linked_facility_ids(court.facility)
    rows = (
        Court.query
        .with_entities(Court.id)
        .filter(Court.facility_id.in_(facility_ids), Court.name == court.name, Court.active.is_(True))
        .all()
    )
    ids = {row.id for row in rows}
    ids.add(court.id)
    return sorted(ids)
