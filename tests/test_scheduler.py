from datetime import timedelta

import pytest

from app.extensions import db, mail
from app.models import BookingStatus, SportType
from app.services import booking_service
from scheduler import send_booking_reminders
from tests.factories import NOW, court_named, make_booking, make_facility


@pytest.fixture
def court(app):
    return court_named(make_facility('Arena', SportType.SQUASH, courts=1), 'Court 1')


def test_reminders_go_out_once(court, player, other_player):
    soon = make_booking(player, court, NOW + timedelta(hours=2))
    make_booking(other_player, court, NOW + timedelta(hours=30))
    make_booking(other_player, court, NOW + timedelta(hours=5), status=BookingStatus.CANCELLED)

    with mail.record_messages() as outbox:
        assert send_booking_reminders(now=NOW) == 1
    assert len(outbox) == 1
    assert outbox[0].recipients == [player.email]
    assert 'Arena' in outbox[0].subject
    assert soon.reminder_sent_at == NOW

    with mail.record_messages() as outbox:
        assert send_booking_reminders(now=NOW) == 0
    assert outbox == []


def test_started_bookings_are_skipped(court, player):
    make_booking(player, court, NOW - timedelta(minutes=10))
    assert send_booking_reminders(now=NOW) == 0


def test_reschedule_rearms_the_reminder(court, player):
    booking = make_booking(player, court, NOW + timedelta(hours=3))
    send_booking_reminders(now=NOW)
    assert booking.reminder_sent_at is not None

    booking_service.reschedule_booking(player, booking.id, NOW + timedelta(hours=6), now=NOW)
    db.session.refresh(booking)
    assert booking.reminder_sent_at is None
    assert send_booking_reminders(now=NOW) == 1
