from collections import namedtuple
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.errors import InvalidInput
from app.models.facility import BookingStatus
from app.services.slots import compute_free_slots, generate_slot_starts, is_free, overlaps

KL = ZoneInfo('Asia/Kuala_Lumpur')
DAY = date(2025, 6, 10)
BEFORE = datetime(2025, 6, 1, tzinfo=timezone.utc)

Interval = namedtuple('Interval', ['start', 'end', 'status'])


def at(hour, minute=0, day=DAY):
    return datetime.combine(day, time(hour, minute), tzinfo=KL)


def booked(start_hour, end_hour, status=BookingStatus.CONFIRMED):
    return Interval(at(start_hour), at(end_hour), status)


def test_touching_intervals_do_not_overlap():
    assert not overlaps(at(9), at(10), at(10), at(11))
    assert not overlaps(at(10), at(11), at(9), at(10))
    assert overlaps(at(9), at(10, 30), at(10), at(11))
    assert overlaps(at(9), at(12), at(10), at(11))


def test_cancelled_bookings_never_block():
    assert is_free(at(10), at(11), [booked(10, 11, BookingStatus.CANCELLED)])
    assert not is_free(at(10), at(11), [booked(10, 11, BookingStatus.RESCHEDULED)])


def test_full_day_of_hourly_slots():
    free = compute_free_slots(DAY, time(7, 0), time(22, 0), [], BEFORE, KL)
    assert len(free) == 15
    assert free[0] == '07:00'
    assert free[-1] == '21:00'


def test_booked_hour_is_removed():
    free = compute_free_slots(DAY, time(7, 0), time(22, 0), [booked(10, 11)], BEFORE, KL)
    assert '10:00' not in free
    assert '09:00' in free
    assert '11:00' in free
    assert len(free) == 14


def test_started_slots_are_hidden_today():
    now = at(10, 30).astimezone(timezone.utc)
    free = compute_free_slots(DAY, time(7, 0), time(22, 0), [], now, KL)
    assert free[0] == '11:00'


def test_slot_starting_exactly_now_is_hidden():
    free = compute_free_slots(DAY, time(7, 0), time(22, 0), [], at(10), KL)
    assert '10:00' not in free
    assert free[0] == '11:00'


def test_elapsed_filter_uses_local_day():
    # 23:30 UTC on the 9th is already 07:30 on the 10th in Kuala Lumpur
    now = datetime(2025, 6, 9, 23, 30, tzinfo=timezone.utc)
    free = compute_free_slots(DAY, time(7, 0), time(22, 0), [], now, KL)
    assert free[0] == '08:00'


def test_longer_duration_must_fit_before_close():
    free = compute_free_slots(DAY, time(8, 0), time(22, 0), [], BEFORE, KL, duration_minutes=90)
    assert free[-1] == '20:00'
    # 10:00-11:30 would run into the 11:00 booking
    free = compute_free_slots(DAY, time(8, 0), time(22, 0), [booked(11, 12)], BEFORE, KL, duration_minutes=90)
    assert '10:00' not in free
    assert '09:00' in free


def test_no_slots_when_open_window_too_short():
    assert compute_free_slots(DAY, time(8, 0), time(8, 30), [], BEFORE, KL) == []


def test_slot_starts_step_by_granularity():
    starts = list(generate_slot_starts(DAY, time(8, 0), time(10, 0), KL, slot_minutes=30))
    assert [s.strftime('%H:%M') for s in starts] == ['08:00', '08:30', '09:00', '09:30']
    assert all(b - a == timedelta(minutes=30) for a, b in zip(starts, starts[1:]))


def test_zero_granularity_is_rejected():
    with pytest.raises(InvalidInput):
        list(generate_slot_starts(DAY, time(8, 0), time(10, 0), KL, slot_minutes=0))


@pytest.mark.parametrize('duration', [0, -60])
def test_non_positive_duration_is_rejected(duration):
    with pytest.raises(InvalidInput):
        compute_free_slots(DAY, time(8, 0), time(22, 0), [], BEFORE, KL, duration_minutes=duration)
