from flask import current_app
from sqlalchemy import func

from app.extensions import db
from app.models.facility import ACTIVE_BOOKING_STATUSES, Booking
from app.utils import booking_tz, day_window, week_window


def _count_live_bookings(user_id, window_start, window_end):
    return db.session.query(func.count(Booking.id)).filter(
        Booking.user_id == user_id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.start >= window_start,
        Booking.start < window_end,
    ).scalar()


def check_booking_limit(user_id, start):
    """
    Per-user quota on live bookings, counted on the local day and the local
    Monday-to-Sunday week of ``start``.
    Returns: (ok, message)
    """
    tz = booking_tz()
    max_per_day = current_app.config['MAX_BOOKINGS_PER_DAY']
    max_per_week = current_app.config['MAX_BOOKINGS_PER_WEEK']

    day_start, day_end = day_window(start.astimezone(tz).date(), tz)
    if _count_live_bookings(user_id, day_start, day_end) >= max_per_day:
        return False, f'You have reached the maximum of {max_per_day} bookings for this day.'

    week_start, week_end = week_window(start, tz)
    if _count_live_bookings(user_id, week_start, week_end) >= max_per_week:
        return False, f'You have reached the maximum of {max_per_week} active bookings for this week.'

    return True, ''
