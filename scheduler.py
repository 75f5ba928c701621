import logging
import smtplib
from datetime import timedelta

from flask import current_app
from flask_mail import Message

from app import create_app, db
from app.extensions import mail
from app.models.facility import ACTIVE_BOOKING_STATUSES, Booking
from app.utils import booking_tz, utcnow

logger = logging.getLogger(__name__)


def reminder_message(booking):
    tz = booking_tz()
    start = booking.start.astimezone(tz)
    end = booking.end.astimezone(tz)
    body = "\n".join([
        f"Hi {booking.user.name},",
        "",
        f"This is a reminder of your booking at {booking.facility.name} ({booking.court.name}):",
        f"{start.strftime('%A, %d/%m/%Y')} from {start.strftime('%H:%M')} to {end.strftime('%H:%M')}.",
        "",
        f"Changes and cancellations close {current_app.config['MODIFICATION_WINDOW_MINUTES']} minutes before the start time.",
    ])
    return Message(
        subject=f"Booking reminder: {booking.facility.name} on {start.strftime('%d/%m/%Y')}",
        recipients=[booking.user.email],
        body=body,
    )


# --- SCHEDULED TASK ---
def send_booking_reminders(now=None):
    """
    Mail every live booking that starts within the next
    ``REMINDER_LEAD_HOURS`` and has not been reminded yet, then stamp it.
    A reschedule clears the stamp, so the new time gets its own reminder.
    Returns the number of reminders sent.
    """
    now = now or utcnow()
    horizon = now + timedelta(hours=current_app.config['REMINDER_LEAD_HOURS'])

    bookings = (
        Booking.query
        .filter(
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.reminder_sent_at.is_(None),
            Booking.start > now,
            Booking.start <= horizon,
        )
        .order_by(Booking.start)
        .all()
    )
    if not bookings:
        logger.info('No booking reminders due before %s', horizon.isoformat())
        return 0

    sent = 0
    for booking in bookings:
        try:
            mail.send(reminder_message(booking))
        except (smtplib.SMTPException, OSError):
            # Left unstamped so the next run retries it
            logger.exception('Reminder for booking %s could not be sent', booking.id)
            continue
        booking.reminder_sent_at = now
        db.session.commit()
        sent += 1

    logger.info('Sent %d of %d booking reminders', sent, len(bookings))
    return sent


# --- SCRIPT ENTRY POINT ---
if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        send_booking_reminders()
