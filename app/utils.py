# app/utils.py
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from app.errors import InvalidInput


def booking_tz():
    """Fixed local zone used for every day boundary and "today" check."""
    name = current_app.config.get('BOOKING_TIMEZONE', 'Asia/Kuala_Lumpur')
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        current_app.logger.error('Unknown BOOKING_TIMEZONE %r, falling back to UTC+8', name)
        return timezone(timedelta(hours=8))


def utcnow():
    return datetime.now(timezone.utc)


def day_window(day, tz):
    """Return the aware [start, end) instants covering a local calendar day."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def week_window(moment, tz):
    """Local Monday 00:00 to the following Monday 00:00 around ``moment``."""
    local_day = moment.astimezone(tz).date()
    monday = local_day - timedelta(days=local_day.weekday())
    start, _ = day_window(monday, tz)
    end, _ = day_window(monday + timedelta(days=7), tz)
    return start, end


def parse_date(value):
    """
    Parse a yyyy-mm-dd string.
    Example:
        Input: "2025-06-10"
        Output: date(2025, 6, 10)
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(value or '', '%Y-%m-%d').date()
    except ValueError:
        raise InvalidInput('Date must be in yyyy-mm-dd format.', details={'date': value})


def parse_time(value):
    """Parse "HH:MM" (or "HH:MM:SS") into a time of day."""
    if isinstance(value, time):
        return value
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(value or '', fmt).time()
        except ValueError:
            continue
    raise InvalidInput('Time must be in HH:MM format.', details={'time': value})


def parse_instant(value, tz):
    """
    Parse an ISO-8601 timestamp. Values without an offset are read as local
    booking time.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value)
        except (TypeError, ValueError):
            raise InvalidInput('Timestamp must be ISO-8601.', details={'value': value})
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


def ensure_aware(value, field):
    if not isinstance(value, datetime) or value.tzinfo is None:
        raise InvalidInput(f'{field} must be a timezone-aware datetime.', details={field: str(value)})
    return value
