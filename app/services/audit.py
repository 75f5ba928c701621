import json
import logging

from sqlalchemy.exc import SQLAlchemyError

from app.extensions import db
from app.models.user import ApiLog

logger = logging.getLogger(__name__)


def log_event(event_type, status, details, user_id=None, ip_address=None):
    """Write one audit row. Called after the business transaction has committed."""
    try:
        log_entry = ApiLog(
            event_type=event_type,
            status=status,
            details=json.dumps(details, ensure_ascii=False, default=str),
            user_id=user_id,
            ip_address=ip_address,
        )
        db.session.add(log_entry)
        db.session.commit()
    except SQLAlchemyError:
        logger.exception('Failed to save audit event %s', event_type)
        db.session.rollback()
