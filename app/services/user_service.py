import logging

from app.database import lock_row, transaction
from app.errors import InvalidInput, NotFound
from app.models.user import User, UserRole
from app.services.authz import require_admin

logger = logging.getLogger(__name__)


def _role(value):
    try:
        return UserRole(value)
    except ValueError:
        raise InvalidInput('Unknown role.', details={'role': value})


def set_user_role(admin, user_id, role):
    """
    Change a user's role. An admin cannot take the admin role away from
    themselves, so the last admin can never lock everyone out by accident.
    """
    require_admin(admin)
    role = _role(role)
    with transaction():
        user = lock_row(User, user_id)
        if user is None:
            raise NotFound('User not found.', details={'user_id': user_id})
        if user.id == admin.id and role != UserRole.ADMIN:
            raise InvalidInput('You cannot remove your own admin role.', details={'user_id': user_id})
        previous = user.role
        user.role = role
    logger.info('User %s role changed from %s to %s by admin %s', user.id, previous.value, role.value, admin.id)
    return user, previous
