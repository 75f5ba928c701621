from app.errors import Forbidden, Unauthorized


def require_user(user):
    if user is None or not getattr(user, 'is_authenticated', True):
        raise Unauthorized('You need to be logged in.')
    return user


def require_staff(user):
    require_user(user)
    if not getattr(user, 'is_staff', False):
        raise Forbidden('Staff or admin role required.', details={'user_id': user.id})
    return user


def require_admin(user):
    require_user(user)
    if not getattr(user, 'is_admin', False):
        raise Forbidden('Admins only.', details={'user_id': user.id})
    return user
