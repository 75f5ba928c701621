from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, current_user

from app.errors import InvalidInput, Unauthorized
from app.models.user import User
from app.services.audit import log_event

auth = Blueprint('auth', __name__)


def user_to_dict(user):
    return {'id': user.id, 'name': user.name, 'email': user.email, 'role': user.role.value}


# --- Routes ---
@auth.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or request.form
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        raise InvalidInput('E-mail and password are required.')

    remember = True if data.get('remember') else False
    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password):
        log_event('Login', 'FAILURE', {'email': email}, ip_address=request.remote_addr)
        raise Unauthorized('Login failed. Check your e-mail and password.')

    login_user(user, remember=remember)
    log_event('Login', 'SUCCESS', {'email': email}, user_id=user.id, ip_address=request.remote_addr)
    return jsonify({'success': True, 'user': user_to_dict(user)})


@auth.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'success': True})


@auth.route('/me')
def me():
    if not current_user.is_authenticated:
        raise Unauthorized('You need to be logged in.')
    return jsonify(user_to_dict(current_user))
