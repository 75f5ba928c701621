import pytest
from flask import g

from app import create_app
from app.extensions import db
from app.models import UserRole
from config import TestingConfig
from tests.factories import make_user


@pytest.fixture
def app():
    app = create_app(TestingConfig)

    # Requests reuse the fixture's app context, so drop the cached login
    # user after each one or a second client would see the first's user.
    @app.teardown_request
    def forget_login_user(exc):
        g.pop('_login_user', None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def player(app):
    return make_user('Player')


@pytest.fixture
def other_player(app):
    return make_user('Other')


@pytest.fixture
def staff_user(app):
    return make_user('Staff', role=UserRole.STAFF)


@pytest.fixture
def admin_user(app):
    return make_user('Admin', role=UserRole.ADMIN)


@pytest.fixture
def login(app):
    """Return a test client logged in as the given user."""
    def _login(user, password='secret123'):
        client = app.test_client()
        response = client.post('/login', json={'email': user.email, 'password': password})
        assert response.status_code == 200
        return client
    return _login
