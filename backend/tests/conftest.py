import os
import sys
import pytest
from flask import g, request_started

# Ensure the backend root (containing the `portal` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from portal import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    LEADERBOARD_PAGE_SIZE = 2
    LEADERBOARD_PLACEHOLDER_NAME = 'Anonymous'
    BAN_DISPLAY_LOCALE = 'fr-FR'
    BAN_DISPLAY_TIMEZONE = 'UTC'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)

    def _reset_cached_user(sender, **extra):
        # The fixture's app context is shared by every test-client request,
        # so drop Flask-Login's per-request user cache between requests.
        g.pop('_login_user', None)

    request_started.connect(_reset_cached_user, application)
    with application.app_context():
        # Ensure models are imported so tables are created
        import portal.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def store(flask_app):
    from portal.store import RecordStore
    return RecordStore()


@pytest.fixture()
def make_account(flask_app, store):
    """Create a credential plus its account record; returns the uid."""
    from portal.models import Credential
    from portal.services.accounts import service

    def _make(email, username=None, password='password', admin=False, ban_end=None):
        credential = Credential(email=email)
        credential.set_password(password)
        db.session.add(credential)
        db.session.commit()
        service.record_login(store, credential.uid, email, username=username, now='2025-01-01T00:00:00.000Z')
        fields = {}
        if admin:
            fields['admin'] = True
        if ban_end is not None:
            fields['banEnd'] = ban_end
        if fields:
            store.update_fields(f'users/{credential.uid}', fields)
        return credential.uid

    return _make


@pytest.fixture()
def login(client):
    def _login(email, password='password'):
        res = client.post('/login', json={'email': email, 'password': password})
        assert res.status_code == 200, res.get_json()
        return res.get_json()['user']

    return _login


@pytest.fixture()
def sio_factory(flask_app, client):
    """Socket.IO clients sharing the HTTP client's session cookie."""
    created = []

    def _connect():
        test_client = socketio.test_client(flask_app, flask_test_client=client, namespace='/ws')
        created.append(test_client)
        return test_client

    yield _connect
    for test_client in created:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass
