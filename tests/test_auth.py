import pytest

import config
from app import create_app
from conftest import PASSWORD
from database import db
from models import User
from services import accounts
from services.errors import Conflict, ValidationFailed


def test_register_creates_pending_user_and_alerts_admins(app, client, factory, sent_emails):
    admin = factory.admin()

    res = client.post('/auth/register', json={'email': 'New@Example.com', 'password': 'long-enough-pw', 'name': 'Newbie'})

    assert res.status_code == 201
    user = res.get_json()['user']
    assert user['role'] == 'PENDING'
    assert user['email'] == 'new@example.com'
    assert sent_emails[0]['to'] == [admin.email]
    with app.app_context():
        assert db.session.get(User, user['id']).admin_notified is True


def test_register_without_email_provider_still_succeeds(app, client):
    res = client.post('/auth/register', json={'email': 'quiet@example.com', 'password': 'long-enough-pw'})

    assert res.status_code == 201
    with app.app_context():
        assert User.query.filter_by(email='quiet@example.com').one().admin_notified is False


@pytest.mark.parametrize('body', [
    {'email': 'not-an-email', 'password': 'long-enough-pw'},
    {'email': 'short@example.com', 'password': 'short'},
])
def test_register_validation(client, body):
    assert client.post('/auth/register', json=body).status_code == 400


@pytest.mark.parametrize('body', [
    {'email': 12345, 'password': 'long-enough-pw'},
    {'email': ['a@example.com'], 'password': 'long-enough-pw'},
    {'email': 'typed@example.com', 'password': 123456789},
    {'email': 'typed@example.com', 'password': None},
    {'email': 'typed@example.com', 'password': 'long-enough-pw', 'name': 42},
])
def test_register_rejects_wrongly_typed_fields(client, body):
    res = client.post('/auth/register', json=body)
    assert res.status_code == 400
    assert res.get_json()['success'] is False


def test_bootstrap_admin_creates_first_admin_once(ctx):
    admin = accounts.bootstrap_admin(' Boss@Example.com ', 'long-enough-pw', name='  Boss ')

    assert (admin.email, admin.name, admin.role) == ('boss@example.com', 'Boss', 'ADMIN')
    with pytest.raises(Conflict):
        accounts.bootstrap_admin('second@example.com', 'long-enough-pw')


@pytest.mark.parametrize('email, password, name', [
    (None, 'long-enough-pw', None),
    (7, 'long-enough-pw', None),
    ('boss@example.com', 12345678, None),
    ('boss@example.com', 'long-enough-pw', {'first': 'Boss'}),
])
def test_bootstrap_admin_validates_input_types(ctx, email, password, name):
    with pytest.raises(ValidationFailed):
        accounts.bootstrap_admin(email, password, name)
    assert User.query.count() == 0


def test_register_duplicate_email(client, factory):
    existing = factory.user()
    res = client.post('/auth/register', json={'email': existing.email, 'password': 'long-enough-pw'})
    assert res.status_code == 409


def test_login_me_logout(client, factory, login):
    driver = factory.user()
    login(client, driver)

    me = client.get('/auth/me').get_json()['user']
    assert me['id'] == driver.id

    assert client.post('/auth/logout').status_code == 200
    assert client.get('/auth/me').status_code == 401


def test_login_with_wrong_password(client, factory):
    driver = factory.user()
    res = client.post('/auth/login', json={'email': driver.email, 'password': 'wrong'})
    assert res.status_code == 401
    assert res.get_json()['message'] == 'Invalid email or password.'


def test_set_gamertag(client, factory, login):
    driver = factory.user()
    login(client, driver)

    res = client.patch('/api/user/profile', json={'gamertag': '  Slipstream_77 '})

    assert res.status_code == 200
    assert res.get_json()['user']['gamertag'] == 'Slipstream_77'


def test_gamertag_must_be_unique(client, factory, login):
    taken = factory.user(gamertag='Apex')
    login(client, factory.user())
    res = client.patch('/api/user/profile', json={'gamertag': taken.gamertag})
    assert res.status_code == 409


def test_pending_user_cannot_set_gamertag(client, factory, login):
    login(client, factory.user(role='PENDING'))
    assert client.patch('/api/user/profile', json={'gamertag': 'Waiting'}).status_code == 403


class CsrfConfig(config.TestingConfig):
    WTF_CSRF_ENABLED = True


def test_mutations_require_csrf_token():
    app = create_app(CsrfConfig)
    client = app.test_client()

    rejected = client.post('/auth/login', json={'email': 'x@example.com', 'password': PASSWORD})
    assert rejected.status_code == 400
    assert rejected.get_json()['error'] == 'csrf_failed'

    token = client.get('/auth/csrf-token').get_json()['csrfToken']
    accepted = client.post('/auth/login', json={'email': 'x@example.com', 'password': PASSWORD},
                           headers={'X-CSRFToken': token})
    assert accepted.status_code == 401

    with app.app_context():
        db.drop_all()


def test_unknown_route_is_json_404(client):
    res = client.get('/api/nothing-here')
    assert res.status_code == 404
    assert res.get_json()['error'] == 'not_found'


def test_unexpected_error_is_json_500(app, client, factory, login, monkeypatch):
    login(client, factory.user())

    def explode():
        raise RuntimeError('boom')

    monkeypatch.setattr('routes.races._ordered_races', explode)
    res = client.get('/api/races')

    assert res.status_code == 500
    assert res.get_json() == {'success': False, 'error': 'internal_error', 'message': 'Internal server error.'}
