import pytest

from conftest import member_orders
from database import db
from models import Race, RaceMember
from models.audit_log import AuditLog


@pytest.fixture()
def admin(factory):
    return factory.admin()


def test_create_active_race_is_appended_to_tonight(app, client, factory, login, admin):
    factory.race(created_by=admin.id, active=True, order=1)
    driver = factory.user()
    login(client, driver)
    track_id = factory.track(name='Suzuka Circuit')

    res = client.post('/api/races', json={'trackId': track_id, 'laps': 10, 'weather': 'wet', 'isActive': True})

    assert res.status_code == 201
    race = res.get_json()['race']
    assert race['displayName'] == 'Suzuka Circuit'
    assert race['order'] == 2
    assert race['createdById'] == driver.id


@pytest.mark.parametrize('body', [{}, {'trackId': 'x', 'laps': 0}, {'trackId': 'x', 'weather': 'snow'}])
def test_create_race_validation(client, factory, login, body):
    login(client, factory.user())
    if body.get('trackId'):
        body = dict(body, trackId=factory.track())
    res = client.post('/api/races', json=body)
    assert res.status_code == 400


def test_pending_user_cannot_create_race(client, factory, login):
    login(client, factory.user(role='PENDING'))
    res = client.post('/api/races', json={'trackId': factory.track()})
    assert res.status_code == 403


def test_list_races_puts_active_first(client, factory, login, admin):
    late = factory.race(created_by=admin.id, active=True, order=2, name='Late')
    early = factory.race(created_by=admin.id, active=True, order=1, name='Early')
    parked_b = factory.race(created_by=admin.id, name='Bravo')
    parked_a = factory.race(created_by=admin.id, name='alpha')
    login(client, admin)

    res = client.get('/api/races')

    assert [r['id'] for r in res.get_json()['races']] == [early, late, parked_a, parked_b]


def test_deactivating_race_compacts_active_order(app, client, factory, login, admin):
    first = factory.race(created_by=admin.id, active=True, order=1)
    second = factory.race(created_by=admin.id, active=True, order=2)
    third = factory.race(created_by=admin.id, active=True, order=3)
    login(client, admin)

    res = client.patch(f'/api/races/{second}', json={'isActive': False})

    assert res.status_code == 200
    assert res.get_json()['race']['order'] is None
    with app.app_context():
        assert db.session.get(Race, first).order == 1
        assert db.session.get(Race, third).order == 2


def test_reactivating_race_appends(client, factory, login, admin):
    factory.race(created_by=admin.id, active=True, order=1)
    parked = factory.race(created_by=admin.id)
    login(client, admin)

    res = client.patch(f'/api/races/{parked}', json={'isActive': True})

    assert res.get_json()['race']['order'] == 2


def test_only_creator_or_admin_edits_race(client, factory, login, admin):
    race_id = factory.race(created_by=admin.id)
    login(client, factory.user())
    assert client.patch(f'/api/races/{race_id}', json={'name': 'Mine now'}).status_code == 403
    assert client.delete(f'/api/races/{race_id}').status_code == 403


def test_delete_race_removes_roster_and_compacts(app, client, factory, login, admin):
    first = factory.race(created_by=admin.id, active=True, order=1)
    doomed = factory.race(created_by=admin.id, active=True, order=2)
    last = factory.race(created_by=admin.id, active=True, order=3)
    factory.roster(doomed, 2)
    login(client, admin)

    res = client.delete(f'/api/races/{doomed}')

    assert res.status_code == 200
    with app.app_context():
        assert db.session.get(Race, doomed) is None
        assert RaceMember.query.filter_by(race_id=doomed).count() == 0
        assert [db.session.get(Race, rid).order for rid in (first, last)] == [1, 2]
        assert AuditLog.query.filter_by(action='DELETE_RACE', entity_id=doomed).count() == 1


def test_add_member_defaults_to_racing_soft_and_appends(client, factory, login, admin):
    race_id = factory.race(created_by=admin.id)
    factory.roster(race_id, 2)
    driver = factory.user()
    login(client, admin)

    res = client.post(f'/api/races/{race_id}/members', json={'userId': driver.id})

    assert res.status_code == 201
    member = res.get_json()['member']
    assert member['order'] == 3
    assert member['part']['name'] == 'Racing: Soft'
    assert member['user'] == {'id': driver.id, 'gamertag': driver.gamertag}


def test_add_member_twice_conflicts(client, factory, login, admin):
    race_id = factory.race(created_by=admin.id)
    driver = factory.user()
    login(client, admin)

    assert client.post(f'/api/races/{race_id}/members', json={'userId': driver.id}).status_code == 201
    res = client.post(f'/api/races/{race_id}/members', json={'userId': driver.id})

    assert res.status_code == 409
    assert res.get_json()['error'] == 'conflict'


def test_add_pending_user_is_rejected(client, factory, login, admin):
    race_id = factory.race(created_by=admin.id)
    login(client, admin)
    res = client.post(f'/api/races/{race_id}/members', json={'userId': factory.user(role='PENDING').id})
    assert res.status_code == 400


def test_add_member_is_admin_only(client, factory, login, admin):
    race_id = factory.race(created_by=admin.id)
    driver = factory.user()
    login(client, driver)
    res = client.post(f'/api/races/{race_id}/members', json={'userId': driver.id})
    assert res.status_code == 403


def test_remove_member_compacts_roster(app, client, factory, login, admin):
    race_id = factory.race(created_by=admin.id)
    a, b, c = factory.roster(race_id, 3)
    login(client, admin)

    res = client.delete(f'/api/races/{race_id}/members/{a}')

    assert res.status_code == 200
    assert [m['id'] for m in res.get_json()['members']] == [b, c]
    with app.app_context():
        assert member_orders(race_id) == {b: 1, c: 2}
        assert {m.updated_by_id for m in RaceMember.query.filter_by(race_id=race_id)} == {admin.id}


def test_remove_member_of_other_race_is_404(client, factory, login, admin):
    race_id = factory.race(created_by=admin.id)
    other = factory.race(created_by=admin.id)
    (member,) = factory.roster(other, 1)
    login(client, admin)
    assert client.delete(f'/api/races/{race_id}/members/{member}').status_code == 404


def test_change_tyre(client, factory, login, admin):
    race_id = factory.race(created_by=admin.id)
    (member,) = factory.roster(race_id, 1)
    wet = factory.tyre('Racing: Heavy Wet')
    login(client, admin)

    res = client.patch(f'/api/races/{race_id}/members/{member}/tyre', json={'partId': wet})

    assert res.status_code == 200
    assert res.get_json()['member']['part']['name'] == 'Racing: Heavy Wet'


def test_tyre_list_follows_picker_order(client, factory, login):
    login(client, factory.user())

    res = client.get('/api/parts/tyres')

    body = res.get_json()
    assert body['defaultTyre'] == 'Racing: Soft'
    assert [t['name'] for t in body['tyres']][:3] == ['Comfort: Hard', 'Comfort: Medium', 'Comfort: Soft']
    assert len(body['tyres']) == 13


def test_parts_filtered_by_category(client, factory, login):
    login(client, factory.user())
    assert len(client.get('/api/parts?category=Tyres').get_json()['parts']) == 13
    assert client.get('/api/parts?category=Engines').get_json()['parts'] == []
