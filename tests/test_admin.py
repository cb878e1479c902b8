import json

import pytest

from conftest import member_orders
from database import db
from models import CarBuild, LapTime, Note, NoteVote, Race, RunList, User
from models.audit_log import AuditLog


@pytest.fixture()
def admin(factory):
    return factory.admin()


def test_pending_users_listed_for_admins_only(client, factory, login, admin):
    pending = factory.user(role='PENDING')
    factory.user()

    login(client, factory.user())
    assert client.get('/api/admin/pending-users').status_code == 403

    login(client, admin)
    users = client.get('/api/admin/pending-users').get_json()['users']
    assert [u['id'] for u in users] == [pending.id]


def test_approve_user_sends_email_and_audits(app, client, factory, login, admin, sent_emails):
    pending = factory.user(role='PENDING')
    login(client, admin)

    res = client.post(f'/api/admin/pending-users/{pending.id}/approve')

    assert res.status_code == 200
    assert res.get_json()['user']['role'] == 'USER'
    assert [m['to'] for m in sent_emails] == [pending.email]
    with app.app_context():
        assert db.session.get(User, pending.id).role == 'USER'
        assert AuditLog.query.filter_by(action='APPROVE_USER', entity_id=pending.id).count() == 1


def test_approve_non_pending_user_fails(client, factory, login, admin, sent_emails):
    login(client, admin)
    res = client.post(f'/api/admin/pending-users/{factory.user().id}/approve')
    assert res.status_code == 400
    assert sent_emails == []


def test_reject_user_deletes_without_email(app, client, factory, login, admin, sent_emails):
    pending = factory.user(role='PENDING')
    login(client, admin)

    res = client.post(f'/api/admin/pending-users/{pending.id}/reject', json={'reason': 'Unknown to the group'})

    assert res.status_code == 200
    assert sent_emails == []
    with app.app_context():
        assert db.session.get(User, pending.id) is None
        entry = AuditLog.query.filter_by(action='REJECT_USER').one()
        assert json.loads(entry.details_json)['reason'] == 'Unknown to the group'


def test_reject_reason_length_is_limited(client, factory, login, admin):
    pending = factory.user(role='PENDING')
    login(client, admin)
    res = client.post(f'/api/admin/pending-users/{pending.id}/reject', json={'reason': 'x' * 501})
    assert res.status_code == 400


def test_reject_without_body(client, factory, login, admin):
    pending = factory.user(role='PENDING')
    login(client, admin)
    assert client.post(f'/api/admin/pending-users/{pending.id}/reject').status_code == 200


def test_change_role(app, client, factory, login, admin):
    driver = factory.user()
    login(client, admin)

    res = client.patch(f'/api/admin/users/{driver.id}', json={'role': 'ADMIN'})

    assert res.status_code == 200
    with app.app_context():
        entry = AuditLog.query.filter_by(action='CHANGE_ROLE').one()
        assert json.loads(entry.details_json) == {'from': 'USER', 'to': 'ADMIN'}


@pytest.mark.parametrize('role', ['PENDING', 'OWNER', None])
def test_change_role_rejects_invalid_roles(client, factory, login, admin, role):
    login(client, admin)
    assert client.patch(f'/api/admin/users/{factory.user().id}', json={'role': role}).status_code == 400


def test_admin_cannot_change_own_role(client, login, admin):
    login(client, admin)
    assert client.patch(f'/api/admin/users/{admin.id}', json={'role': 'USER'}).status_code == 400


def test_delete_user_cleans_up_rosters_and_ownership(app, client, factory, login, admin, sent_emails):
    other_admin = factory.admin()
    leaving = factory.user()
    race_id = factory.race(created_by=leaving.id)
    first = factory.member(race_id, factory.user().id, 1)
    factory.member(race_id, leaving.id, 2)
    third = factory.member(race_id, factory.user().id, 3)
    run_list_id = factory.run_list(created_by=leaving.id)
    login(client, admin)

    res = client.delete(f'/api/admin/users/{leaving.id}')

    assert res.status_code == 200
    removed = res.get_json()['removed']
    assert removed['removedMemberships'] == 1
    assert removed['reassignedRaces'] == 1
    assert removed['reassignedRunLists'] == 1
    assert [m['to'] for m in sent_emails] == [[other_admin.email]]
    with app.app_context():
        assert db.session.get(User, leaving.id) is None
        assert member_orders(race_id) == {first: 1, third: 2}
        assert db.session.get(Race, race_id).created_by_id == admin.id
        assert db.session.get(RunList, run_list_id).created_by_id == admin.id


def test_admin_cannot_delete_self(client, login, admin):
    login(client, admin)
    assert client.delete(f'/api/admin/users/{admin.id}').status_code == 400


def test_audit_log_filters_and_paginates(client, factory, login, admin):
    login(client, admin)
    for _ in range(2):
        client.post(f"/api/admin/pending-users/{factory.user(role='PENDING').id}/approve")
    client.patch(f'/api/admin/users/{factory.user().id}', json={'role': 'ADMIN'})

    everything = client.get('/api/admin/audit-log').get_json()
    approvals = client.get('/api/admin/audit-log?action=APPROVE_USER').get_json()

    assert everything['total'] == 3
    assert approvals['total'] == 2
    assert {e['action'] for e in approvals['entries']} == {'APPROVE_USER'}
    assert client.get('/api/admin/audit-log?page=2').get_json()['entries'] == []


def test_delete_user_removes_laps_and_builds_and_keeps_notes(app, client, factory, login, admin):
    leaving = factory.user()
    track_id = factory.track()
    car = factory.car()
    build_id = factory.build(leaving.id, car.id, public=True)
    factory.lap(leaving.id, track_id, car.id, 95000)
    note_id = factory.note(leaving.id)
    other_note = factory.note(admin.id)
    with app.app_context():
        db.session.add(NoteVote(note_id=other_note, user_id=leaving.id, vote_type='up'))
        db.session.commit()
    login(client, admin)

    res = client.delete(f'/api/admin/users/{leaving.id}')

    assert res.get_json()['removed']['reassignedNotes'] == 1
    with app.app_context():
        assert LapTime.query.count() == 0
        assert db.session.get(CarBuild, build_id) is None
        assert NoteVote.query.count() == 0
        assert db.session.get(Note, note_id).created_by_id == admin.id
