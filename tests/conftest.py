import itertools
import pathlib
import sys
from contextlib import nullcontext
from types import SimpleNamespace

import pytest
from flask import has_app_context

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

import config
from app import create_app
from database import db
from models import Car, CarBuild, LapTime, Note, Part, Race, RaceMember, RunList, RunListEntry, Track, User
from services import rate_limit
from services.catalog import seed_tyres

PASSWORD = 'correct-horse-battery'


class Factory:
    """Creates committed rows and hands back plain ids/namespaces, never live ORM objects."""

    def __init__(self, app):
        self.app = app
        self._seq = itertools.count(1)

    def _ctx(self):
        return nullcontext() if has_app_context() else self.app.app_context()

    def user(self, role=config.ROLE_USER, gamertag=None, email=None, name=None):
        n = next(self._seq)
        with self._ctx():
            user = User(
                email=email or f'driver{n}@example.com',
                name=name or f'Driver {n}',
                gamertag=gamertag if gamertag is not None else f'Driver{n}',
                role=role,
            )
            user.set_password(PASSWORD)
            db.session.add(user)
            db.session.commit()
            return SimpleNamespace(id=user.id, email=user.email, gamertag=user.gamertag)

    def admin(self, **kwargs):
        return self.user(role=config.ROLE_ADMIN, **kwargs)

    def track(self, name=None, slug=None):
        n = next(self._seq)
        with self._ctx():
            track = Track(name=name or f'Track {n}', slug=slug or f'track-{n}', category='circuit')
            db.session.add(track)
            db.session.commit()
            return track.id

    def tyre(self, name=config.DEFAULT_TYRE_NAME):
        with self._ctx():
            return Part.query.filter_by(name=name).one().id

    def race(self, created_by, track_id=None, active=False, order=None, name=None):
        track_id = track_id or self.track()
        with self._ctx():
            race = Race(
                track_id=track_id,
                name=name,
                is_active=active,
                order=order,
                created_by_id=created_by,
            )
            db.session.add(race)
            db.session.commit()
            return race.id

    def member(self, race_id, user_id, order, part_id=None):
        part_id = part_id or self.tyre()
        with self._ctx():
            member = RaceMember(race_id=race_id, user_id=user_id, order=order, part_id=part_id)
            db.session.add(member)
            db.session.commit()
            return member.id

    def roster(self, race_id, count):
        """Add *count* fresh drivers to a race in order; returns member ids."""
        return [self.member(race_id, self.user().id, order) for order in range(1, count + 1)]

    def run_list(self, created_by, public=True, name='Friday Night'):
        with self._ctx():
            run_list = RunList(name=name, is_public=public, created_by_id=created_by)
            db.session.add(run_list)
            db.session.commit()
            return run_list.id

    def entry(self, run_list_id, order, track_id=None):
        track_id = track_id or self.track()
        with self._ctx():
            entry = RunListEntry(run_list_id=run_list_id, order=order, track_id=track_id)
            db.session.add(entry)
            db.session.commit()
            return entry.id

    def car(self, name=None, manufacturer='Mazda'):
        n = next(self._seq)
        with self._ctx():
            car = Car(name=name or f'Car {n}', slug=f'car-{n}', manufacturer=manufacturer, year=2020, category='Gr.4')
            db.session.add(car)
            db.session.commit()
            return SimpleNamespace(id=car.id, slug=car.slug)

    def build(self, user_id, car_id, name='Grip setup', public=False):
        with self._ctx():
            build = CarBuild(user_id=user_id, car_id=car_id, name=name, is_public=public)
            db.session.add(build)
            db.session.commit()
            return build.id

    def lap(self, user_id, track_id, car_id, time_ms, session_type='R', created_at=None):
        with self._ctx():
            lap = LapTime(user_id=user_id, track_id=track_id, car_id=car_id, time_ms=time_ms,
                          session_type=session_type)
            if created_at is not None:
                lap.created_at = created_at
            db.session.add(lap)
            db.session.commit()
            return lap.id

    def note(self, created_by, title='Lobby password', content='fridaygt'):
        with self._ctx():
            note = Note(title=title, content=content, created_by_id=created_by)
            db.session.add(note)
            db.session.commit()
            return note.id


@pytest.fixture()
def app():
    app = create_app(config.TestingConfig)
    with app.app_context():
        seed_tyres()
    rate_limit.reset()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
    rate_limit.reset()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def ctx(app):
    """Push an app context for tests that call services directly."""
    with app.app_context():
        yield
        db.session.rollback()


@pytest.fixture()
def factory(app):
    return Factory(app)


@pytest.fixture()
def login():
    def _login(client, account):
        res = client.post('/auth/login', json={'email': account.email, 'password': PASSWORD})
        assert res.status_code == 200, res.get_json()
        return res
    return _login


@pytest.fixture()
def sent_emails(monkeypatch):
    """Capture outgoing email instead of calling Resend."""
    outbox = []

    def fake_send(to, subject, html):
        outbox.append({'to': to, 'subject': subject, 'html': html})
        return True

    monkeypatch.setattr('services.notifications.send_email', fake_send)
    return outbox


def ordered_member_ids(race_id):
    return [m.id for m in RaceMember.query.filter_by(race_id=race_id).order_by(RaceMember.order).all()]


def member_orders(race_id):
    return {m.id: m.order for m in RaceMember.query.filter_by(race_id=race_id).all()}
