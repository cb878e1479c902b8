import io
import json
import logging
import urllib.error
import urllib.request

import pytest

from services.optimistic_list import ListState, OptimisticListController, ReorderApiClient, ReorderSaveFailed


class FakeTimer:
    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


@pytest.fixture()
def timers():
    return []


@pytest.fixture()
def timer_factory(timers):
    def make(interval, function):
        timer = FakeTimer(interval, function)
        timers.append(timer)
        return timer
    return make


def _items(*ids):
    return [{'id': item_id} for item_id in ids]


def _ids(items):
    return [item['id'] for item in items]


def test_drop_moves_locally_and_schedules_debounced_save(timers, timer_factory):
    saves = []
    controller = OptimisticListController(_items('A', 'B', 'C'), save=saves.append, timer_factory=timer_factory)

    controller.begin_drag()
    assert controller.state is ListState.DRAGGING_LOCALLY
    assert controller.drop('C', 'A') is True

    assert controller.item_ids == ['C', 'A', 'B']
    assert controller.state is ListState.PENDING_SAVE
    assert len(timers) == 1 and timers[0].started and timers[0].interval == 0.5
    assert saves == []


def test_rapid_drags_coalesce_into_one_save(timers, timer_factory):
    saves = []
    controller = OptimisticListController(
        _items('A', 'B', 'C'), save=lambda ids: saves.append(list(ids)), timer_factory=timer_factory)

    controller.drop('A', 'C')   # B C A
    controller.drop('C', 'B')   # C B A
    controller.drop('B', 'A')   # C A B

    assert [t.cancelled for t in timers] == [True, True, False]
    for timer in timers:
        timer.fire()

    assert saves == [['C', 'A', 'B']]
    assert controller.item_ids == ['C', 'A', 'B']
    assert controller.state is ListState.IDLE


def test_successful_save_adopts_server_list(timers, timer_factory):
    canonical = [{'id': 'C', 'order': 1}, {'id': 'A', 'order': 2}, {'id': 'B', 'order': 3}]
    changes = []
    controller = OptimisticListController(
        _items('A', 'B', 'C'), save=lambda ids: canonical, timer_factory=timer_factory, on_change=changes.append)

    controller.drop('C', 'A')
    timers[-1].fire()

    assert controller.items == canonical
    assert controller.snapshot == canonical
    assert changes[-1] == canonical
    assert controller.state is ListState.IDLE


def test_failed_save_rolls_back_to_confirmed_order(timers, timer_factory, caplog):
    def failing_save(ids):
        raise ReorderSaveFailed('Failed to save the new order.', status=500)

    controller = OptimisticListController(_items('A', 'B', 'C'), save=failing_save, timer_factory=timer_factory)
    controller.drop('C', 'A')
    assert controller.item_ids == ['C', 'A', 'B']

    with caplog.at_level(logging.WARNING, logger='services.optimistic_list'):
        timers[-1].fire()

    assert controller.item_ids == ['A', 'B', 'C']
    assert controller.state is ListState.IDLE
    assert not controller.save_in_flight
    assert 'restoring last saved order' in caplog.text


def test_failed_save_does_not_retry(timers, timer_factory):
    calls = []

    def failing_save(ids):
        calls.append(ids)
        raise ConnectionError('offline')

    controller = OptimisticListController(_items('A', 'B'), save=failing_save, timer_factory=timer_factory)
    controller.drop('B', 'A')
    timers[-1].fire()

    assert len(calls) == 1
    assert len(timers) == 1


@pytest.mark.parametrize('over_id', ['A', None, 'Z'])
def test_drop_without_position_change_does_nothing(timers, timer_factory, over_id):
    controller = OptimisticListController(_items('A', 'B'), save=lambda ids: None, timer_factory=timer_factory)
    controller.begin_drag()

    assert controller.drop('A', over_id) is False
    assert controller.item_ids == ['A', 'B']
    assert controller.state is ListState.IDLE
    assert timers == []


def test_timer_firing_during_save_sends_latest_order_afterwards(timers, timer_factory):
    sent = []
    controller = None

    def save(ids):
        sent.append(list(ids))
        if len(sent) == 1:
            # user keeps dragging while the first request is on the wire
            controller.drop('B', 'C')
            timers[-1].fire()
            assert controller.state is ListState.PENDING_SAVE
        return None

    controller = OptimisticListController(_items('A', 'B', 'C'), save=save, timer_factory=timer_factory)
    controller.drop('C', 'A')   # C A B
    timers[0].fire()

    assert sent == [['C', 'A', 'B'], ['B', 'C', 'A']]
    assert controller.item_ids == ['B', 'C', 'A']
    assert controller.state is ListState.IDLE
    assert not controller.save_in_flight


def test_flush_sends_pending_save_immediately(timers, timer_factory):
    saves = []
    controller = OptimisticListController(
        _items('A', 'B'), save=lambda ids: saves.append(list(ids)), timer_factory=timer_factory)

    assert controller.flush() is False
    controller.drop('B', 'A')
    assert controller.flush() is True

    assert saves == [['B', 'A']]
    assert timers[0].cancelled


def test_close_cancels_pending_save(timers, timer_factory):
    saves = []
    controller = OptimisticListController(_items('A', 'B'), save=saves.append, timer_factory=timer_factory)

    controller.drop('B', 'A')
    controller.close()
    timers[0].function()

    assert saves == []
    assert timers[0].cancelled
    assert controller.state is ListState.IDLE


def test_flush_then_drop_during_save_sends_one_follow_up(timers, timer_factory):
    sent = []
    controller = None

    def save(ids):
        sent.append(list(ids))
        if len(sent) == 1:
            controller.drop('A', 'B')   # C B A, dropped while the flushed save is on the wire
        return None

    controller = OptimisticListController(_items('A', 'B', 'C'), save=save, timer_factory=timer_factory)
    controller.drop('C', 'A')   # C A B
    controller.flush()

    assert controller.state is ListState.PENDING_SAVE
    timers[0].function()        # the flushed timer going off late must not send again
    assert sent == [['C', 'A', 'B']]

    timers[1].fire()
    assert sent == [['C', 'A', 'B'], ['C', 'B', 'A']]
    assert controller.state is ListState.IDLE


def test_save_resolving_mid_drag_waits_for_the_drop(timers, timer_factory):
    canonical = [{'id': 'B', 'order': 1}, {'id': 'A', 'order': 2}]
    controller = None

    def save(ids):
        controller.begin_drag()     # user picks up another card before the answer arrives
        return canonical

    controller = OptimisticListController(_items('A', 'B'), save=save, timer_factory=timer_factory)
    controller.drop('B', 'A')
    timers[0].fire()

    assert controller.state is ListState.DRAGGING_LOCALLY
    assert controller.items == [{'id': 'B'}, {'id': 'A'}]
    assert controller.snapshot == canonical

    assert controller.drop('B', None) is False
    assert controller.state is ListState.IDLE
    assert controller.items == canonical


class FakeResponse:
    def __init__(self, status, body):
        self.status = status
        self._raw = json.dumps(body).encode('utf-8')

    def read(self):
        return self._raw

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def test_api_client_sends_full_member_order(monkeypatch):
    captured = {}

    def fake_urlopen(req, timeout):
        captured['url'] = req.full_url
        captured['method'] = req.get_method()
        captured['body'] = json.loads(req.data.decode('utf-8'))
        captured['csrf'] = req.get_header('X-csrftoken')
        return FakeResponse(200, {'success': True, 'members': [{'id': 'm2'}, {'id': 'm1'}]})

    monkeypatch.setattr(urllib.request, 'urlopen', fake_urlopen)
    client = ReorderApiClient('http://race.test/', headers={'X-CSRFToken': 'tok'})

    members = client.save_race_members('r1')(['m2', 'm1'])

    assert members == [{'id': 'm2'}, {'id': 'm1'}]
    assert captured == {
        'url': 'http://race.test/api/races/r1/members/reorder',
        'method': 'PATCH',
        'body': {'memberIds': ['m2', 'm1']},
        'csrf': 'tok',
    }


def test_api_client_raises_on_error_status(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.HTTPError(
            req.full_url, 403, 'Forbidden', {}, io.BytesIO(b'{"success": false, "message": "Access denied"}'))

    monkeypatch.setattr(urllib.request, 'urlopen', fake_urlopen)
    save = ReorderApiClient('http://race.test').save_run_list('rl1')

    with pytest.raises(ReorderSaveFailed) as exc_info:
        save(['e1'])

    assert exc_info.value.status == 403
    assert str(exc_info.value) == 'Access denied'


def test_api_client_raises_on_transport_error(monkeypatch):
    def fake_urlopen(req, timeout):
        raise urllib.error.URLError('connection refused')

    monkeypatch.setattr(urllib.request, 'urlopen', fake_urlopen)

    with pytest.raises(ReorderSaveFailed):
        ReorderApiClient('http://race.test').save_active_races()(['r1'])
