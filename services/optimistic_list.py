"""
Client-side optimistic list controller for drag-and-drop reordering.

The controller owns one ordered list. A drop rearranges the list in memory at
once and schedules a debounced save of the full order; if the save fails the
list snaps back to the last order the server confirmed.

    controller = OptimisticListController(members, save=client.save_race_members(race_id))
    controller.begin_drag()
    controller.drop(active_id='m3', over_id='m1')   # list is [m3, m1, m2] now
    ...                                             # 0.5 s later: one PATCH

States:

    IDLE -> DRAGGING_LOCALLY -> PENDING_SAVE -> IDLE
                                    \\-> ROLLING_BACK -> IDLE

At most one save is in flight per controller. Drops made while a save is in
flight keep debouncing; if the timer fires before that save resolves, the
newest order is sent as soon as it does.
"""
from __future__ import annotations

import enum
import json
import logging
import threading
import urllib.error
import urllib.request
from collections.abc import Mapping
from typing import Callable, List, Optional, Sequence

import config

logger = logging.getLogger(__name__)


class ListState(enum.Enum):
    IDLE = 'idle'
    DRAGGING_LOCALLY = 'dragging_locally'
    PENDING_SAVE = 'pending_save'
    ROLLING_BACK = 'rolling_back'


class ReorderSaveFailed(Exception):
    """A save request did not succeed (transport error or non-2xx answer)."""

    def __init__(self, message: str, status: int | None = None, body: dict | None = None):
        super().__init__(message)
        self.status = status
        self.body = body or {}


def item_id(item):
    if isinstance(item, Mapping):
        return item['id']
    return getattr(item, 'id', item)


class OptimisticListController:
    """Single-list optimistic reorder state machine.

    *save* receives the full list of ids in the new order and returns the
    server's canonical list of items, or None to keep the local list.
    *timer_factory* is called as ``timer_factory(seconds, callback)`` and
    must return an object with ``start()`` and ``cancel()``.
    """

    def __init__(self, items: Sequence, save: Callable[[List[str]], Optional[Sequence]],
                 debounce_seconds: float = config.REORDER_DEBOUNCE_SECONDS,
                 timer_factory: Callable = threading.Timer,
                 key: Callable = item_id,
                 on_change: Callable[[list], None] | None = None):
        self._items = list(items)
        self._confirmed = list(items)
        self._save = save
        self._debounce_seconds = debounce_seconds
        self._timer_factory = timer_factory
        self._key = key
        self._on_change = on_change

        self._lock = threading.RLock()
        self._state = ListState.IDLE
        self._timer = None
        self._generation = 0
        self._in_flight = False
        self._dirty = False
        self._stale = False
        self._closed = False

    @property
    def state(self) -> ListState:
        return self._state

    @property
    def items(self) -> list:
        with self._lock:
            return list(self._items)

    @property
    def item_ids(self) -> List[str]:
        with self._lock:
            return [self._key(item) for item in self._items]

    @property
    def snapshot(self) -> list:
        """The last server-confirmed list; what a failed save rolls back to."""
        with self._lock:
            return list(self._confirmed)

    @property
    def save_in_flight(self) -> bool:
        return self._in_flight

    def _settled_state(self) -> ListState:
        if self._timer is not None or self._in_flight:
            return ListState.PENDING_SAVE
        return ListState.IDLE

    def _changed(self):
        if self._on_change is not None:
            self._on_change(list(self._items))

    def begin_drag(self) -> None:
        with self._lock:
            self._state = ListState.DRAGGING_LOCALLY

    def drop(self, active_id, over_id) -> bool:
        """Move *active_id* to the position of *over_id*. Returns True if the list changed."""
        with self._lock:
            ids = [self._key(item) for item in self._items]
            if over_id is None or active_id == over_id or active_id not in ids or over_id not in ids:
                self._state = self._settled_state()
                if self._stale and self._state is ListState.IDLE:
                    self._adopt_confirmed()
                return False

            moved = self._items.pop(ids.index(active_id))
            self._items.insert(ids.index(over_id), moved)
            self._stale = False
            self._schedule_save()
            self._state = ListState.PENDING_SAVE
            self._changed()
            return True

    def _adopt_confirmed(self) -> None:
        self._stale = False
        self._items = list(self._confirmed)
        self._changed()

    def _drop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1

    def _schedule_save(self) -> None:
        self._drop_timer()
        generation = self._generation
        self._timer = self._timer_factory(self._debounce_seconds, lambda: self._fire(generation))
        if hasattr(self._timer, 'daemon'):
            self._timer.daemon = True
        self._timer.start()

    def flush(self) -> bool:
        """Send a pending save now instead of waiting for the debounce."""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            sent = self._claim(self._generation)
        if sent is not None:
            self._run_saves(sent)
        return True

    def close(self) -> None:
        """Cancel a pending save. A save already in flight is left to finish."""
        with self._lock:
            self._closed = True
            self._drop_timer()
            self._dirty = False
            self._state = self._settled_state()

    def _fire(self, generation: int) -> None:
        with self._lock:
            sent = self._claim(generation)
        if sent is not None:
            self._run_saves(sent)

    def _claim(self, generation: int):
        """Take ownership of the pending save. Returns the list to send, or None."""
        if generation != self._generation:
            return None  # superseded by a newer drop, a flush or a rollback
        self._timer = None
        self._generation += 1
        if self._closed:
            return None
        if self._in_flight:
            self._dirty = True
            return None
        self._in_flight = True
        self._state = ListState.PENDING_SAVE
        return list(self._items)

    def _run_saves(self, sent: list) -> None:
        while True:
            try:
                result = self._save([self._key(item) for item in sent])
            except Exception as exc:
                self._roll_back(exc)
                return

            with self._lock:
                self._confirmed = list(result) if result is not None else sent
                if self._dirty and not self._closed:
                    self._dirty = False
                    sent = list(self._items)
                    continue
                self._in_flight = False
                if self._state is ListState.DRAGGING_LOCALLY:
                    # Mid-drag: leave the list alone; the next drop reconciles
                    self._stale = True
                elif self._timer is None:
                    self._items = list(self._confirmed)
                    self._stale = False
                    self._state = ListState.IDLE
                    self._changed()
                else:
                    self._state = ListState.PENDING_SAVE
                return

    def _roll_back(self, exc: Exception) -> None:
        with self._lock:
            self._state = ListState.ROLLING_BACK
            logger.warning('Reorder save failed, restoring last saved order: %s', exc)
            self._drop_timer()
            self._dirty = False
            self._in_flight = False
            self._stale = False
            self._items = list(self._confirmed)
            self._changed()
            self._state = ListState.IDLE


class ReorderApiClient:
    """Save callables for the three reorder endpoints, over plain HTTP."""

    def __init__(self, base_url: str, headers: dict | None = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip('/')
        self.headers = dict(headers or {})
        self.timeout = timeout

    def _send(self, method: str, path: str, payload: dict) -> dict:
        headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}
        headers.update(self.headers)
        req = urllib.request.Request(
            f'{self.base_url}{path}',
            data=json.dumps(payload).encode('utf-8'),
            headers=headers,
            method=method,
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                status = int(resp.status)
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            body = _decode(exc.read())
            raise ReorderSaveFailed(body.get('message') or f'HTTP {exc.code}', status=int(exc.code), body=body) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise ReorderSaveFailed(f'Request to {path} failed: {exc}') from exc

        body = _decode(raw)
        if not 200 <= status < 300 or not body.get('success'):
            raise ReorderSaveFailed(body.get('message') or f'HTTP {status}', status=status, body=body)
        return body

    def save_race_members(self, race_id: str) -> Callable[[List[str]], list]:
        def save(member_ids):
            return self._send('PATCH', f'/api/races/{race_id}/members/reorder', {'memberIds': member_ids})['members']
        return save

    def save_active_races(self) -> Callable[[List[str]], list]:
        def save(race_ids):
            return self._send('POST', '/api/races/reorder', {'raceIds': race_ids})['races']
        return save

    def save_run_list(self, run_list_id: str) -> Callable[[List[str]], list]:
        def save(entry_ids):
            return self._send('PATCH', f'/api/run-lists/{run_list_id}/reorder', {'entryIds': entry_ids})['entries']
        return save


def _decode(raw: bytes) -> dict:
    try:
        body = json.loads((raw or b'').decode('utf-8') or '{}')
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
