"""
Atomic reordering of ordered collections.

Three collections share one pipeline: the members of a race (grid order),
the entries of a run list, and the set of races active tonight. A reorder
request carries the full list of item ids in the desired order; position
``i`` becomes ``order = i + 1``.

``reorder_collection`` validates the request against the database and then
hands off to ``reorder_atomic``, which locks every target row and rewrites
``order``/``updated_at``/``updated_by_id`` in one transaction. Any failure
inside that transaction rolls everything back and surfaces as a single
``TransactionFailed``; callers must read that as "nothing changed".
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy import func, select, update

import strings as text
from database import db
from models import Race, RaceMember, RunListEntry
from services.errors import NotFound, TransactionFailed, ValidationFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderableCollection:
    """Describes where a kind of orderable item lives and how it is scoped."""

    name: str
    model: type
    item_label: str
    parent_label: str
    scope: Callable[[Optional[str]], object]

    def criterion(self, parent_id):
        return self.scope(parent_id)


RACE_MEMBERS = OrderableCollection(
    name='race_members',
    model=RaceMember,
    item_label='members',
    parent_label='race',
    scope=lambda parent_id: RaceMember.race_id == parent_id,
)

RUN_LIST_ENTRIES = OrderableCollection(
    name='run_list_entries',
    model=RunListEntry,
    item_label='entries',
    parent_label='run list',
    scope=lambda parent_id: RunListEntry.run_list_id == parent_id,
)

# Tonight's races form a single list; there is no parent row.
ACTIVE_RACES = OrderableCollection(
    name='active_races',
    model=Race,
    item_label='races',
    parent_label='active race list',
    scope=lambda _parent_id: Race.is_active.is_(True),
)


class _RowVanished(Exception):
    pass


def validate_item_ids(raw_ids, field: str) -> List[str]:
    """Return *raw_ids* as a list of distinct non-empty strings or raise ValidationFailed."""
    if not isinstance(raw_ids, list) or not raw_ids:
        raise ValidationFailed(f'{field} must be a non-empty array')
    if not all(isinstance(item_id, str) and item_id.strip() for item_id in raw_ids):
        raise ValidationFailed(f'{field} must contain only non-empty string ids')
    if len(set(raw_ids)) != len(raw_ids):
        raise ValidationFailed(f'{field} must not contain duplicate ids')
    return list(raw_ids)


def move_item(ordered_ids: Sequence[str], item_id: str, new_position: int) -> List[str]:
    """Return *ordered_ids* with *item_id* moved to 1-based *new_position*."""
    ids = list(ordered_ids)
    if item_id not in ids:
        raise NotFound.of('Entry')
    if isinstance(new_position, bool) or not isinstance(new_position, int) or not 1 <= new_position <= len(ids):
        raise ValidationFailed(f'newOrder must be an integer between 1 and {len(ids)}')
    ids.remove(item_id)
    ids.insert(new_position - 1, item_id)
    return ids


def ordered_ids(collection: OrderableCollection, parent_id: Optional[str]) -> List[str]:
    model = collection.model
    return list(db.session.execute(
        select(model.id).where(collection.criterion(parent_id)).order_by(model.order, model.created_at)
    ).scalars())


def fetch_ordered(collection: OrderableCollection, parent_id: Optional[str]) -> list:
    model = collection.model
    return (
        model.query
        .filter(collection.criterion(parent_id))
        .order_by(model.order, model.created_at)
        .all()
    )


def next_position(collection: OrderableCollection, parent_id: Optional[str]) -> int:
    """Order value for an item appended to the end of the collection."""
    model = collection.model
    highest = db.session.query(func.max(model.order)).filter(collection.criterion(parent_id)).scalar()
    return (highest or 0) + 1


def compact_order(collection: OrderableCollection, parent_id: Optional[str],
                  acting_user_id: Optional[str] = None) -> int:
    """Renumber the collection densely (1..N) keeping its current sequence.

    Used by the CRUD paths after removals. Does not commit.
    """
    changed = 0
    for position, item in enumerate(fetch_ordered(collection, parent_id), start=1):
        if item.order != position:
            item.order = position
            if acting_user_id is not None:
                item.updated_by_id = acting_user_id
            changed += 1
    return changed


def _apply_position(model, item_id: str, position: int, now: datetime, acting_user_id: Optional[str]) -> None:
    values = {'order': position, 'updated_at': now}
    if hasattr(model, 'updated_by_id'):
        values['updated_by_id'] = acting_user_id
    result = db.session.execute(
        update(model)
        .where(model.id == item_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise _RowVanished(item_id)


def reorder_atomic(model, item_ids: Sequence[str], new_order: Sequence[int],
                   acting_user_id: Optional[str] = None, now: Optional[datetime] = None) -> None:
    """Assign ``new_order[i]`` to row ``item_ids[i]`` for every i, all or nothing.

    Target rows are locked (``SELECT ... FOR UPDATE``, in id order) before any
    update, so overlapping reorders serialize instead of interleaving. Commits
    on success; on any failure rolls back and raises TransactionFailed.
    """
    item_ids = list(item_ids)
    new_order = list(new_order)
    if not item_ids or len(item_ids) != len(new_order) or len(set(item_ids)) != len(item_ids):
        raise TransactionFailed()

    now = now or datetime.utcnow()
    try:
        locked = db.session.execute(
            select(model.id)
            .where(model.id.in_(item_ids))
            .order_by(model.id)
            .with_for_update()
        ).scalars().all()
        if len(locked) != len(item_ids):
            raise _RowVanished(sorted(set(item_ids) - set(locked)))

        for item_id, position in zip(item_ids, new_order):
            _apply_position(model, item_id, position, now, acting_user_id)
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        logger.warning('Atomic reorder of %s rolled back: %r', model.__tablename__, exc)
        raise TransactionFailed() from exc


def reorder_collection(collection: OrderableCollection, parent_id: Optional[str], raw_ids,
                       principal, field: str, now: Optional[datetime] = None) -> List[str]:
    """Validate a full reorder request for one parent and apply it atomically.

    Authorization is the caller's job; *principal* is recorded as the editor.
    Returns the ids in their new order.
    """
    item_ids = validate_item_ids(raw_ids, field)
    model = collection.model

    existing = set(db.session.execute(
        select(model.id).where(model.id.in_(item_ids))
    ).scalars())
    if len(existing) != len(item_ids):
        raise NotFound(f'One or more {collection.item_label} not found.')

    in_parent = set(db.session.execute(
        select(model.id).where(model.id.in_(item_ids), collection.criterion(parent_id))
    ).scalars())
    if in_parent != existing:
        raise ValidationFailed(
            text.message(text.PARENT_MISMATCH, items=collection.item_label, parent=collection.parent_label),
            reason=text.PARENT_MISMATCH,
        )

    if set(ordered_ids(collection, parent_id)) != set(item_ids):
        raise ValidationFailed(
            text.message(text.INCOMPLETE_MEMBERSHIP, items=collection.item_label, parent=collection.parent_label),
            reason=text.INCOMPLETE_MEMBERSHIP,
        )

    new_order = list(range(1, len(item_ids) + 1))
    reorder_atomic(model, item_ids, new_order, acting_user_id=principal.id, now=now)
    logger.info(
        'Reordered %s',
        collection.name,
        extra={
            'collection': collection.name,
            'parent_id': parent_id,
            'actor_id': principal.id,
            'item_count': len(item_ids),
        },
    )
    return item_ids
