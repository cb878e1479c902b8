"""
Run list routes (JSON): the ordered schedule of tracks for a session night.
"""
import json

from flask import Blueprint, jsonify
from sqlalchemy import or_

from database import db
from models import Race, RunList, RunListEdit, RunListEntry, Track
from routes.common import json_body, optional_bool, optional_text, query_flag
from services import audit
from services.errors import AuthorizationDenied, NotFound, ValidationFailed
from services.principal import require_approved, require_principal
from services.rate_limit import rate_limited
from services.reorder import (ACTIVE_RACES, RUN_LIST_ENTRIES, compact_order, fetch_ordered, move_item, next_position,
                              ordered_ids, reorder_collection)

run_lists_bp = Blueprint('run_lists', __name__)


def _get_visible_run_list(run_list_id, principal) -> RunList:
    run_list = db.session.get(RunList, run_list_id)
    # Private lists are hidden from everyone but their owner and admins
    if run_list is None or (not run_list.is_public and not run_list.is_owned_by(principal)):
        raise NotFound.of('Run list')
    return run_list


def _get_owned_run_list(run_list_id, principal, action: str) -> RunList:
    run_list = _get_visible_run_list(run_list_id, principal)
    if not run_list.is_owned_by(principal):
        raise AuthorizationDenied(f'Only the run list creator or an admin can {action}.')
    return run_list


def _record_edit(run_list: RunList, principal, action: str, details: dict):
    db.session.add(RunListEdit(
        run_list_id=run_list.id,
        user_id=principal.id,
        action=action,
        details=json.dumps(details),
    ))


def _entries_payload(run_list: RunList) -> list:
    return [entry.to_dict() for entry in fetch_ordered(RUN_LIST_ENTRIES, run_list.id)]


@run_lists_bp.route('/run-lists', methods=['GET'])
def list_run_lists():
    principal = require_principal()
    query = RunList.query
    if query_flag('mine'):
        query = query.filter(RunList.created_by_id == principal.id)
    elif query_flag('public'):
        query = query.filter(RunList.is_public.is_(True))
    elif not principal.is_admin:
        query = query.filter(or_(RunList.is_public.is_(True), RunList.created_by_id == principal.id))
    run_lists = query.order_by(RunList.created_at.desc()).all()
    return jsonify({'success': True, 'runLists': [rl.to_dict() for rl in run_lists]})


@run_lists_bp.route('/run-lists', methods=['POST'])
@rate_limited('mutation')
def create_run_list():
    principal = require_approved(require_principal())
    body = json_body()
    name = optional_text(body, 'name', 200)
    if not name:
        raise ValidationFailed('name is required.')

    run_list = RunList(
        name=name,
        description=optional_text(body, 'description'),
        is_public=optional_bool(body, 'isPublic', True),
        created_by_id=principal.id,
    )
    db.session.add(run_list)
    db.session.commit()
    return jsonify({'success': True, 'runList': run_list.to_dict(include_entries=True)}), 201


@run_lists_bp.route('/run-lists/<run_list_id>', methods=['GET'])
def get_run_list(run_list_id):
    principal = require_principal()
    run_list = _get_visible_run_list(run_list_id, principal)
    payload = run_list.to_dict()
    payload['entries'] = _entries_payload(run_list)
    last_edit = run_list.edits.order_by(RunListEdit.created_at.desc()).first()
    payload['lastEdit'] = {
        'action': last_edit.action,
        'userId': last_edit.user_id,
        'createdAt': last_edit.created_at.isoformat(),
    } if last_edit else None
    return jsonify({'success': True, 'runList': payload})


@run_lists_bp.route('/run-lists/active', methods=['GET'])
def get_active_run_list():
    """The caller's own active run list, or null."""
    principal = require_principal()
    run_list = RunList.query.filter_by(created_by_id=principal.id, is_active=True).first()
    if run_list is None:
        return jsonify({'success': True, 'runList': None})
    payload = run_list.to_dict()
    payload['entries'] = _entries_payload(run_list)
    return jsonify({'success': True, 'runList': payload})


@run_lists_bp.route('/sessions/tonight', methods=['GET'])
def tonight():
    """Tonight at a glance: the live run list (if any) and the active races in running order."""
    principal = require_principal()
    live = RunList.query.filter_by(is_live=True).first()
    if live is not None and not live.is_public and not live.is_owned_by(principal):
        live = None
    run_list = None
    if live is not None:
        run_list = live.to_dict()
        run_list['entries'] = _entries_payload(live)
    races = fetch_ordered(ACTIVE_RACES, None)
    return jsonify({'success': True, 'runList': run_list, 'races': [race.to_dict() for race in races]})


@run_lists_bp.route('/run-lists/<run_list_id>', methods=['PATCH'])
@rate_limited('mutation')
def update_run_list(run_list_id):
    """Edit a run list's details or flags.

    Activating a list deactivates the owner's other lists; making one live
    takes every other list off air.
    """
    principal = require_principal()
    run_list = _get_owned_run_list(run_list_id, principal, 'edit this run list')
    body = json_body()
    changes = {}

    if 'name' in body:
        name = optional_text(body, 'name', 200)
        if not name:
            raise ValidationFailed('name cannot be empty.')
        changes['name'] = run_list.name = name
    if 'description' in body:
        changes['description'] = run_list.description = optional_text(body, 'description')
    for key, attr in (('isPublic', 'is_public'), ('isActive', 'is_active'), ('isLive', 'is_live')):
        if key in body:
            value = optional_bool(body, key)
            if value is None:
                raise ValidationFailed(f'{key} must be true or false.')
            setattr(run_list, attr, value)
            changes[key] = value

    if changes.get('isActive'):
        (RunList.query
         .filter(RunList.created_by_id == run_list.created_by_id, RunList.id != run_list.id)
         .update({RunList.is_active: False}, synchronize_session=False))
    if changes.get('isLive'):
        RunList.query.filter(RunList.id != run_list.id).update({RunList.is_live: False}, synchronize_session=False)

    if changes:
        _record_edit(run_list, principal, 'UPDATE', changes)
    db.session.commit()
    return jsonify({'success': True, 'runList': run_list.to_dict()})


@run_lists_bp.route('/run-lists/<run_list_id>', methods=['DELETE'])
@rate_limited('mutation')
def delete_run_list(run_list_id):
    principal = require_principal()
    run_list = _get_owned_run_list(run_list_id, principal, 'delete this run list')
    details = {'name': run_list.name, 'entryCount': run_list.entries.count()}
    db.session.delete(run_list)
    audit.log_action(audit.DELETE_RUN_LIST, 'run_list', run_list_id, details, principal)
    db.session.commit()
    return jsonify({'success': True})


@run_lists_bp.route('/run-lists/<run_list_id>/entries', methods=['POST'])
@rate_limited('mutation')
def add_entry(run_list_id):
    principal = require_principal()
    run_list = _get_owned_run_list(run_list_id, principal, 'add entries')
    body = json_body()

    track_id = body.get('trackId')
    if not isinstance(track_id, str) or not track_id:
        raise ValidationFailed('trackId is required.')
    if db.session.get(Track, track_id) is None:
        raise NotFound.of('Track')
    race_id = body.get('raceId')
    if race_id is not None and (not isinstance(race_id, str) or db.session.get(Race, race_id) is None):
        raise NotFound.of('Race')

    entry = RunListEntry(
        run_list_id=run_list.id,
        order=next_position(RUN_LIST_ENTRIES, run_list.id),
        track_id=track_id,
        race_id=race_id,
        notes=optional_text(body, 'notes'),
        updated_by_id=principal.id,
    )
    db.session.add(entry)
    db.session.flush()
    _record_edit(run_list, principal, 'ADD_ENTRY', {'entryId': entry.id, 'trackId': track_id})
    db.session.commit()
    return jsonify({'success': True, 'entry': entry.to_dict()}), 201


@run_lists_bp.route('/run-lists/<run_list_id>/entries/<entry_id>', methods=['DELETE'])
@rate_limited('mutation')
def remove_entry(run_list_id, entry_id):
    principal = require_principal()
    run_list = _get_owned_run_list(run_list_id, principal, 'remove entries')
    entry = db.session.get(RunListEntry, entry_id)
    if entry is None or entry.run_list_id != run_list.id:
        raise NotFound.of('Entry')

    db.session.delete(entry)
    db.session.flush()
    compact_order(RUN_LIST_ENTRIES, run_list.id, principal.id)
    _record_edit(run_list, principal, 'REMOVE_ENTRY', {'entryId': entry_id})
    db.session.commit()
    return jsonify({'success': True, 'entries': _entries_payload(run_list)})


@run_lists_bp.route('/run-lists/<run_list_id>/reorder', methods=['PATCH'])
@rate_limited('mutation')
def reorder_entries(run_list_id):
    """Reorder a run list.

    Takes the full order as ``{"entryIds": [...]}``, or a single move as
    ``{"entryId": ..., "newOrder": n}`` (1-based) which is expanded into the
    full order first.
    """
    principal = require_principal()
    run_list = _get_owned_run_list(run_list_id, principal, 'reorder entries')
    body = json_body()

    if 'entryIds' not in body and 'entryId' in body:
        entry_ids = move_item(ordered_ids(RUN_LIST_ENTRIES, run_list.id), body.get('entryId'), body.get('newOrder'))
    else:
        entry_ids = body.get('entryIds')

    entry_ids = reorder_collection(RUN_LIST_ENTRIES, run_list.id, entry_ids, principal, field='entryIds')
    _record_edit(run_list, principal, 'REORDER', {'entryIds': entry_ids})
    audit.record(audit.REORDER_RUN_LIST, 'run_list', run_list.id, {'entryIds': entry_ids}, principal)
    return jsonify({'success': True, 'entries': _entries_payload(run_list)})
