"""
Sticky-notes board routes (JSON). Everyone signed in can read and vote;
notes are edited or removed by their author or an admin.
"""
import re

from flask import Blueprint, jsonify
from sqlalchemy.exc import IntegrityError

import config
from database import db
from models import Note, NoteVote
from routes.common import json_body, optional_bool, optional_text
from services.errors import AuthorizationDenied, Conflict, NotFound, ValidationFailed
from services.principal import require_approved, require_principal
from services.rate_limit import rate_limited

notes_bp = Blueprint('notes', __name__)

COLOR_RE = re.compile(r'^#[0-9a-fA-F]{6}$')


def _get_note(note_id) -> Note:
    note = db.session.get(Note, note_id)
    if note is None:
        raise NotFound.of('Note')
    return note


def _color(body: dict):
    color = body.get('color')
    if color is None:
        return None
    if not isinstance(color, str) or not COLOR_RE.match(color):
        raise ValidationFailed('color must be a hex colour like #fef08a.')
    return color.lower()


def _position(body: dict, key: str):
    value = body.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed(f'{key} must be a whole number.')
    return value


def _apply_fields(note: Note, body: dict):
    if 'title' in body:
        note.title = optional_text(body, 'title', config.NOTE_TITLE_MAX_LENGTH) or ''
    if 'content' in body:
        note.content = optional_text(body, 'content', config.NOTE_CONTENT_MAX_LENGTH) or ''
    if body.get('color') is not None:
        note.color = _color(body)
    if body.get('positionX') is not None:
        note.position_x = _position(body, 'positionX')
    if body.get('positionY') is not None:
        note.position_y = _position(body, 'positionY')
    if body.get('pinned') is not None:
        note.pinned = optional_bool(body, 'pinned')


@notes_bp.route('/notes', methods=['GET'])
def list_notes():
    """Pinned notes first, then newest first."""
    principal = require_principal()
    notes = Note.query.order_by(Note.pinned.desc(), Note.created_at.desc(), Note.id).all()
    return jsonify({'success': True, 'notes': [note.to_dict(viewer_id=principal.id) for note in notes]})


@notes_bp.route('/notes', methods=['POST'])
@rate_limited('mutation')
def create_note():
    principal = require_approved(require_principal())
    body = json_body()
    note = Note(
        title='',
        content='',
        color=config.NOTE_DEFAULT_COLOR,
        position_x=0,
        position_y=0,
        pinned=False,
        created_by_id=principal.id,
    )
    _apply_fields(note, body)
    if not note.title and not note.content:
        raise ValidationFailed('A note needs a title or some content.')
    db.session.add(note)
    db.session.commit()
    return jsonify({'success': True, 'note': note.to_dict(viewer_id=principal.id)}), 201


@notes_bp.route('/notes/<note_id>', methods=['PATCH'])
@rate_limited('mutation')
def update_note(note_id):
    principal = require_principal()
    note = _get_note(note_id)
    if not note.is_owned_by(principal):
        raise AuthorizationDenied('You can only edit your own notes.')
    _apply_fields(note, json_body())
    db.session.commit()
    return jsonify({'success': True, 'note': note.to_dict(viewer_id=principal.id)})


@notes_bp.route('/notes/<note_id>', methods=['DELETE'])
@rate_limited('mutation')
def delete_note(note_id):
    principal = require_principal()
    note = _get_note(note_id)
    if not note.is_owned_by(principal):
        raise AuthorizationDenied('You can only delete your own notes.')
    db.session.delete(note)
    db.session.commit()
    return jsonify({'success': True})


@notes_bp.route('/notes/<note_id>/vote', methods=['POST'])
@rate_limited('mutation')
def vote(note_id):
    """Cast or switch the caller's vote. Repeating the same vote changes nothing."""
    principal = require_approved(require_principal())
    body = json_body()
    vote_type = body.get('voteType')
    if vote_type not in NoteVote.TYPES:
        raise ValidationFailed(f'voteType must be one of: {", ".join(NoteVote.TYPES)}.')
    note = _get_note(note_id)

    existing = NoteVote.query.filter_by(note_id=note.id, user_id=principal.id).first()
    if existing is not None and existing.vote_type == vote_type:
        return jsonify({'success': True, 'voteType': vote_type, 'changed': False})

    status = 200
    if existing is not None:
        existing.vote_type = vote_type
    else:
        db.session.add(NoteVote(note_id=note.id, user_id=principal.id, vote_type=vote_type))
        status = 201
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise Conflict('Vote was already recorded; try again.') from exc
    payload = note.to_dict(viewer_id=principal.id)
    return jsonify({'success': True, 'voteType': vote_type, 'changed': True,
                    'upvotes': payload['upvotes'], 'downvotes': payload['downvotes']}), status


@notes_bp.route('/notes/<note_id>/vote', methods=['DELETE'])
@rate_limited('mutation')
def remove_vote(note_id):
    principal = require_principal()
    note = _get_note(note_id)
    NoteVote.query.filter_by(note_id=note.id, user_id=principal.id).delete(synchronize_session=False)
    db.session.commit()
    return jsonify({'success': True})
