"""
Race, race roster and parts catalogue routes (JSON).

Tonight's active races form one ordered list; each race's members form
another. Both are reordered through the atomic reorder service.
"""
import logging

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import IntegrityError

import config
from database import db
from models import Part, PartCategory, Race, RaceMember, Track, User
from routes.common import json_body, optional_bool, optional_text
from services import audit
from services.errors import AuthorizationDenied, Conflict, NotFound, ValidationFailed
from services.principal import require_admin, require_approved, require_principal
from services.rate_limit import rate_limited
from services.reorder import ACTIVE_RACES, RACE_MEMBERS, compact_order, fetch_ordered, next_position, reorder_collection

logger = logging.getLogger(__name__)

races_bp = Blueprint('races', __name__)


def _get_race(race_id) -> Race:
    race = db.session.get(Race, race_id)
    if race is None:
        raise NotFound.of('Race')
    return race


def _get_member(race: Race, member_id) -> RaceMember:
    member = db.session.get(RaceMember, member_id)
    if member is None or member.race_id != race.id:
        raise NotFound.of('Race member')
    return member


def _require_race_owner(race: Race, principal, action: str):
    if principal.id != race.created_by_id and not principal.is_admin:
        raise AuthorizationDenied(f'Only the race creator or an admin can {action}.')


def _active_part(part_id) -> Part:
    if not isinstance(part_id, str) or not part_id:
        raise ValidationFailed('partId must be a part id.')
    part = db.session.get(Part, part_id)
    if part is None or not part.is_active:
        raise NotFound.of('Part')
    return part


def _default_tyre():
    return (
        Part.query
        .join(PartCategory)
        .filter(PartCategory.name == config.TYRE_CATEGORY_NAME, Part.name == config.DEFAULT_TYRE_NAME)
        .first()
    )


def _parse_laps(body: dict):
    laps = body.get('laps')
    if laps is None:
        return None
    if isinstance(laps, bool) or not isinstance(laps, int) or laps < 1:
        raise ValidationFailed('laps must be a positive integer.')
    return laps


def _parse_weather(body: dict):
    weather = body.get('weather')
    if weather is None:
        return None
    if weather not in config.VALID_WEATHER:
        raise ValidationFailed(f'weather must be one of: {", ".join(config.VALID_WEATHER)}.')
    return weather


def _ordered_races() -> list:
    """Active races in running order, then inactive races by name."""
    active = fetch_ordered(ACTIVE_RACES, None)
    inactive = Race.query.filter(Race.is_active.is_(False)).all()
    inactive.sort(key=lambda race: race.display_name.lower())
    return active + inactive


@races_bp.route('/races', methods=['GET'])
def list_races():
    require_principal()
    return jsonify({'success': True, 'races': [race.to_dict() for race in _ordered_races()]})


@races_bp.route('/races', methods=['POST'])
@rate_limited('mutation')
def create_race():
    principal = require_approved(require_principal())
    body = json_body()

    track_id = body.get('trackId')
    if not isinstance(track_id, str) or not track_id:
        raise ValidationFailed('trackId is required.')
    if db.session.get(Track, track_id) is None:
        raise NotFound.of('Track')

    race = Race(
        track_id=track_id,
        name=optional_text(body, 'name', 200),
        description=optional_text(body, 'description'),
        laps=_parse_laps(body),
        weather=_parse_weather(body),
        is_active=optional_bool(body, 'isActive', False),
        created_by_id=principal.id,
        updated_by_id=principal.id,
    )
    if race.is_active:
        race.order = next_position(ACTIVE_RACES, None)
    db.session.add(race)
    db.session.commit()
    logger.info('Created race %s', race.id, extra={'actor_id': principal.id})
    return jsonify({'success': True, 'race': race.to_dict()}), 201


@races_bp.route('/races/reorder', methods=['POST'])
@rate_limited('mutation')
def reorder_races():
    """Set the running order of tonight's active races."""
    principal = require_principal()
    body = json_body()
    race_ids = reorder_collection(ACTIVE_RACES, None, body.get('raceIds'), principal, field='raceIds')
    audit.record(audit.REORDER_RACES, 'race', None, {'raceIds': race_ids}, principal)
    races = fetch_ordered(ACTIVE_RACES, None)
    return jsonify({'success': True, 'races': [race.to_dict() for race in races]})


@races_bp.route('/races/<race_id>', methods=['GET'])
def get_race(race_id):
    require_principal()
    race = _get_race(race_id)
    return jsonify({'success': True, 'race': race.to_dict(include_members=True)})


@races_bp.route('/races/<race_id>', methods=['PATCH'])
@rate_limited('mutation')
def update_race(race_id):
    principal = require_principal()
    race = _get_race(race_id)
    _require_race_owner(race, principal, 'edit this race')
    body = json_body()

    if 'trackId' in body:
        track_id = body.get('trackId')
        if not isinstance(track_id, str) or db.session.get(Track, track_id) is None:
            raise NotFound.of('Track')
        race.track_id = track_id
    if 'name' in body:
        race.name = optional_text(body, 'name', 200)
    if 'description' in body:
        race.description = optional_text(body, 'description')
    if 'laps' in body:
        race.laps = _parse_laps(body)
    if 'weather' in body:
        race.weather = _parse_weather(body)

    deactivated = False
    if 'isActive' in body:
        is_active = optional_bool(body, 'isActive')
        if is_active and not race.is_active:
            race.order = next_position(ACTIVE_RACES, None)
            race.is_active = True
        elif is_active is False and race.is_active:
            race.is_active = False
            race.order = None
            deactivated = True

    race.updated_by_id = principal.id
    db.session.flush()
    if deactivated:
        compact_order(ACTIVE_RACES, None, principal.id)
    db.session.commit()
    return jsonify({'success': True, 'race': race.to_dict()})


@races_bp.route('/races/<race_id>', methods=['DELETE'])
@rate_limited('mutation')
def delete_race(race_id):
    principal = require_principal()
    race = _get_race(race_id)
    _require_race_owner(race, principal, 'delete this race')

    was_active = race.is_active
    details = {'name': race.display_name, 'wasActive': was_active}
    db.session.delete(race)
    db.session.flush()
    if was_active:
        compact_order(ACTIVE_RACES, None, principal.id)
    audit.log_action(audit.DELETE_RACE, 'race', race_id, details, principal)
    db.session.commit()
    return jsonify({'success': True})


@races_bp.route('/races/<race_id>/members', methods=['GET'])
def list_members(race_id):
    require_principal()
    race = _get_race(race_id)
    members = fetch_ordered(RACE_MEMBERS, race.id)
    return jsonify({'success': True, 'members': [m.to_dict() for m in members]})


@races_bp.route('/races/<race_id>/members', methods=['POST'])
@rate_limited('mutation')
def add_member(race_id):
    principal = require_admin(require_principal(), 'manage race members')
    race = _get_race(race_id)
    body = json_body()

    user_id = body.get('userId')
    if not isinstance(user_id, str) or not user_id:
        raise ValidationFailed('userId is required.')
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound.of('User')
    if not user.is_approved:
        raise ValidationFailed('Only approved users can be added to a race.')
    if RaceMember.query.filter_by(race_id=race.id, user_id=user.id).first() is not None:
        raise Conflict('User is already a member of this race.')

    if body.get('partId') is not None:
        part = _active_part(body.get('partId'))
    else:
        part = _default_tyre()
        if part is None:
            raise ValidationFailed(f'partId is required; default tyre "{config.DEFAULT_TYRE_NAME}" is not configured.')

    member = RaceMember(
        race_id=race.id,
        user_id=user.id,
        part_id=part.id,
        order=next_position(RACE_MEMBERS, race.id),
        updated_by_id=principal.id,
    )
    db.session.add(member)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise Conflict('User is already a member of this race.') from exc
    return jsonify({'success': True, 'member': member.to_dict()}), 201


@races_bp.route('/races/<race_id>/members/reorder', methods=['PATCH'])
@rate_limited('mutation')
def reorder_members(race_id):
    """Set the grid order of a race's members. Admins only."""
    principal = require_admin(require_principal(), 'reorder race members')
    body = json_body()
    race = _get_race(race_id)
    member_ids = reorder_collection(RACE_MEMBERS, race.id, body.get('memberIds'), principal, field='memberIds')
    audit.record(audit.REORDER_MEMBERS, 'race', race.id, {'memberIds': member_ids}, principal)
    members = fetch_ordered(RACE_MEMBERS, race.id)
    return jsonify({'success': True, 'members': [m.to_dict() for m in members]})


@races_bp.route('/races/<race_id>/members/<member_id>', methods=['DELETE'])
@rate_limited('mutation')
def remove_member(race_id, member_id):
    principal = require_admin(require_principal(), 'manage race members')
    race = _get_race(race_id)
    member = _get_member(race, member_id)

    db.session.delete(member)
    db.session.flush()
    compact_order(RACE_MEMBERS, race.id, principal.id)
    db.session.commit()
    members = fetch_ordered(RACE_MEMBERS, race.id)
    return jsonify({'success': True, 'members': [m.to_dict() for m in members]})


@races_bp.route('/races/<race_id>/members/<member_id>/tyre', methods=['PATCH'])
@rate_limited('mutation')
def change_member_tyre(race_id, member_id):
    principal = require_admin(require_principal(), 'change tyres')
    race = _get_race(race_id)
    member = _get_member(race, member_id)
    body = json_body()

    part = _active_part(body.get('partId'))
    member.part_id = part.id
    member.updated_by_id = principal.id
    db.session.commit()
    return jsonify({'success': True, 'member': member.to_dict()})


@races_bp.route('/parts', methods=['GET'])
def list_parts():
    require_principal()
    query = Part.query.join(PartCategory).filter(Part.is_active.is_(True))
    category = (request.args.get('category') or '').strip()
    if category:
        query = query.filter(PartCategory.name == category)
    parts = query.order_by(PartCategory.display_order, Part.name).all()
    return jsonify({'success': True, 'parts': [part.summary() for part in parts]})


@races_bp.route('/parts/tyres', methods=['GET'])
def list_tyres():
    """Tyre compounds in the order the roster picker shows them."""
    require_principal()
    tyres = (
        Part.query
        .join(PartCategory)
        .filter(PartCategory.name == config.TYRE_CATEGORY_NAME, Part.is_active.is_(True))
        .all()
    )
    rank = {name: index for index, name in enumerate(config.TYRE_PART_NAMES)}
    tyres.sort(key=lambda part: (rank.get(part.name, len(rank)), part.name))
    return jsonify({
        'success': True,
        'defaultTyre': config.DEFAULT_TYRE_NAME,
        'tyres': [part.summary() for part in tyres],
    })
