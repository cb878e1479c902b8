"""
Lap-time routes (JSON): a driver's own laps, and the track and car leaderboards.
"""
from flask import Blueprint, jsonify, request

import config
from models import Car, Track
from routes.common import json_body, query_flag
from services import lap_times
from services.errors import NotFound, ValidationFailed
from services.principal import require_principal
from services.rate_limit import rate_limited

lap_times_bp = Blueprint('lap_times', __name__)


def _limit_arg():
    raw = request.args.get('limit')
    if raw is None:
        return None
    try:
        limit = int(raw)
    except ValueError:
        limit = 0
    if limit < 1:
        raise ValidationFailed('limit must be a positive number.')
    return limit


def _session_type_arg():
    session_type = (request.args.get('sessionType') or '').strip().upper() or None
    if session_type is not None and session_type not in config.LAP_SESSION_TYPES:
        raise ValidationFailed(f'sessionType must be one of: {", ".join(config.LAP_SESSION_TYPES)}.')
    return session_type


@lap_times_bp.route('/lap-times', methods=['GET'])
def list_my_lap_times():
    """The signed-in driver's laps, newest first."""
    principal = require_principal()
    query = lap_times.lap_query(
        track_id=(request.args.get('trackId') or '').strip() or None,
        car_id=(request.args.get('carId') or '').strip() or None,
        user_id=principal.id,
        session_type=_session_type_arg(),
    )
    limit = _limit_arg()
    if limit:
        query = query.limit(limit)
    return jsonify({'success': True, 'lapTimes': [lap.to_dict() for lap in query.all()]})


@lap_times_bp.route('/lap-times', methods=['POST'])
@rate_limited('mutation')
def record_lap_time():
    principal = require_principal()
    lap = lap_times.record_lap_time(principal, json_body())
    return jsonify({'success': True, 'lapTime': lap.to_dict()}), 201


@lap_times_bp.route('/lap-times/<lap_id>', methods=['PATCH'])
@rate_limited('mutation')
def update_lap_time(lap_id):
    principal = require_principal()
    lap = lap_times.update_lap_time(lap_id, principal, json_body())
    return jsonify({'success': True, 'lapTime': lap.to_dict()})


@lap_times_bp.route('/lap-times/<lap_id>', methods=['DELETE'])
@rate_limited('mutation')
def delete_lap_time(lap_id):
    principal = require_principal()
    lap_times.delete_lap_time(lap_id, principal)
    return jsonify({'success': True})


@lap_times_bp.route('/tracks/<slug>/lap-times', methods=['GET'])
def track_leaderboard(slug):
    """Laps on one track, grouped by car. ``?carId=`` narrows to one car, ``?userOnly=1`` to the caller."""
    principal = require_principal()
    track = Track.query.filter_by(slug=slug).first()
    if track is None:
        raise NotFound.of('Track')
    laps = lap_times.lap_query(
        track_id=track.id,
        car_id=(request.args.get('carId') or '').strip() or None,
        user_id=principal.id if query_flag('userOnly') else None,
        session_type=_session_type_arg(),
    ).all()
    board = lap_times.build_leaderboard(laps, group_by='car')
    return jsonify({
        'success': True,
        'track': track.summary(),
        'lapTimesByCar': board['groups'],
        'drivers': board['drivers'],
        'statistics': board['statistics'],
    })


@lap_times_bp.route('/cars/<slug>/lap-times', methods=['GET'])
def car_leaderboard(slug):
    """Laps in one car, grouped by track. ``?trackId=`` narrows to one track, ``?userOnly=1`` to the caller."""
    principal = require_principal()
    car = Car.query.filter_by(slug=slug).first()
    if car is None:
        raise NotFound.of('Car')
    laps = lap_times.lap_query(
        track_id=(request.args.get('trackId') or '').strip() or None,
        car_id=car.id,
        user_id=principal.id if query_flag('userOnly') else None,
        session_type=_session_type_arg(),
    ).all()
    board = lap_times.build_leaderboard(laps, group_by='track')
    return jsonify({
        'success': True,
        'car': car.summary(),
        'lapTimesByTrack': board['groups'],
        'drivers': board['drivers'],
        'statistics': board['statistics'],
    })
