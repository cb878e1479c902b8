"""
Lap-time recording and the per-track / per-car leaderboards.

Times are whole milliseconds (92345 is 1:32.345). A leaderboard groups laps by
the "other" dimension (cars on a track page, tracks on a car page), keeps each
group's fastest lap, and ranks drivers by their personal best.
"""
from __future__ import annotations

import logging

import config
from database import db
from models import Car, CarBuild, LapTime, Track
from services.errors import AuthorizationDenied, NotFound, ValidationFailed
from services.principal import require_approved

logger = logging.getLogger(__name__)


def format_lap_time(time_ms: int) -> str:
    """Render milliseconds as ``m:ss.sss``."""
    minutes, rest = divmod(int(time_ms), 60_000)
    seconds, millis = divmod(rest, 1000)
    return f'{minutes}:{seconds:02d}.{millis:03d}'


def _parse_time_ms(value, required=True):
    if value is None and not required:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationFailed('timeMs must be a whole number of milliseconds.')
    if not config.LAP_TIME_MIN_MS <= value <= config.LAP_TIME_MAX_MS:
        raise ValidationFailed(
            f'timeMs must be between {config.LAP_TIME_MIN_MS} and {config.LAP_TIME_MAX_MS} milliseconds.')
    return value


def _parse_session_type(value):
    if value is None:
        return None
    if value not in config.LAP_SESSION_TYPES:
        raise ValidationFailed(f'sessionType must be one of: {", ".join(config.LAP_SESSION_TYPES)}.')
    return value


def _optional_text(fields: dict, key: str, max_length: int):
    value = fields.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailed(f'{key} must be a string.')
    value = value.strip()
    if len(value) > max_length:
        raise ValidationFailed(f'{key} must be at most {max_length} characters.')
    return value or None


def _required_id(fields: dict, key: str) -> str:
    value = fields.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationFailed(f'{key} is required.')
    return value


def record_lap_time(principal, fields: dict) -> LapTime:
    """Store a lap for *principal*, snapshotting the build name if a build is given."""
    require_approved(principal)
    track_id = _required_id(fields, 'trackId')
    car_id = _required_id(fields, 'carId')
    time_ms = _parse_time_ms(fields.get('timeMs'))
    session_type = _parse_session_type(fields.get('sessionType')) or 'R'
    notes = _optional_text(fields, 'notes', 500)
    conditions = _optional_text(fields, 'conditions', 200)

    if db.session.get(Track, track_id) is None:
        raise NotFound.of('Track')
    if db.session.get(Car, car_id) is None:
        raise NotFound.of('Car')

    build_id = fields.get('buildId')
    build_name = None
    if build_id is not None:
        if not isinstance(build_id, str):
            raise ValidationFailed('buildId must be a string.')
        build = db.session.get(CarBuild, build_id)
        if build is None or not build.is_visible_to(principal):
            raise NotFound.of('Build')
        if build.car_id != car_id:
            raise ValidationFailed('Build belongs to a different car.')
        build_name = build.name

    lap = LapTime(
        user_id=principal.id,
        track_id=track_id,
        car_id=car_id,
        build_id=build_id,
        build_name=build_name,
        time_ms=time_ms,
        session_type=session_type,
        notes=notes,
        conditions=conditions,
    )
    db.session.add(lap)
    db.session.commit()
    logger.info('Recorded lap %s (%s)', lap.id, format_lap_time(time_ms), extra={'actor_id': principal.id})
    return lap


def _get_own_lap(lap_id, principal, action: str) -> LapTime:
    lap = db.session.get(LapTime, lap_id)
    if lap is None:
        raise NotFound.of('Lap time')
    if lap.user_id != principal.id:
        raise AuthorizationDenied(f'You can only {action} your own lap times.')
    return lap


def update_lap_time(lap_id, principal, fields: dict) -> LapTime:
    lap = _get_own_lap(lap_id, principal, 'edit')
    allowed = {'timeMs', 'notes', 'conditions', 'sessionType'}
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValidationFailed(f'Unknown fields: {", ".join(unknown)}.')

    if 'timeMs' in fields:
        lap.time_ms = _parse_time_ms(fields['timeMs'])
    if 'notes' in fields:
        lap.notes = _optional_text(fields, 'notes', 500)
    if 'conditions' in fields:
        lap.conditions = _optional_text(fields, 'conditions', 200)
    if 'sessionType' in fields:
        lap.session_type = _parse_session_type(fields['sessionType']) or lap.session_type
    db.session.commit()
    return lap


def delete_lap_time(lap_id, principal) -> None:
    lap = _get_own_lap(lap_id, principal, 'delete')
    db.session.delete(lap)
    db.session.commit()


def lap_query(track_id=None, car_id=None, user_id=None, session_type=None):
    query = LapTime.query
    if track_id:
        query = query.filter(LapTime.track_id == track_id)
    if car_id:
        query = query.filter(LapTime.car_id == car_id)
    if user_id:
        query = query.filter(LapTime.user_id == user_id)
    if session_type:
        query = query.filter(LapTime.session_type == session_type)
    return query.order_by(LapTime.created_at.desc(), LapTime.id)


def build_leaderboard(laps, group_by: str) -> dict:
    """Summarise *laps* (newest first) grouped by ``'car'`` or ``'track'``.

    Groups are ordered fastest first. ``drivers`` ranks each driver by their
    personal best across all the given laps; ties go to whoever set it first.
    """
    if group_by not in ('car', 'track'):
        raise ValueError(f'Unknown leaderboard grouping: {group_by}')
    key_attr = f'{group_by}_id'

    groups = {}
    for lap in laps:
        group = groups.get(getattr(lap, key_attr))
        if group is None:
            group = groups[getattr(lap, key_attr)] = {
                group_by: getattr(lap, group_by).summary(),
                'fastestTime': lap.time_ms,
                'totalLaps': 0,
                'recentLapTimes': [],
            }
        group['totalLaps'] += 1
        group['fastestTime'] = min(group['fastestTime'], lap.time_ms)
        if len(group['recentLapTimes']) < config.LEADERBOARD_RECENT_LAPS:
            group['recentLapTimes'].append(lap.to_dict())

    bests = {}
    for lap in laps:
        best = bests.get(lap.user_id)
        if best is None or (lap.time_ms, lap.created_at) < (best.time_ms, best.created_at):
            bests[lap.user_id] = lap
    ranked = sorted(bests.values(), key=lambda lap: (lap.time_ms, lap.created_at))
    drivers = [
        {
            'position': position,
            'user': lap.user.summary(),
            'bestTime': lap.time_ms,
            'bestTimeDisplay': format_lap_time(lap.time_ms),
            'lapTimeId': lap.id,
            group_by: getattr(lap, group_by).summary(),
        }
        for position, lap in enumerate(ranked, start=1)
    ]

    times = [lap.time_ms for lap in laps]
    statistics = {
        'totalLaps': len(times),
        'fastestTime': min(times) if times else None,
        'averageTime': round(sum(times) / len(times)) if times else None,
        f'unique{group_by.capitalize()}s': len(groups),
        'uniqueDrivers': len(bests),
    }
    return {
        'groups': sorted(groups.values(), key=lambda g: g['fastestTime']),
        'drivers': drivers,
        'statistics': statistics,
    }
