"""
Car and track catalogue routes, plus the car builds drivers share (JSON).
"""
import json
import logging

from flask import Blueprint, jsonify, request
from sqlalchemy import or_

import config
from database import db
from models import Car, CarBuild, Track
from routes.common import json_body, optional_bool, optional_text, query_flag
from services.errors import AuthorizationDenied, NotFound, ValidationFailed
from services.principal import require_approved, require_principal
from services.rate_limit import rate_limited

logger = logging.getLogger(__name__)

catalog_bp = Blueprint('catalog', __name__)


def _get_car_by_slug(slug) -> Car:
    car = Car.query.filter_by(slug=slug).first()
    if car is None:
        raise NotFound.of('Car')
    return car


def _get_track_by_slug(slug) -> Track:
    track = Track.query.filter_by(slug=slug).first()
    if track is None:
        raise NotFound.of('Track')
    return track


def _get_visible_build(build_id, principal) -> CarBuild:
    build = db.session.get(CarBuild, build_id)
    # Private builds are hidden from everyone but their owner and admins
    if build is None or not build.is_visible_to(principal):
        raise NotFound.of('Build')
    return build


def _build_name(body: dict, required: bool):
    name = optional_text(body, 'name', config.BUILD_NAME_MAX_LENGTH)
    if required and not name:
        raise ValidationFailed('name is required.')
    return name


def _gear_ratios(body: dict):
    ratios = body.get('gearRatios')
    if ratios is None:
        return None
    if (not isinstance(ratios, list) or len(ratios) > config.BUILD_MAX_GEARS
            or not all(isinstance(r, str) and len(r) <= 20 for r in ratios)):
        raise ValidationFailed(f'gearRatios must be a list of at most {config.BUILD_MAX_GEARS} short strings.')
    return json.dumps([r.strip() for r in ratios])


@catalog_bp.route('/tracks', methods=['GET'])
def list_tracks():
    require_principal()
    query = Track.query
    category = (request.args.get('category') or '').strip()
    if category:
        query = query.filter(Track.category == category)
    tracks = query.order_by(Track.name).all()
    return jsonify({'success': True, 'tracks': [track.summary() for track in tracks]})


@catalog_bp.route('/tracks/<slug>', methods=['GET'])
def get_track(slug):
    require_principal()
    return jsonify({'success': True, 'track': _get_track_by_slug(slug).summary()})


@catalog_bp.route('/cars', methods=['GET'])
def list_cars():
    require_principal()
    query = Car.query
    manufacturer = (request.args.get('manufacturer') or '').strip()
    if manufacturer:
        query = query.filter(Car.manufacturer == manufacturer)
    category = (request.args.get('category') or '').strip()
    if category:
        query = query.filter(Car.category == category)
    search = (request.args.get('q') or '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(Car.name.ilike(pattern), Car.manufacturer.ilike(pattern)))
    cars = query.order_by(Car.manufacturer, Car.name).all()
    return jsonify({'success': True, 'cars': [car.to_dict() for car in cars]})


@catalog_bp.route('/cars/<slug>', methods=['GET'])
def get_car(slug):
    principal = require_principal()
    car = _get_car_by_slug(slug)
    builds = car.builds.filter(or_(CarBuild.is_public.is_(True), CarBuild.user_id == principal.id))
    payload = car.to_dict()
    payload['builds'] = [build.to_dict() for build in builds.order_by(CarBuild.updated_at.desc()).all()]
    return jsonify({'success': True, 'car': payload})


@catalog_bp.route('/builds', methods=['GET'])
def list_builds():
    principal = require_principal()
    query = CarBuild.query
    if query_flag('mine'):
        query = query.filter(CarBuild.user_id == principal.id)
    elif query_flag('public'):
        query = query.filter(CarBuild.is_public.is_(True))
    elif not principal.is_admin:
        query = query.filter(or_(CarBuild.is_public.is_(True), CarBuild.user_id == principal.id))
    car_id = (request.args.get('carId') or '').strip()
    if car_id:
        query = query.filter(CarBuild.car_id == car_id)
    builds = query.order_by(CarBuild.updated_at.desc()).all()
    return jsonify({'success': True, 'builds': [build.to_dict() for build in builds]})


def _create_build(principal, body: dict, quick: bool) -> CarBuild:
    car_id = body.get('carId')
    if not isinstance(car_id, str) or not car_id:
        raise ValidationFailed('carId is required.')
    if db.session.get(Car, car_id) is None:
        raise NotFound.of('Car')

    build = CarBuild(
        user_id=principal.id,
        car_id=car_id,
        name=_build_name(body, required=True),
        description=optional_text(body, 'description', config.BUILD_DESCRIPTION_MAX_LENGTH),
        is_public=False if quick else optional_bool(body, 'isPublic', False),
    )
    if not quick:
        build.final_drive = optional_text(body, 'finalDrive', 20)
        build.gear_ratios_json = _gear_ratios(body)
    db.session.add(build)
    db.session.commit()
    logger.info('Created build %s', build.id, extra={'actor_id': principal.id})
    return build


@catalog_bp.route('/builds', methods=['POST'])
@rate_limited('mutation')
def create_build():
    principal = require_approved(require_principal())
    build = _create_build(principal, json_body(), quick=False)
    return jsonify({'success': True, 'build': build.to_dict()}), 201


@catalog_bp.route('/builds/quick', methods=['POST'])
@rate_limited('mutation')
def create_quick_build():
    """Name-only private build, created from the lap-time form."""
    principal = require_approved(require_principal())
    build = _create_build(principal, json_body(), quick=True)
    return jsonify({'success': True, 'build': build.to_dict()}), 201


@catalog_bp.route('/builds/<build_id>', methods=['GET'])
def get_build(build_id):
    principal = require_principal()
    return jsonify({'success': True, 'build': _get_visible_build(build_id, principal).to_dict()})


@catalog_bp.route('/builds/<build_id>', methods=['PATCH'])
@rate_limited('mutation')
def update_build(build_id):
    principal = require_principal()
    build = _get_visible_build(build_id, principal)
    if not build.is_owned_by(principal):
        raise AuthorizationDenied('Only the build owner or an admin can edit this build.')
    body = json_body()

    if 'name' in body:
        build.name = _build_name(body, required=True)
    if 'description' in body:
        build.description = optional_text(body, 'description', config.BUILD_DESCRIPTION_MAX_LENGTH)
    if 'isPublic' in body:
        is_public = optional_bool(body, 'isPublic')
        if is_public is None:
            raise ValidationFailed('isPublic must be true or false.')
        build.is_public = is_public
    if 'finalDrive' in body:
        build.final_drive = optional_text(body, 'finalDrive', 20)
    if 'gearRatios' in body:
        build.gear_ratios_json = _gear_ratios(body)
    db.session.commit()
    return jsonify({'success': True, 'build': build.to_dict()})


@catalog_bp.route('/builds/<build_id>', methods=['DELETE'])
@rate_limited('mutation')
def delete_build(build_id):
    principal = require_principal()
    build = _get_visible_build(build_id, principal)
    if not build.is_owned_by(principal):
        raise AuthorizationDenied('Only the build owner or an admin can delete this build.')
    db.session.delete(build)
    db.session.commit()
    return jsonify({'success': True})


@catalog_bp.route('/builds/<build_id>/clone', methods=['POST'])
@rate_limited('mutation')
def clone_build(build_id):
    """Copy a public (or own) build into a new private build owned by the caller."""
    principal = require_approved(require_principal())
    source = _get_visible_build(build_id, principal)

    suffix = ' (Copy)'
    author = (source.user.gamertag or source.user.name) if source.user else None
    credit = f"Cloned from {author or 'another driver'}'s build"
    clone = CarBuild(
        user_id=principal.id,
        car_id=source.car_id,
        name=source.name[:config.BUILD_NAME_MAX_LENGTH - len(suffix)] + suffix,
        description=f'{source.description}\n\n{credit}' if source.description else credit,
        is_public=False,
        final_drive=source.final_drive,
        gear_ratios_json=source.gear_ratios_json,
    )
    db.session.add(clone)
    db.session.commit()
    return jsonify({'success': True, 'build': clone.to_dict()}), 201
