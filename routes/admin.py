"""
Admin routes (JSON): sign-up approval, user roles and removal, audit log.
"""
from flask import Blueprint, jsonify, request

import config
from models import User
from models.audit_log import AuditLog
from routes.common import json_body
from services import accounts
from services.principal import require_admin, require_principal
from services.rate_limit import rate_limited

admin_bp = Blueprint('admin', __name__)


def _admin(action: str):
    return require_admin(require_principal(), action)


@admin_bp.route('/pending-users', methods=['GET'])
def pending_users():
    _admin('view pending users')
    users = User.query.filter_by(role=config.ROLE_PENDING).order_by(User.created_at.desc()).all()
    return jsonify({'success': True, 'users': [user.to_dict() for user in users]})


@admin_bp.route('/pending-users/<user_id>/approve', methods=['POST'])
@rate_limited('mutation')
def approve_user(user_id):
    principal = _admin('approve users')
    user = accounts.approve_user(user_id, principal)
    return jsonify({'success': True, 'user': user.to_dict()})


@admin_bp.route('/pending-users/<user_id>/reject', methods=['POST'])
@rate_limited('mutation')
def reject_user(user_id):
    principal = _admin('reject users')
    body = request.get_json(silent=True) or {}
    reason = body.get('reason') if isinstance(body, dict) else None
    summary = accounts.reject_user(user_id, principal, reason)
    return jsonify({'success': True, 'user': summary})


@admin_bp.route('/users', methods=['GET'])
def list_users():
    _admin('view users')
    users = User.query.order_by(User.created_at).all()
    return jsonify({'success': True, 'users': [user.to_dict() for user in users]})


@admin_bp.route('/users/<user_id>', methods=['PATCH'])
@rate_limited('mutation')
def change_role(user_id):
    principal = _admin('change user roles')
    body = json_body()
    user = accounts.change_role(user_id, body.get('role'), principal)
    return jsonify({'success': True, 'user': user.to_dict()})


@admin_bp.route('/users/<user_id>', methods=['DELETE'])
@rate_limited('mutation')
def delete_user(user_id):
    principal = _admin('remove users')
    summary = accounts.delete_user(user_id, principal)
    return jsonify({'success': True, 'removed': summary})


@admin_bp.route('/audit-log', methods=['GET'])
def audit_log():
    _admin('view the audit log')
    page = max(1, request.args.get('page', 1, type=int) or 1)
    query = AuditLog.query
    action = (request.args.get('action') or '').strip()
    if action:
        query = query.filter(AuditLog.action == action)
    entity_type = (request.args.get('entityType') or '').strip()
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)

    total = query.count()
    rows = (
        query
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((page - 1) * config.AUDIT_LOG_PAGE_SIZE)
        .limit(config.AUDIT_LOG_PAGE_SIZE)
        .all()
    )
    return jsonify({
        'success': True,
        'entries': [row.to_dict() for row in rows],
        'page': page,
        'pageSize': config.AUDIT_LOG_PAGE_SIZE,
        'total': total,
    })
