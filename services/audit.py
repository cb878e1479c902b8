"""Helpers for writing audit log entries for admin actions and reorders."""
from __future__ import annotations

import json
import logging

from flask import has_request_context, request

from database import db
from models.audit_log import AuditLog

logger = logging.getLogger(__name__)

# Action names
REORDER_MEMBERS = 'REORDER_MEMBERS'
REORDER_RACES = 'REORDER_RACES'
REORDER_RUN_LIST = 'REORDER_RUN_LIST'
APPROVE_USER = 'APPROVE_USER'
REJECT_USER = 'REJECT_USER'
CHANGE_ROLE = 'CHANGE_ROLE'
DELETE_USER = 'DELETE_USER'
DELETE_RACE = 'DELETE_RACE'
DELETE_RUN_LIST = 'DELETE_RUN_LIST'


def client_ip() -> str | None:
    """First hop of X-Forwarded-For, else the socket address."""
    if not has_request_context():
        return None
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        first = forwarded.split(',')[0].strip()
        if first:
            return first[:64]
    return request.remote_addr


def log_action(action: str, entity_type: str, entity_id: str | None = None,
               details: dict | None = None, principal=None) -> AuditLog:
    """Stage an audit record in the current session. The caller commits."""
    user_agent = None
    if has_request_context():
        user_agent = (request.user_agent.string or '')[:255] or None

    entry = AuditLog(
        actor_user_id=principal.id if principal is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        ip_address=client_ip(),
        user_agent=user_agent,
        details_json=json.dumps(details or {}),
    )
    db.session.add(entry)
    return entry


def record(action: str, entity_type: str, entity_id: str | None = None,
           details: dict | None = None, principal=None) -> None:
    """Write an audit record in its own commit, after the audited change has committed.

    A failure here is logged and rolled back; the audited change stays committed.
    """
    try:
        log_action(action, entity_type, entity_id, details, principal)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception('Failed to write audit record %s for %s %s', action, entity_type, entity_id)
