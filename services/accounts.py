"""
Account lifecycle: sign-up, admin approval and rejection, role changes and removal.

Every function that acts on behalf of someone takes the acting ``Principal``
explicitly. Functions commit their own changes; email notifications are sent
only after the commit and never affect the outcome.
"""
from __future__ import annotations

import logging
import re
from types import SimpleNamespace

import config
from database import db
from models import Note, Race, RaceMember, RunList, User
from services import audit, notifications
from services.errors import Conflict, NotFound, ValidationFailed
from services.principal import require_admin, require_approved
from services.reorder import RACE_MEMBERS, compact_order

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
GAMERTAG_RE = re.compile(r'^[A-Za-z0-9 _\-]+$')


def admin_emails(exclude_user_id: str | None = None) -> list:
    query = User.query.filter(User.role == config.ROLE_ADMIN)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return [user.email for user in query.order_by(User.created_at).all()]


def _get_user(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound.of('User')
    return user


def _clean_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise ValidationFailed('A valid email address is required.')
    return email.strip().lower()


def _check_password(password) -> None:
    if not isinstance(password, str) or len(password) < config.MIN_PASSWORD_LENGTH:
        raise ValidationFailed(f'Password must be at least {config.MIN_PASSWORD_LENGTH} characters.')


def _clean_name(name):
    if name is None:
        return None
    if not isinstance(name, str):
        raise ValidationFailed('Name must be a string.')
    if len(name.strip()) > 200:
        raise ValidationFailed('Name must be at most 200 characters.')
    return name.strip() or None


def register_user(email, password, name=None) -> User:
    """Create a PENDING account and alert the admins."""
    email = _clean_email(email)
    _check_password(password)
    name = _clean_name(name)
    if User.query.filter_by(email=email).first() is not None:
        raise Conflict('An account with that email already exists.')

    user = User(email=email, name=name, role=config.ROLE_PENDING)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    logger.info('Registered pending user %s', user.id)

    if notifications.send_pending_signup_alert(user, admin_emails()):
        user.admin_notified = True
        db.session.commit()
    return user


def set_gamertag(principal, gamertag) -> User:
    require_approved(principal)
    if not isinstance(gamertag, str) or not gamertag.strip():
        raise ValidationFailed('Gamertag is required.')
    gamertag = gamertag.strip()
    if len(gamertag) > config.GAMERTAG_MAX_LENGTH:
        raise ValidationFailed(f'Gamertag must be at most {config.GAMERTAG_MAX_LENGTH} characters.')
    if not GAMERTAG_RE.match(gamertag):
        raise ValidationFailed('Gamertag may contain letters, numbers, spaces, dashes and underscores only.')

    taken = User.query.filter(User.gamertag == gamertag, User.id != principal.id).first()
    if taken is not None:
        raise Conflict('That gamertag is already taken.')

    user = _get_user(principal.id)
    user.gamertag = gamertag
    db.session.commit()
    return user


def approve_user(user_id: str, principal) -> User:
    require_admin(principal, 'approve users')
    user = _get_user(user_id)
    if not user.is_pending:
        raise ValidationFailed('User is not pending approval.')

    user.role = config.ROLE_USER
    audit.log_action(audit.APPROVE_USER, 'user', user.id, {'email': user.email}, principal)
    db.session.commit()
    logger.info('Approved user %s', user.id, extra={'actor_id': principal.id})

    notifications.send_approval_email(user)
    return user


def reject_user(user_id: str, principal, reason=None) -> dict:
    """Delete a pending account. The rejected user is not emailed."""
    require_admin(principal, 'reject users')
    if reason is not None:
        if not isinstance(reason, str):
            raise ValidationFailed('Reason must be a string.')
        if len(reason) > config.REJECTION_REASON_MAX_LENGTH:
            raise ValidationFailed(f'Reason must be at most {config.REJECTION_REASON_MAX_LENGTH} characters.')
        reason = reason.strip() or None

    user = _get_user(user_id)
    if not user.is_pending:
        raise ValidationFailed('User is not pending approval.')

    summary = {'id': user.id, 'email': user.email, 'name': user.name}
    audit.log_action(audit.REJECT_USER, 'user', user.id, {'email': user.email, 'reason': reason}, principal)
    db.session.delete(user)
    db.session.commit()
    logger.info('Rejected pending user %s', summary['id'], extra={'actor_id': principal.id})
    return summary


def change_role(user_id: str, role, principal) -> User:
    require_admin(principal, 'change user roles')
    if role not in config.APPROVED_ROLES:
        raise ValidationFailed(f'Role must be one of: {", ".join(sorted(config.APPROVED_ROLES))}.')
    if user_id == principal.id:
        raise ValidationFailed('You cannot change your own role.')

    user = _get_user(user_id)
    previous = user.role
    if previous == role:
        return user
    user.role = role
    audit.log_action(audit.CHANGE_ROLE, 'user', user.id, {'from': previous, 'to': role}, principal)
    db.session.commit()
    return user


def delete_user(user_id: str, principal) -> dict:
    """Remove a user and their race memberships, laps, builds and votes.

    Their races, run lists and notes are handed to *principal*.
    """
    require_admin(principal, 'remove users')
    if user_id == principal.id:
        raise ValidationFailed('You cannot remove your own account.')

    user = _get_user(user_id)
    acting = _get_user(principal.id)

    memberships = RaceMember.query.filter_by(user_id=user.id).all()
    affected_races = sorted({m.race_id for m in memberships})
    for membership in memberships:
        db.session.delete(membership)
    db.session.flush()
    for race_id in affected_races:
        compact_order(RACE_MEMBERS, race_id, principal.id)

    reassigned_races = Race.query.filter_by(created_by_id=user.id).update(
        {Race.created_by_id: principal.id}, synchronize_session=False)
    reassigned_lists = RunList.query.filter_by(created_by_id=user.id).update(
        {RunList.created_by_id: principal.id}, synchronize_session=False)
    reassigned_notes = Note.query.filter_by(created_by_id=user.id).update(
        {Note.created_by_id: principal.id}, synchronize_session=False)

    summary = {
        'id': user.id,
        'email': user.email,
        'removedMemberships': len(memberships),
        'reassignedRaces': reassigned_races,
        'reassignedRunLists': reassigned_lists,
        'reassignedNotes': reassigned_notes,
    }
    audit.log_action(audit.DELETE_USER, 'user', user.id, summary, principal)
    removed = SimpleNamespace(email=user.email, display_name=user.display_name)
    db.session.delete(user)
    db.session.commit()
    logger.info('Removed user %s', summary['id'], extra={'actor_id': principal.id})

    notifications.send_user_removal_notification(removed, acting, admin_emails(exclude_user_id=principal.id))
    return summary


def bootstrap_admin(email, password, name=None) -> User:
    """Create the first ADMIN account. Refuses once any admin exists."""
    if User.query.filter_by(role=config.ROLE_ADMIN).first() is not None:
        raise Conflict('An admin account already exists.')
    email = _clean_email(email)
    _check_password(password)
    name = _clean_name(name)

    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, name=name)
        db.session.add(user)
    user.role = config.ROLE_ADMIN
    user.set_password(password)
    db.session.commit()
    logger.info('Bootstrapped admin %s', user.id)
    return user
