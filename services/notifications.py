"""
Transactional email via Resend.

Gracefully degrades: without RESEND_API_KEY every send is a logged no-op.
Sends never raise; callers get True/False and carry on.
"""
from __future__ import annotations

import logging
from html import escape

import resend
from flask import current_app

logger = logging.getLogger(__name__)


def is_configured() -> bool:
    return bool(current_app.config.get('RESEND_API_KEY'))


def send_email(to, subject: str, html: str) -> bool:
    """Send one email to *to* (address or list of addresses)."""
    recipients = [to] if isinstance(to, str) else [addr for addr in (to or []) if addr]
    if not recipients or not subject:
        return False

    api_key = current_app.config.get('RESEND_API_KEY')
    if not api_key:
        logger.info('Email skipped (RESEND_API_KEY not set): %s', subject)
        return False

    resend.api_key = api_key
    params = {
        'from': current_app.config['EMAIL_FROM'],
        'to': recipients,
        'subject': subject,
        'html': html,
    }
    try:
        resend.Emails.send(params)
        logger.info('Email sent to %d recipient(s): %s', len(recipients), subject)
        return True
    except Exception as exc:
        logger.warning('Email delivery failed for %s: %s', subject, exc)
        return False


def _link(path: str) -> str:
    return f"{current_app.config['APP_BASE_URL']}{path}"


def send_approval_email(user) -> bool:
    name = escape(user.name or user.email)
    html = (
        f'<p>Hi {name},</p>'
        '<p>Your FridayGT account has been approved. You can now sign in, '
        'set your gamertag and join races.</p>'
        f'<p><a href="{_link("/auth/login")}">Sign in</a></p>'
    )
    return send_email(user.email, 'Your FridayGT account is approved', html)


def send_pending_signup_alert(user, admin_emails) -> bool:
    """Tell the admins a new account is waiting for approval."""
    if not admin_emails:
        logger.info('No admins to notify about pending user %s', user.id)
        return False
    html = (
        '<p>A new user signed up and is waiting for approval.</p>'
        f'<p>Name: {escape(user.name or "-")}<br>Email: {escape(user.email)}</p>'
        f'<p><a href="{_link("/admin/users")}">Review pending users</a></p>'
    )
    return send_email(list(admin_emails), 'New FridayGT user awaiting approval', html)


def send_user_removal_notification(removed_user, removed_by, admin_emails) -> bool:
    if not admin_emails:
        return False
    html = (
        f'<p>{escape(removed_user.display_name)} ({escape(removed_user.email)}) '
        f'was removed by {escape(removed_by.display_name)}.</p>'
    )
    return send_email(list(admin_emails), 'FridayGT user removed', html)
