"""
Centralized machine-readable error reasons and their default messages.

Reasons are stable identifiers clients may switch on; messages are for people
and can change freely.
"""
from __future__ import annotations

NOT_AUTHENTICATED = 'not_authenticated'
FORBIDDEN = 'forbidden'
INVALID_PAYLOAD = 'invalid_payload'
PARENT_MISMATCH = 'parent_mismatch'
INCOMPLETE_MEMBERSHIP = 'incomplete_membership'
NOT_FOUND = 'not_found'
CONFLICT = 'conflict'
RATE_LIMITED = 'rate_limited'
TRANSACTION_FAILED = 'transaction_failed'
INTERNAL_ERROR = 'internal_error'
CSRF_FAILED = 'csrf_failed'

MESSAGES = {
    NOT_AUTHENTICATED: 'Authentication required.',
    FORBIDDEN: 'You do not have permission to do that.',
    INVALID_PAYLOAD: 'The request body is invalid.',
    PARENT_MISMATCH: 'One or more {items} do not belong to this {parent}.',
    INCOMPLETE_MEMBERSHIP: 'The submitted {items} must list every current item of this {parent} exactly once.',
    NOT_FOUND: '{what} not found.',
    CONFLICT: 'That change conflicts with existing data.',
    RATE_LIMITED: 'Too many requests. Please try again later.',
    TRANSACTION_FAILED: 'Failed to save the new order.',
    INTERNAL_ERROR: 'Internal server error.',
    CSRF_FAILED: 'The CSRF token is missing or invalid.',
}


# Fallbacks for templates formatted without every placeholder
PLACEHOLDER_DEFAULTS = {'what': 'Resource', 'items': 'items', 'parent': 'collection'}


class _WithDefaults(dict):
    def __missing__(self, key):
        return PLACEHOLDER_DEFAULTS.get(key, key)


def message(reason: str, **kwargs) -> str:
    """Return the default message for *reason*, formatted with *kwargs*."""
    template = MESSAGES.get(reason, MESSAGES[INTERNAL_ERROR])
    return template.format_map(_WithDefaults(kwargs))
