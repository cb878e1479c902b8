"""API error taxonomy. Every error maps to one status code and one reason string."""
from __future__ import annotations

import strings as text


class ApiError(Exception):
    """Base class for errors reported at the HTTP boundary."""

    status_code = 500
    reason = text.INTERNAL_ERROR

    def __init__(self, message: str | None = None, reason: str | None = None, headers: dict | None = None):
        if reason is not None:
            self.reason = reason
        self.message = message or text.message(self.reason)
        self.headers = headers or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {'success': False, 'error': self.reason, 'message': self.message}


class AuthenticationRequired(ApiError):
    status_code = 401
    reason = text.NOT_AUTHENTICATED


class AuthorizationDenied(ApiError):
    status_code = 403
    reason = text.FORBIDDEN


class ValidationFailed(ApiError):
    status_code = 400
    reason = text.INVALID_PAYLOAD


class NotFound(ApiError):
    status_code = 404
    reason = text.NOT_FOUND

    @classmethod
    def of(cls, what: str) -> 'NotFound':
        return cls(text.message(text.NOT_FOUND, what=what))


class Conflict(ApiError):
    status_code = 409
    reason = text.CONFLICT


class RateLimited(ApiError):
    status_code = 429
    reason = text.RATE_LIMITED


class TransactionFailed(ApiError):
    """The atomic update could not commit. Nothing was changed."""

    status_code = 500
    reason = text.TRANSACTION_FAILED
