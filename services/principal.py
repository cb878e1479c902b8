"""
Request principal: the acting user reduced to an id and a role.

Route handlers resolve the principal once from the Flask-Login session and
pass it explicitly to every service call, so authorization rules can be
exercised without a request context.
"""
from __future__ import annotations

from dataclasses import dataclass
from flask_login import current_user
import config
from services.errors import AuthenticationRequired, AuthorizationDenied


@dataclass(frozen=True)
class Principal:
    id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == config.ROLE_ADMIN

    @property
    def is_approved(self) -> bool:
        return self.role in config.APPROVED_ROLES

    @classmethod
    def from_user(cls, user) -> 'Principal':
        return cls(id=user.id, role=user.role)


def current_principal() -> Principal | None:
    if not getattr(current_user, 'is_authenticated', False):
        return None
    return Principal.from_user(current_user)


def require_principal() -> Principal:
    principal = current_principal()
    if principal is None:
        raise AuthenticationRequired()
    return principal


def require_approved(principal: Principal) -> Principal:
    if not principal.is_approved:
        raise AuthorizationDenied('Your account is awaiting admin approval.')
    return principal


def require_admin(principal: Principal, action: str = 'do that') -> Principal:
    if not principal.is_admin:
        raise AuthorizationDenied(f'Access denied - only admins can {action}.')
    return principal
