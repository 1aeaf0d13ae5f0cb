from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from app.crm.errors import Forbidden, Unauthorized


class Position(IntEnum):
    ADMIN = 0
    GROUP_ADMIN = 1
    USER = 2


@dataclass(frozen=True)
class AuthUser:
    """Caller identity resolved from the bearer token; lives for one request."""

    id: int
    email: str
    position_id: int

    @property
    def is_admin(self) -> bool:
        return self.position_id == Position.ADMIN


def require_user(user: AuthUser | None) -> AuthUser:
    if user is None:
        raise Unauthorized("Authentication required")
    return user


def require_admin(user: AuthUser | None) -> AuthUser:
    user = require_user(user)
    if not user.is_admin:
        raise Forbidden("Access denied")
    return user


def require_self_or_admin(user: AuthUser | None, customer_id: int) -> AuthUser:
    user = require_user(user)
    if not user.is_admin and user.id != customer_id:
        raise Forbidden("Access denied")
    return user
