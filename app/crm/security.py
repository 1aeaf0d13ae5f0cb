"""
Password hashing and token issuance/verification.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

from app.crm.errors import Unauthorized
from app.crm.utils import parse_int

ACCESS = "access"
REFRESH = "refresh"


def hash_password(plain: str) -> str:
    return generate_password_hash(plain)


def verify_password(plain: str, digest: str) -> bool:
    if not digest:
        return False
    try:
        return check_password_hash(digest, plain)
    except ValueError:
        # Unknown hash method in the stored value: never a match.
        return False


def _secret(kind: str) -> str:
    key = "JWT_ACCESS_SECRET" if kind == ACCESS else "JWT_REFRESH_SECRET"
    return str(current_app.config[key])


def _encode(claims: dict[str, Any], kind: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(claims["id"]),
        "email": claims["email"],
        "positionId": int(claims["positionId"]),
        "kind": kind,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, _secret(kind), algorithm=current_app.config["JWT_ALGORITHM"])


def issue_tokens(claims: dict[str, Any]) -> dict[str, str]:
    """
    claims: {"id", "email", "positionId"}. Returns {"accessToken", "refreshToken"}.
    """
    cfg = current_app.config
    return {
        "accessToken": _encode(claims, ACCESS, timedelta(minutes=int(cfg["JWT_ACCESS_EXPIRES_MINUTES"]))),
        "refreshToken": _encode(claims, REFRESH, timedelta(days=int(cfg["JWT_REFRESH_EXPIRES_DAYS"]))),
    }


def decode_access_token(token: str) -> int:
    """
    Verify signature, expiry and kind of an access token; return the customer id.
    Raises Unauthorized for anything else.
    """
    try:
        payload = jwt.decode(
            token,
            _secret(ACCESS),
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Invalid or expired token") from None
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid token") from None

    if payload.get("kind") != ACCESS:
        raise Unauthorized("Invalid token")
    customer_id = parse_int(str(payload.get("sub") or ""))
    if customer_id is None:
        raise Unauthorized("Invalid token")
    return customer_id
