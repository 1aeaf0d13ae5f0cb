from __future__ import annotations

import uuid

from flask import Blueprint, current_app, g, request
from sqlalchemy import select

from app.crm.db import db_session
from app.crm.errors import BadRequest, Unauthorized
from app.crm.models import Customer
from app.crm.rbac import AuthUser
from app.crm.schemas import login_schema
from app.crm.security import decode_access_token, issue_tokens, verify_password
from app.crm.utils import format_date

bp = Blueprint("auth", __name__)

# Paths reachable without a bearer token.
PUBLIC_PATHS = ("/v1/login", "/health")

LOGIN_FAILED = "Login information is incorrect"


def _is_public(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in PUBLIC_PATHS)


def resolve_identity(token: str) -> AuthUser:
    """
    Token -> active customer identity. Raises Unauthorized on any failure.
    """
    customer_id = decode_access_token(token)
    s = db_session()
    row = s.execute(
        select(Customer.id, Customer.email, Customer.position_id)
        .where(Customer.id == customer_id, Customer.deleted_at.is_(None))
        .limit(1)
    ).first()
    if row is None:
        raise Unauthorized("Invalid or expired token")
    return AuthUser(id=row.id, email=row.email, position_id=row.position_id)


def load_current_user() -> None:
    """
    before_request gate. Assigns a per-request request_id, then resolves the
    bearer token to g.current_user. g.current_user is only set once every
    check has passed.
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.current_user = None
    if _is_public(request.path):
        return

    header = request.headers.get("Authorization") or ""
    if not header.startswith("Bearer "):
        raise Unauthorized("Authentication required")
    token = header[len("Bearer "):].strip()
    if not token:
        raise Unauthorized("Authentication required")

    g.current_user = resolve_identity(token)


def current_user() -> AuthUser | None:
    return getattr(g, "current_user", None)


def login(s, data: dict) -> dict:
    """
    Email + password -> profile + token pair. Unknown email and wrong password
    produce the same error.
    """
    customer = s.execute(
        select(Customer).where(Customer.email == data["email"], Customer.deleted_at.is_(None))
    ).scalar_one_or_none()

    if customer is None or not verify_password(data["password"], customer.password):
        current_app.logger.info("Login failed (request_id=%s)", getattr(g, "request_id", None))
        raise BadRequest(LOGIN_FAILED)

    token = issue_tokens({"id": customer.id, "email": customer.email, "positionId": customer.position_id})
    current_app.logger.info("Login ok customer_id=%s (request_id=%s)", customer.id, getattr(g, "request_id", None))
    return {
        "id": str(customer.id),
        "email": customer.email,
        "name": customer.name,
        "started_date": format_date(customer.started_date),
        "position_id": str(customer.position_id),
        "created_date": format_date(customer.created_at),
        "updated_date": format_date(customer.updated_at),
        "token": token,
    }


@bp.post("/login")
def login_post():
    data = login_schema.validate(request.get_json(silent=True))
    return login(db_session(), data)
