"""
Customer persistence.

Every read path goes through `_active()`: soft-deleted rows
(`deleted_at IS NOT NULL`) are treated as absent.
The email check in `create_customer` is for a friendly error only; the unique
constraint on `customers.email` is what actually prevents duplicates.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy import ColumnElement, false, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crm.errors import AlreadyExists, Forbidden, NotFound
from app.crm.modules.customers.models import Customer
from app.crm.modules.orders.models import Order
from app.crm.rbac import AuthUser, require_admin, require_self_or_admin
from app.crm.security import hash_password
from app.crm.utils import format_date, parse_int, utcnow

logger = logging.getLogger(__name__)


def _active():
    return Customer.deleted_at.is_(None)


def _not_found(customer_id: int) -> NotFound:
    return NotFound.for_key(f"Customer.id = {customer_id}")


def _get_active(s: Session, customer_id: int) -> Customer:
    c = s.execute(select(Customer).where(Customer.id == customer_id, _active())).scalar_one_or_none()
    if c is None:
        raise _not_found(customer_id)
    return c


def _email_taken(s: Session, email: str, *, exclude_id: int | None = None) -> bool:
    # deleted_at is ignored on purpose: it mirrors the storage-level unique constraint.
    q = select(Customer.id).where(Customer.email == email)
    if exclude_id is not None:
        q = q.where(Customer.id != exclude_id)
    return s.execute(q.limit(1)).first() is not None


def create_customer(s: Session, data: dict[str, Any]) -> int:
    if _email_taken(s, data["email"]):
        raise AlreadyExists.for_entity("Customer")

    now = utcnow()
    c = Customer(
        email=data["email"],
        password=hash_password(data["password"]),
        name=data["name"],
        started_date=date.fromisoformat(data["startedDate"]),
        position_id=int(data["positionId"]),
        created_at=now,
        updated_at=now,
    )
    s.add(c)
    try:
        s.flush()
    except IntegrityError:
        # Lost a race with a concurrent create of the same email.
        s.rollback()
        raise AlreadyExists.for_entity("Customer") from None
    logger.info("customer.create id=%s", c.id)
    return c.id


def search_by_id(s: Session, customer_id: int) -> Customer:
    """
    Soft-deleted customers are NotFound here too, like every other read path.
    """
    c = s.execute(
        select(Customer).where(
            Customer.id == customer_id,
            Customer.created_at.is_not(None),
            _active(),
        )
    ).scalar_one_or_none()
    if c is None:
        raise _not_found(customer_id)
    return c


def customer_profile(c: Customer) -> dict[str, Any]:
    return {
        "id": str(c.id),
        "email": c.email,
        "name": c.name,
        "started_date": format_date(c.started_date),
        "position_id": str(c.position_id),
        "created_date": format_date(c.created_at),
        "updated_date": format_date(c.updated_at),
    }


def update_customer(s: Session, customer_id: int, data: dict[str, Any], *, user: AuthUser | None) -> int:
    """
    Partial update: fields that are None keep their stored values.
    Admins may update anyone; everyone else only themselves, and without
    changing their own position.
    """
    c = _get_active(s, customer_id)
    user = require_self_or_admin(user, customer_id)
    new_position = data.get("positionId")
    if new_position is not None and not user.is_admin and new_position != c.position_id:
        raise Forbidden("Access denied")

    new_email = data.get("email")
    if new_email is not None and new_email != c.email and _email_taken(s, new_email, exclude_id=customer_id):
        raise AlreadyExists.for_entity("Customer")

    if data.get("name") is not None:
        c.name = data["name"]
    if new_email is not None:
        c.email = new_email
    if new_position is not None:
        c.position_id = new_position
    if data.get("startedDate") is not None:
        c.started_date = date.fromisoformat(data["startedDate"])
    if data.get("password") is not None:
        c.password = hash_password(data["password"])
    c.updated_at = utcnow()
    try:
        s.flush()
    except IntegrityError:
        s.rollback()
        raise AlreadyExists.for_entity("Customer") from None
    logger.info("customer.update id=%s by=%s", customer_id, user.id)
    return c.id


def delete_customer(s: Session, customer_id: int, *, user: AuthUser | None) -> None:
    """
    Soft delete. Admin only, and an Admin cannot delete themself.
    """
    c = _get_active(s, customer_id)
    user = require_admin(user)
    if user.id == customer_id:
        raise Forbidden("Cannot delete the logged-in customer")

    now = utcnow()
    c.deleted_at = now
    c.updated_at = now
    s.flush()
    logger.info("customer.delete id=%s by=%s", customer_id, user.id)


@dataclass(frozen=True)
class CustomerFilter:
    """
    Conjunction of search predicates. `matches_nothing` short-circuits the
    whole filter to a predicate no row satisfies.
    """

    conditions: tuple[ColumnElement[bool], ...] = ()
    matches_nothing: bool = False

    def where(self) -> tuple[ColumnElement[bool], ...]:
        if self.matches_nothing:
            return (false(),)
        return self.conditions


@dataclass
class CustomerFilterBuilder:
    conditions: list[ColumnElement[bool]] = field(default_factory=lambda: [_active()])
    matches_nothing: bool = False

    def name_contains(self, name: str | None) -> "CustomerFilterBuilder":
        if name:
            escaped = name.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            self.conditions.append(Customer.name.like(f"%{escaped}%", escape="\\"))
        return self

    def position_is(self, position_id: str | None) -> "CustomerFilterBuilder":
        if position_id:
            value = parse_int(position_id)
            if value is not None:
                self.conditions.append(Customer.position_id == value)
            else:
                self.matches_nothing = True
        return self

    def started_between(self, date_from: str | None, date_to: str | None) -> "CustomerFilterBuilder":
        if date_from:
            self.conditions.append(Customer.started_date >= date.fromisoformat(date_from))
        if date_to:
            self.conditions.append(Customer.started_date <= date.fromisoformat(date_to))
        return self

    def build(self) -> CustomerFilter:
        return CustomerFilter(conditions=tuple(self.conditions), matches_nothing=self.matches_nothing)


def build_customer_filter(params: dict[str, Any]) -> CustomerFilter:
    return (
        CustomerFilterBuilder()
        .name_contains(params.get("name"))
        .position_is(params.get("positionId"))
        .started_between(params.get("startedDateFrom"), params.get("startedDateTo"))
        .build()
    )


def _orders_by_customer(s: Session, customer_ids: list[int]) -> dict[int, list[dict[str, Any]]]:
    grouped: dict[int, list[dict[str, Any]]] = {cid: [] for cid in customer_ids}
    if not customer_ids:
        return grouped
    rows = s.execute(
        select(Order.order_id, Order.item_name, Order.created_at, Order.customer_id)
        .where(Order.customer_id.in_(customer_ids), Order.deleted_at.is_(None))
        .order_by(Order.created_at.asc(), Order.order_id.asc())
    ).all()
    for row in rows:
        grouped[row.customer_id].append(
            {
                "id": str(row.order_id),
                "item_name": row.item_name,
                "created_date": format_date(row.created_at),
            }
        )
    return grouped


def search_customers(s: Session, params: dict[str, Any]) -> dict[str, Any]:
    """
    Filtered, paginated customer list. `total_count` ignores the page window.
    """
    criteria = build_customer_filter(params).where()

    total = s.execute(select(func.count()).select_from(Customer).where(*criteria)).scalar_one()

    rows = s.execute(
        select(Customer.id, Customer.email, Customer.name, Customer.started_date, Customer.position_id)
        .where(*criteria)
        .order_by(Customer.name.asc(), Customer.started_date.asc(), Customer.id.asc())
        .limit(params["limit"])
        .offset(params["offset"])
    ).all()

    orders = _orders_by_customer(s, [r.id for r in rows])
    return {
        "total_count": int(total or 0),
        "customer": [
            {
                "id": str(r.id),
                "email": r.email,
                "name": r.name,
                "started_date": format_date(r.started_date),
                "position_id": str(r.position_id),
                "orders": orders.get(r.id, []),
            }
            for r in rows
        ],
    }
