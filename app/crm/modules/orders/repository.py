from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crm.errors import BadRequest, NotFound
from app.crm.modules.customers.models import Customer
from app.crm.modules.orders.models import Order
from app.crm.rbac import AuthUser, require_admin, require_user
from app.crm.utils import format_date, utcnow

logger = logging.getLogger(__name__)

MAX_SEARCH_LIMIT = 100


def create_order(s: Session, data: dict[str, Any], *, user: AuthUser | None) -> int:
    user = require_user(user)
    customer_id = int(data["customerId"])
    exists = s.execute(
        select(Customer.id).where(Customer.id == customer_id, Customer.deleted_at.is_(None)).limit(1)
    ).first()
    if exists is None:
        raise NotFound.for_key(f"Customer.id = {customer_id}")

    now = utcnow()
    o = Order(
        item_name=data["itemName"],
        item_code=data.get("itemCode") or None,
        item_quantity=int(data["itemQuantity"]),
        customer_id=customer_id,
        created_at=now,
        updated_at=now,
    )
    s.add(o)
    try:
        s.flush()
    except IntegrityError:
        # Customer vanished between the check and the insert (FK restrict).
        s.rollback()
        raise BadRequest("Invalid customerId") from None
    logger.info("order.create id=%s customer_id=%s by=%s", o.order_id, customer_id, user.id)
    return o.order_id


def search_orders(s: Session, params: dict[str, Any], *, user: AuthUser | None) -> dict[str, Any]:
    """
    Admin-only audit listing: soft-deleted orders are included. Total count
    comes from a window function in the same query as the page.
    """
    require_admin(user)
    limit = params["limit"]
    if limit > MAX_SEARCH_LIMIT:
        raise BadRequest(f"Limit cannot exceed {MAX_SEARCH_LIMIT}")

    rows = s.execute(
        select(
            func.count().over().label("total_count"),
            Order.order_id,
            Order.item_name,
            Order.item_code,
            Order.item_quantity,
            Order.created_at,
            Order.updated_at,
            Order.deleted_at,
            Customer.id.label("customer_id"),
            Customer.name.label("customer_name"),
        )
        .join(Customer, Order.customer_id == Customer.id)
        .order_by(Order.created_at.desc(), Order.order_id.desc())
        .limit(limit)
        .offset(params["offset"])
    ).all()

    total = int(rows[0].total_count) if rows else 0
    return {
        "total_count": total,
        "order": [
            {
                "id": str(r.order_id),
                "item_name": r.item_name,
                "item_code": r.item_code or "",
                "item_quantity": str(r.item_quantity),
                "created_date": format_date(r.created_at),
                "updated_date": format_date(r.updated_at),
                "deleted_date": format_date(r.deleted_at),
                "customer": {
                    "id": str(r.customer_id),
                    "name": r.customer_name,
                },
            }
            for r in rows
        ],
    }
