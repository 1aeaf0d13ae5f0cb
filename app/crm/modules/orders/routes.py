from __future__ import annotations

from flask import Blueprint, request

from app.crm.auth import current_user
from app.crm.db import db_session
from app.crm.modules.orders.repository import create_order, search_orders
from app.crm.schemas import order_create_schema, order_search_schema

bp = Blueprint("orders", __name__)


@bp.get("/order")
def orders_search():
    params = order_search_schema.validate(request.args.to_dict())
    return search_orders(db_session(), params, user=current_user())


@bp.post("/order")
def orders_create():
    data = order_create_schema.validate(request.get_json(silent=True))
    s = db_session()
    new_id = create_order(s, data, user=current_user())
    s.commit()
    return {"id": new_id}, 201
