from __future__ import annotations

from flask import Blueprint, request

from app.crm.auth import current_user
from app.crm.db import db_session
from app.crm.errors import BadRequest
from app.crm.modules.customers.repository import (
    create_customer,
    customer_profile,
    delete_customer,
    search_by_id,
    search_customers,
    update_customer,
)
from app.crm.schemas import customer_create_schema, customer_search_schema, customer_update_schema
from app.crm.utils import parse_id_param

bp = Blueprint("customers", __name__)


def _id_param(raw: str) -> int:
    customer_id = parse_id_param(raw)
    if customer_id is None:
        raise BadRequest("Invalid id")
    return customer_id


@bp.get("/customer")
def customers_search():
    params = customer_search_schema.validate(request.args.to_dict())
    return search_customers(db_session(), params)


@bp.post("/customer")
def customers_create():
    data = customer_create_schema.validate(request.get_json(silent=True))
    s = db_session()
    new_id = create_customer(s, data)
    s.commit()
    return {"id": new_id}, 201


@bp.get("/customer/<raw_id>")
def customers_get(raw_id: str):
    c = search_by_id(db_session(), _id_param(raw_id))
    return customer_profile(c)


@bp.put("/customer/<raw_id>")
def customers_update(raw_id: str):
    customer_id = _id_param(raw_id)
    data = customer_update_schema.validate(request.get_json(silent=True))
    s = db_session()
    updated_id = update_customer(s, customer_id, data, user=current_user())
    s.commit()
    return {"id": updated_id}


@bp.delete("/customer/<raw_id>")
def customers_delete(raw_id: str):
    s = db_session()
    delete_customer(s, _id_param(raw_id), user=current_user())
    s.commit()
    return "", 204
