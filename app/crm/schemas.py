"""
Input schemas, one per request shape.
"""
from __future__ import annotations

from app.crm.rbac import Position
from app.crm.utils import MAX_INT
from app.crm.validators import (
    ObjectSchema,
    date_format,
    email,
    min_value,
    not_blank,
    paginate,
    positive_integer,
    required,
    string,
    value_of,
)

login_schema = ObjectSchema(
    {
        "email": [required(), string(), email()],
        # Strength is not checked here: a weak guess must get the generic login error.
        "password": [required(), string(strip=False)],
    }
)

_customer_fields = {
    "name": [required(), string(max_length=100)],
    "email": [required(), string(max_length=255), email()],
    "positionId": [required(), positive_integer(), value_of(Position)],
    "startedDate": [required(), date_format("YYYY-MM-DD")],
}

customer_create_schema = ObjectSchema(
    {
        **_customer_fields,
        "password": [required(), string(max_length=255, strip=False)],
    }
)

# Partial update: omitted fields keep their stored values.
customer_update_schema = ObjectSchema(
    {
        "name": [not_blank(), string(max_length=100)],
        "email": [not_blank(), string(max_length=255), email()],
        "positionId": [positive_integer(), value_of(Position)],
        "startedDate": [date_format("YYYY-MM-DD")],
        "password": [not_blank(), string(max_length=255, strip=False)],
    }
)

_pagination_fields = {
    "limit": [],
    "offset": [],
}

common_search_schema = ObjectSchema(_pagination_fields, transforms=[paginate])

customer_search_schema = common_search_schema.extend(
    {
        "name": [string(max_length=100)],
        # Unvalidated on purpose: a non-numeric positionId searches for nothing.
        "positionId": [string()],
        "startedDateFrom": [date_format("YYYY-MM-DD")],
        "startedDateTo": [date_format("YYYY-MM-DD")],
    }
)

order_create_schema = ObjectSchema(
    {
        "itemName": [required(), string(max_length=15)],
        "itemCode": [string(max_length=7)],
        "itemQuantity": [required(), positive_integer(maximum=MAX_INT), min_value(1)],
        "customerId": [required(), positive_integer(maximum=MAX_INT)],
    }
)

order_search_schema = common_search_schema.extend({})
