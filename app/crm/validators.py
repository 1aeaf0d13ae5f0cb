"""
Small validator combinators for request input.

A field is a list of rules. Each rule takes `(field_name, value)` and returns
the (possibly converted) value or raises `FieldError`. Rules other than
`required()` let `None` through, so presence is always enforced separately.

`ObjectSchema.validate()` runs every field, drops keys it does not know, and
raises one `ValidationError` listing every failing field.
"""
from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from datetime import date
from enum import Enum
from typing import Any

from app.crm.errors import ValidationError
from app.crm.utils import MAX_INT

Rule = Callable[[str, Any], Any]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_DIGITS_RE = re.compile(r"[0-9]+")
_SIGNED_DIGITS_RE = re.compile(r"-?[0-9]+")
_DATE_SHAPES = {"YYYY-MM-DD": re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")}


class FieldError(Exception):
    pass


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def required() -> Rule:
    def rule(field: str, value: Any) -> Any:
        if _is_blank(value):
            raise FieldError(f"{field} is a required field")
        return value

    return rule


def not_blank() -> Rule:
    """Absent is fine; present but empty is not."""

    def rule(field: str, value: Any) -> Any:
        if value is not None and _is_blank(value):
            raise FieldError(f"{field} cannot be blank")
        return value

    return rule


def string(max_length: int | None = None, *, strip: bool = True) -> Rule:
    def rule(field: str, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise FieldError(f"{field} must be a `string` type")
        value = str(value)
        if strip:
            value = value.strip()
        if max_length is not None and len(value) > max_length:
            raise FieldError(f"{field} must be at most {max_length} characters")
        return value

    return rule


def email() -> Rule:
    def rule(field: str, value: Any) -> Any:
        if _is_blank(value):
            return value
        if not _EMAIL_RE.match(str(value)):
            raise FieldError(f"{field} must be a valid email")
        return value

    return rule


def positive_integer(maximum: int | None = None) -> Rule:
    """
    Accept only values whose original text is all ASCII digits ("12", 12).
    Negative numbers, decimals and signs are rejected. Blank input becomes None.
    With `maximum`, larger values are rejected too.
    """

    def rule(field: str, value: Any) -> Any:
        if _is_blank(value):
            return None
        if isinstance(value, bool):
            raise FieldError(f"{field} must be a positive integer")
        original = str(value).strip()
        if not _DIGITS_RE.fullmatch(original):
            raise FieldError(f"{field} must be a positive integer")
        number = int(original)
        if maximum is not None and number > maximum:
            raise FieldError(f"{field} must be less than or equal to {maximum}")
        return number

    return rule


def min_value(minimum: int) -> Rule:
    def rule(field: str, value: Any) -> Any:
        if value is not None and value < minimum:
            raise FieldError(f"{field} must be greater than or equal to {minimum}")
        return value

    return rule


def value_of(choices: type[Enum] | Mapping[Any, Any] | None) -> Rule:
    """
    Every comma-separated component of the value must be one of the numeric
    keys of `choices` (an Enum or a mapping). An empty/None choice set passes.
    """
    if choices is None:
        keys: set[str] = set()
    elif isinstance(choices, type) and issubclass(choices, Enum):
        keys = {str(member.value) for member in choices}
    else:
        keys = {str(k) for k in choices.keys()}
    allowed = {k for k in keys if _SIGNED_DIGITS_RE.fullmatch(k)}

    def rule(field: str, value: Any) -> Any:
        if not keys or value is None:
            return value
        for part in str(value).split(","):
            if part not in allowed:
                raise FieldError(f"{field} must be one of the following values: {', '.join(sorted(allowed))}")
        return value

    return rule


def date_format(fmt: str = "YYYY-MM-DD") -> Rule:
    shape = _DATE_SHAPES[fmt]

    def rule(field: str, value: Any) -> Any:
        if _is_blank(value):
            return None
        text = str(value).strip()
        if not shape.fullmatch(text):
            raise FieldError(f"{field} must be in {fmt} format")
        try:
            date.fromisoformat(text)
        except ValueError:
            raise FieldError(f"{field} must be a valid date") from None
        return text

    return rule


def _to_int(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    text = str(raw).strip()
    if not _SIGNED_DIGITS_RE.fullmatch(text):
        return None
    return int(text)


DEFAULT_LIMIT = 10


def paginate(data: dict[str, Any]) -> dict[str, Any]:
    """
    `limit` falls back to 10; `offset` arrives as a 1-based page number and
    leaves as a record offset: (page - 1) * limit. Both inputs are clamped to
    MAX_INT so the product stays within a 64-bit LIMIT/OFFSET.
    """
    limit = _to_int(data.get("limit"))
    if limit is None or limit < 1:
        limit = DEFAULT_LIMIT
    page = _to_int(data.get("offset"))
    if page is None or page < 1:
        page = 1
    limit = min(limit, MAX_INT)
    page = min(page, MAX_INT)
    data["limit"] = limit
    data["offset"] = (page - 1) * limit
    return data


class ObjectSchema:
    def __init__(
        self,
        fields: Mapping[str, Iterable[Rule]],
        *,
        transforms: Iterable[Callable[[dict[str, Any]], dict[str, Any]]] = (),
    ):
        self.fields = {name: list(rules) for name, rules in fields.items()}
        self.transforms = list(transforms)

    def extend(self, fields: Mapping[str, Iterable[Rule]]) -> "ObjectSchema":
        merged = dict(self.fields)
        merged.update({name: list(rules) for name, rules in fields.items()})
        return ObjectSchema(merged, transforms=self.transforms)

    def validate(self, raw: Mapping[str, Any] | None) -> dict[str, Any]:
        if not isinstance(raw, Mapping):
            raw = {}
        out: dict[str, Any] = {}
        errors: list[str] = []
        for name, rules in self.fields.items():
            value = raw.get(name)
            try:
                for rule in rules:
                    value = rule(name, value)
            except FieldError as e:
                errors.append(str(e))
                continue
            out[name] = value
        if errors:
            raise ValidationError(errors)
        for transform in self.transforms:
            out = transform(out)
        return out
