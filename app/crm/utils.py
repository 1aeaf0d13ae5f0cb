from __future__ import annotations

import re
from datetime import date, datetime, timezone

# Largest value an `Integer` column holds on every supported backend.
MAX_INT = 2**31 - 1

_POSITIVE_INT_RE = re.compile(r"[0-9]+")


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are `timezone=False`)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def format_date(value: date | datetime | None) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_int(raw: str | None, *, maximum: int = MAX_INT) -> int | None:
    """ASCII digit strings up to `maximum`; anything else is None."""
    if raw is None or not _POSITIVE_INT_RE.fullmatch(raw):
        return None
    value = int(raw)
    if value > maximum:
        return None
    return value


def parse_id_param(raw: str | None) -> int | None:
    """Path ids must be plain digit strings in column range; anything else is rejected by the caller."""
    return parse_int(raw)
