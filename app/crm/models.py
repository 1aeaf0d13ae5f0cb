from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.crm.utils import utcnow


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """
    created/updated/deleted timestamps shared by every table.
    `deleted_at IS NOT NULL` marks a soft-deleted row.
    """

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.crm.modules.customers.models import Customer  # noqa: E402,F401
from app.crm.modules.orders.models import Order  # noqa: E402,F401
