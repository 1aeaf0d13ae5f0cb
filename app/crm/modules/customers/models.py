from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, Index, Integer, SmallInteger, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.crm.models import Base, TimestampMixin

if TYPE_CHECKING:
    from app.crm.modules.orders.models import Order


class Customer(TimestampMixin, Base):
    __tablename__ = "customers"
    __table_args__ = (
        CheckConstraint("position_id IN (0, 1, 2)", name="ck_customers_position_id"),
        Index("idx_customers_name", "name"),
        Index("idx_customers_started_date", "started_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # werkzeug hash
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    started_date: Mapped[date] = mapped_column(Date, nullable=False)
    position_id: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    orders: Mapped[list["Order"]] = relationship("Order", back_populates="customer", lazy="raise")
