from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.crm.models import Base, TimestampMixin
from app.crm.modules.customers.models import Customer


class Order(TimestampMixin, Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("item_quantity > 0", name="ck_orders_item_quantity_positive"),
        Index("idx_orders_customer_id", "customer_id"),
        Index("idx_orders_created_at", "created_at"),
    )

    order_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_name: Mapped[str] = mapped_column(String(15), nullable=False)
    item_code: Mapped[str | None] = mapped_column(String(7), nullable=True)
    item_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT", onupdate="RESTRICT"),
        nullable=False,
    )

    customer: Mapped[Customer] = relationship("Customer", back_populates="orders", lazy="raise")
