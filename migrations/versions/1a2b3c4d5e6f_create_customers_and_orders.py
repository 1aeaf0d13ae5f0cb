"""create customers and orders

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "1a2b3c4d5e6f"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=False),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=False),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=False), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    existing_tables = set(inspect(bind).get_table_names())

    if "customers" not in existing_tables:
        op.create_table(
            "customers",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("email", sa.String(255), nullable=False),
            sa.Column("password", sa.String(255), nullable=False),
            sa.Column("name", sa.String(100), nullable=False),
            sa.Column("started_date", sa.Date(), nullable=False),
            sa.Column("position_id", sa.SmallInteger(), nullable=False),
            *_timestamps(),
            sa.UniqueConstraint("email", name="uq_customers_email"),
            sa.CheckConstraint("position_id IN (0, 1, 2)", name="ck_customers_position_id"),
        )
        op.create_index("idx_customers_name", "customers", ["name"])
        op.create_index("idx_customers_started_date", "customers", ["started_date"])

    if "orders" not in existing_tables:
        op.create_table(
            "orders",
            sa.Column("order_id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("item_name", sa.String(15), nullable=False),
            sa.Column("item_code", sa.String(7), nullable=True),
            sa.Column("item_quantity", sa.Integer(), nullable=False),
            sa.Column("customer_id", sa.Integer(), nullable=False),
            *_timestamps(),
            sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="RESTRICT", onupdate="RESTRICT"),
            sa.CheckConstraint("item_quantity > 0", name="ck_orders_item_quantity_positive"),
        )
        op.create_index("idx_orders_customer_id", "orders", ["customer_id"])
        op.create_index("idx_orders_created_at", "orders", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_orders_created_at", table_name="orders")
    op.drop_index("idx_orders_customer_id", table_name="orders")
    op.drop_table("orders")

    op.drop_index("idx_customers_started_date", table_name="customers")
    op.drop_index("idx_customers_name", table_name="customers")
    op.drop_table("customers")
