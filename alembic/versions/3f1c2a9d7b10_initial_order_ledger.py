"""initial order ledger

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from menu_orders.db.types import UTCDateTime

# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None

# enum-типы создаём явно: order_status используется в двух таблицах
order_status = postgresql.ENUM(
    "pending", "accepted", "preparing", "ready", "delivered", "cancelled",
    name="order_status", create_type=False,
)
payment_method = postgresql.ENUM("cash", "card", "online", name="payment_method", create_type=False)
delivery_method = postgresql.ENUM("dine-in", "pickup", "delivery", name="delivery_method", create_type=False)


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    order_status.create(bind, checkfirst=True)
    payment_method.create(bind, checkfirst=True)
    delivery_method.create(bind, checkfirst=True)

    op.create_table(
        "orders",
        sa.Column("pk", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("order_number", sa.String(32), nullable=False),
        sa.Column("restaurant_id", sa.String(64), nullable=False),
        sa.Column("customer_name", sa.String(128), nullable=False),
        sa.Column("customer_phone", sa.String(32), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("status", order_status, nullable=False),
        sa.Column("payment_method", payment_method, nullable=False),
        sa.Column("delivery_method", delivery_method, nullable=False),
        sa.Column("table_number", sa.String(16), nullable=True),
        sa.Column("delivery_address", sa.String(512), nullable=True),
        sa.Column("special_instructions", sa.Text, nullable=True),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("estimated_ready_at", UTCDateTime(), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.UniqueConstraint("restaurant_id", "order_number", name="uq_orders_restaurant_order_number"),
    )
    op.create_index("ix_orders_id", "orders", ["id"], unique=True)
    op.create_index("ix_orders_restaurant_id", "orders", ["restaurant_id"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_pk", sa.Integer, sa.ForeignKey("orders.pk", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
    )
    op.create_index("ix_order_items_order_pk", "order_items", ["order_pk"])

    op.create_table(
        "order_status_history",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_pk", sa.Integer, sa.ForeignKey("orders.pk", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("status", order_status, nullable=False),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.Column("note", sa.Text, nullable=True),
    )
    op.create_index("ix_order_status_history_order_pk", "order_status_history", ["order_pk"])

    op.create_table(
        "order_notes",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("order_pk", sa.Integer, sa.ForeignKey("orders.pk", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
    )
    op.create_index("ix_order_notes_order_pk", "order_notes", ["order_pk"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("order_notes")
    op.drop_table("order_status_history")
    op.drop_table("order_items")
    op.drop_table("orders")

    bind = op.get_bind()
    delivery_method.drop(bind, checkfirst=True)
    payment_method.drop(bind, checkfirst=True)
    order_status.drop(bind, checkfirst=True)
