"""Orders with reminder flags and cancel snapshot; day ledger of paid orders

Revision ID: 20261019_orders
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_orders"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("phone", sa.String(32), nullable=False, server_default=""),
        sa.Column("email", sa.String(255), nullable=False, server_default=""),
        sa.Column("address", sa.Text(), nullable=False, server_default=""),
        sa.Column("state", sa.String(128), nullable=False, server_default=""),
        sa.Column("pincode", sa.String(16), nullable=False, server_default=""),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("discounted_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("product", sa.Text(), nullable=False, server_default=""),
        sa.Column("sku", sa.Text(), nullable=False, server_default=""),
        sa.Column("sizes", sa.Text(), nullable=False, server_default=""),
        sa.Column("technique", sa.Text(), nullable=False, server_default=""),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("items", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending_payment"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("message_sent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("next_message", sa.String(32), nullable=True),
        sa.Column("reminder_24_sent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("reminder_48_sent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("reminder_72_sent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("supplier_sent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("paid_message_pending", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("resend_qr_pending", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("tracking_sent", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("tracking_id", sa.String(128), nullable=True),
        sa.Column("hidden_from_today", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("previous_status", sa.String(32), nullable=True),
        sa.Column("previous_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("previous_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("previous_next_message", sa.String(32), nullable=True),
        sa.Column("previous_reminder_24_sent", sa.Boolean(), nullable=True),
        sa.Column("previous_reminder_48_sent", sa.Boolean(), nullable=True),
        sa.Column("previous_reminder_72_sent", sa.Boolean(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_order_id", ["order_id"], unique=True)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_orders_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "paid_order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False, server_default=""),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("sku", sa.Text(), nullable=False, server_default=""),
        sa.Column("sizes", sa.Text(), nullable=False, server_default=""),
        sa.Column("technique", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("paid_order_items", schema=None) as batch_op:
        batch_op.create_index("ix_paid_order_items_day", ["day"], unique=False)
        batch_op.create_index("ix_paid_order_items_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_paid_order_items_day_order", ["day", "order_id"], unique=False)


def downgrade():
    with op.batch_alter_table("paid_order_items", schema=None) as batch_op:
        batch_op.drop_index("ix_paid_order_items_day_order")
        batch_op.drop_index("ix_paid_order_items_order_id")
        batch_op.drop_index("ix_paid_order_items_day")
    op.drop_table("paid_order_items")

    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.drop_index("ix_orders_status_created")
        batch_op.drop_index("ix_orders_status")
        batch_op.drop_index("ix_orders_order_id")
    op.drop_table("orders")
