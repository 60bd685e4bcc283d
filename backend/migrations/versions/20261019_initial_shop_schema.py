"""Initial shop schema: catalog, inventory, orders, counters, ledger

Revision ID: 20261019_initial_shop
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial_shop"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "devices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("make", sa.String(64), nullable=False),
        sa.Column("model", sa.String(128), nullable=False),
        sa.Column("storage", sa.String(32), nullable=True),
        sa.Column("category", sa.String(32), nullable=False, server_default="Phone"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("devices", schema=None) as batch_op:
        batch_op.create_index("ix_devices_make_model", ["make", "model"], unique=False)

    op.create_table(
        "upsell_products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price_aud", sa.Numeric(10, 2), nullable=False),
        sa.Column("image", sa.String(512), nullable=True),
        sa.Column("compatible_categories", sa.JSON(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("upsell_products", schema=None) as batch_op:
        batch_op.create_index("ix_upsell_products_active", ["active"], unique=False)

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("inventory_number", sa.Integer(), nullable=False),
        sa.Column("serial", sa.String(64), nullable=False),
        sa.Column("serial_key", sa.String(64), nullable=False),
        sa.Column("device_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(32), nullable=False, server_default="Phone"),
        sa.Column("cosmetic_grade", sa.String(8), nullable=False),
        sa.Column("battery_health", sa.Integer(), nullable=True),
        sa.Column("cost_nzd", sa.Numeric(10, 2), nullable=True),
        sa.Column("cost_aud", sa.Numeric(10, 2), nullable=True),
        sa.Column("sell_price_aud", sa.Numeric(10, 2), nullable=True),
        sa.Column("sell_price_nzd", sa.Numeric(10, 2), nullable=True),
        sa.Column("location", sa.String(64), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="received"),
        sa.Column("listed", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("source_type", sa.String(32), nullable=False),
        sa.Column("source_quote_id", sa.String(64), nullable=True),
        sa.Column("source_name", sa.String(255), nullable=True),
        sa.Column("return_reason", sa.String(255), nullable=True),
        sa.Column("returned_from_order_id", sa.String(32), nullable=True),
        sa.Column("returned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("acquired_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["device_id"], ["devices.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("serial_key", name="uq_inventory_items_serial_key"),
        sa.UniqueConstraint("inventory_number", name="uq_inventory_items_number"),
    )
    with op.batch_alter_table("inventory_items", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_items_device_id", ["device_id"], unique=False)
        batch_op.create_index("ix_inventory_items_status", ["status"], unique=False)
        batch_op.create_index("ix_inventory_items_status_listed", ["status", "listed"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("order_number", sa.Integer(), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(64), nullable=True),
        sa.Column("shipping_address", sa.JSON(), nullable=False),
        sa.Column("display_currency", sa.String(3), nullable=False, server_default="AUD"),
        sa.Column("subtotal_aud", sa.Numeric(10, 2), nullable=False),
        sa.Column("shipping_aud", sa.Numeric(10, 2), nullable=False),
        sa.Column("gst_aud", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_aud", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("payment_mode", sa.String(16), nullable=False),
        sa.Column("stripe_checkout_session_id", sa.String(255), nullable=True),
        sa.Column("stripe_payment_intent_id", sa.String(255), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number", name="uq_orders_order_number"),
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_customer_email", ["customer_email"], unique=False)
        batch_op.create_index("ix_orders_payment_status", ["payment_status"], unique=False)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_orders_stripe_checkout_session_id", ["stripe_checkout_session_id"], unique=False)
        batch_op.create_index("ix_orders_payment_status_created", ["payment_status", "created_at"], unique=False)

    op.create_table(
        "order_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.String(32), nullable=False),
        sa.Column("inventory_item_id", sa.String(32), nullable=False),
        sa.Column("inventory_number", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("price_aud", sa.Numeric(10, 2), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["inventory_item_id"], ["inventory_items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_lines", schema=None) as batch_op:
        batch_op.create_index("ix_order_lines_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_order_lines_inventory_item_id", ["inventory_item_id"], unique=False)

    op.create_table(
        "order_upsell_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.String(32), nullable=False),
        sa.Column("upsell_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price_aud", sa.Numeric(10, 2), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["upsell_id"], ["upsell_products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_upsell_lines", schema=None) as batch_op:
        batch_op.create_index("ix_order_upsell_lines_order_id", ["order_id"], unique=False)

    op.create_table(
        "counters",
        sa.Column("name", sa.String(32), nullable=False),
        sa.Column("next_value", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )

    op.create_table(
        "ledger_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("entity_id", sa.String(32), nullable=False),
        sa.Column("order_id", sa.String(32), nullable=True),
        sa.Column("inventory_item_id", sa.String(32), nullable=True),
        sa.Column("source", sa.String(16), nullable=True),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("ledger_events", schema=None) as batch_op:
        batch_op.create_index("ix_ledger_events_event_type", ["event_type"], unique=False)
        batch_op.create_index("ix_ledger_events_entity", ["entity_type", "entity_id"], unique=False)
        batch_op.create_index("ix_ledger_events_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_ledger_events_inventory_item_id", ["inventory_item_id"], unique=False)

    op.create_table(
        "settings",
        sa.Column("key", sa.String(64), nullable=False),
        sa.Column("value", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )


def downgrade():
    op.drop_table("settings")
    op.drop_table("ledger_events")
    op.drop_table("counters")
    op.drop_table("order_upsell_lines")
    op.drop_table("order_lines")
    op.drop_table("orders")
    op.drop_table("inventory_items")
    op.drop_table("upsell_products")
    op.drop_table("devices")
