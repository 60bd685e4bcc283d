from __future__ import annotations

from ..extensions import db
from ..money import as_number
from ..time_utils import to_utc_z
from .inventory import new_id


class Order(db.Model):
    """
    Order created by a successful reservation.

    WHY: Lines are snapshots taken inside the reservation transaction, so
    later catalog or price edits never rewrite a historical order. Totals are
    derived at creation and never edited.

    STATUS:
    - payment_status: pending -> paid
    - status: mirrors payment_status, or "cancelled" when staff release an
      abandoned reservation
    - payment_mode records which path (stub/stripe) completed the order
    Immutable once paid.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_payment_status_created", "payment_status", "created_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    order_number = db.Column(db.Integer, nullable=False)

    customer_name = db.Column(db.String(255), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False, index=True)
    customer_phone = db.Column(db.String(64), nullable=True)
    shipping_address = db.Column(db.JSON, nullable=False)
    display_currency = db.Column(db.String(3), nullable=False, default="AUD")

    subtotal_aud = db.Column(db.Numeric(10, 2), nullable=False)
    shipping_aud = db.Column(db.Numeric(10, 2), nullable=False)
    gst_aud = db.Column(db.Numeric(10, 2), nullable=False)
    total_aud = db.Column(db.Numeric(10, 2), nullable=False)

    payment_status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    payment_mode = db.Column(db.String(16), nullable=False)

    # Processor correlation
    stripe_checkout_session_id = db.Column(db.String(255), nullable=True, index=True)
    stripe_payment_intent_id = db.Column(db.String(255), nullable=True)

    paid_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        order_by="OrderLine.id",
        cascade="all, delete-orphan",
    )
    upsell_lines = db.relationship(
        "OrderUpsellLine",
        backref="order",
        lazy=True,
        order_by="OrderUpsellLine.id",
        cascade="all, delete-orphan",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def inventory_item_ids(self) -> list[str]:
        return [line.inventory_item_id for line in self.lines]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "shipping_address": self.shipping_address,
            "display_currency": self.display_currency,
            "items": [line.to_dict() for line in self.lines],
            "upsell_items": [line.to_dict() for line in self.upsell_lines],
            "subtotal_aud": as_number(self.subtotal_aud),
            "shipping_aud": as_number(self.shipping_aud),
            "gst_aud": as_number(self.gst_aud),
            "total_aud": as_number(self.total_aud),
            "payment_status": self.payment_status,
            "status": self.status,
            "payment_mode": self.payment_mode,
            "stripe_checkout_session_id": self.stripe_checkout_session_id,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "paid_at": to_utc_z(self.paid_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class OrderLine(db.Model):
    """Inventory unit on an order, frozen at reservation time."""
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(32), db.ForeignKey("orders.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.String(32), db.ForeignKey("inventory_items.id"), nullable=False, index=True)

    # Snapshot fields
    inventory_number = db.Column(db.Integer, nullable=False)
    device_id = db.Column(db.Integer, nullable=True)
    description = db.Column(db.String(255), nullable=False)
    price_aud = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "inventory_id": self.inventory_item_id,
            "inventory_number": self.inventory_number,
            "device_id": self.device_id,
            "description": self.description,
            "price_aud": as_number(self.price_aud),
        }


class OrderUpsellLine(db.Model):
    """Add-on product on an order, frozen at reservation time."""
    __tablename__ = "order_upsell_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.String(32), db.ForeignKey("orders.id"), nullable=False, index=True)
    upsell_id = db.Column(db.Integer, db.ForeignKey("upsell_products.id"), nullable=False)

    name = db.Column(db.String(255), nullable=False)
    price_aud = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    @property
    def line_total_aud(self):
        return self.price_aud * self.quantity

    def to_dict(self) -> dict:
        return {
            "upsell_id": self.upsell_id,
            "name": self.name,
            "price_aud": as_number(self.price_aud),
            "quantity": self.quantity,
        }
