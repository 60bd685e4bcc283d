from __future__ import annotations

import uuid

from sqlalchemy.orm import validates

from ..extensions import db
from ..money import as_number
from ..time_utils import to_utc_z


def new_id() -> str:
    return uuid.uuid4().hex


def normalize_serial(serial: str | None) -> str | None:
    if serial is None:
        return None
    return serial.strip().upper()


class InventoryItem(db.Model):
    """
    One physical unit (IMEI/serial level), from intake to sale.

    LIFECYCLE: status moves received -> inspecting -> refurbishing -> listed
    -> reserved -> sold, and sold -> received on return. All status writes go
    through services.lifecycle_service so `listed` stays in step with status.

    SERIALS: serial is stored as entered; serial_key is the upper-cased,
    trimmed copy that carries the unique constraint (case-insensitive).

    Rows are never deleted once sold (audit trail).
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("serial_key", name="uq_inventory_items_serial_key"),
        db.UniqueConstraint("inventory_number", name="uq_inventory_items_number"),
        db.Index("ix_inventory_items_status_listed", "status", "listed"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)

    # Display-only sequential number (counter "inventory")
    inventory_number = db.Column(db.Integer, nullable=False)

    serial = db.Column(db.String(64), nullable=False)
    serial_key = db.Column(db.String(64), nullable=False)

    device_id = db.Column(db.Integer, db.ForeignKey("devices.id"), nullable=False, index=True)
    category = db.Column(db.String(32), nullable=False, default="Phone")
    cosmetic_grade = db.Column(db.String(8), nullable=False)
    battery_health = db.Column(db.Integer, nullable=True)

    cost_nzd = db.Column(db.Numeric(10, 2), nullable=True)
    cost_aud = db.Column(db.Numeric(10, 2), nullable=True)
    sell_price_aud = db.Column(db.Numeric(10, 2), nullable=True)
    sell_price_nzd = db.Column(db.Numeric(10, 2), nullable=True)

    location = db.Column(db.String(64), nullable=True)
    images = db.Column(db.JSON, nullable=False, default=list)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="received", index=True)
    listed = db.Column(db.Boolean, nullable=False, default=False)

    source_type = db.Column(db.String(32), nullable=False)  # trade-in, bulk, direct-purchase, return
    source_quote_id = db.Column(db.String(64), nullable=True)
    source_name = db.Column(db.String(255), nullable=True)

    # Return metadata (set by return_service)
    return_reason = db.Column(db.String(255), nullable=True)
    returned_from_order_id = db.Column(db.String(32), nullable=True)
    returned_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    acquired_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    device = db.relationship("Device")
    __mapper_args__ = {"version_id_col": version_id}

    @validates("serial")
    def _sync_serial_key(self, key, value):
        self.serial_key = normalize_serial(value)
        return value

    def __repr__(self) -> str:
        return f"<InventoryItem #{self.inventory_number} serial={self.serial!r} status={self.status}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_number": self.inventory_number,
            "serial": self.serial,
            "device_id": self.device_id,
            "category": self.category,
            "cosmetic_grade": self.cosmetic_grade,
            "battery_health": self.battery_health,
            "cost_nzd": as_number(self.cost_nzd),
            "cost_aud": as_number(self.cost_aud),
            "sell_price_aud": as_number(self.sell_price_aud),
            "sell_price_nzd": as_number(self.sell_price_nzd),
            "location": self.location,
            "images": self.images or [],
            "notes": self.notes,
            "status": self.status,
            "listed": self.listed,
            "source_type": self.source_type,
            "source_quote_id": self.source_quote_id,
            "source_name": self.source_name,
            "return_reason": self.return_reason,
            "returned_from_order_id": self.returned_from_order_id,
            "returned_at": to_utc_z(self.returned_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
