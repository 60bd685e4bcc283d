from __future__ import annotations

from ..extensions import db
from ..money import as_number
from ..time_utils import to_utc_z


class Device(db.Model):
    """
    Catalog device (make/model/storage).

    Catalog editing lives outside this service; checkout only reads these rows
    to snapshot a human-readable description onto order lines.
    """
    __tablename__ = "devices"
    __table_args__ = (
        db.Index("ix_devices_make_model", "make", "model"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    make = db.Column(db.String(64), nullable=False)
    model = db.Column(db.String(128), nullable=False)
    storage = db.Column(db.String(32), nullable=True)
    category = db.Column(db.String(32), nullable=False, default="Phone")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Device id={self.id} {self.make!r} {self.model!r} {self.storage!r}>"

    @property
    def display_name(self) -> str:
        return " ".join(part for part in (self.make, self.model, self.storage) if part)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "make": self.make,
            "model": self.model,
            "storage": self.storage,
            "category": self.category,
        }


class UpsellProduct(db.Model):
    """Add-on product sold alongside devices; not tracked by serial."""
    __tablename__ = "upsell_products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price_aud = db.Column(db.Numeric(10, 2), nullable=False)
    image = db.Column(db.String(512), nullable=True)
    compatible_categories = db.Column(db.JSON, nullable=False, default=list)
    active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_aud": as_number(self.price_aud),
            "image": self.image,
            "compatible_categories": self.compatible_categories or [],
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
        }
