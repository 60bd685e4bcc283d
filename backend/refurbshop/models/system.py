from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Counter(db.Model):
    """
    Named monotonic integer generator (orders, inventory, devices).

    WHY: Numbers derived from a counter must be allocated inside the same
    transaction as the row they number. See services.sequence_service.
    """
    __tablename__ = "counters"

    name = db.Column(db.String(32), primary_key=True)
    next_value = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "next_value": self.next_value,
            "updated_at": to_utc_z(self.updated_at),
        }


class LedgerEvent(db.Model):
    """
    Append-only audit event.

    Written inside the same transaction as the change it records, so an event
    exists if and only if the change committed.
    """
    __tablename__ = "ledger_events"
    __table_args__ = (
        db.Index("ix_ledger_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.String(32), nullable=False)

    order_id = db.Column(db.String(32), nullable=True, index=True)
    inventory_item_id = db.Column(db.String(32), nullable=True, index=True)

    # stub | stripe | staff | webhook
    source = db.Column(db.String(16), nullable=True)
    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "order_id": self.order_id,
            "inventory_item_id": self.inventory_item_id,
            "source": self.source,
            "note": self.note,
            "payload": self.payload,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class Setting(db.Model):
    """Key/JSON value store for storefront settings (e.g. key 'shipping')."""
    __tablename__ = "settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
