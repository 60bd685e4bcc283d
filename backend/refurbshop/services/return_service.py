# Overview: Puts a sold unit back into stock when a customer returns it.

"""
Return Processing Service

WHY: A returned phone re-enters the refurbishment pipeline as a fresh intake.
It is NOT relisted directly: staff re-inspect it, so the item goes to
"received" and can only reach "listed" again through the intake pipeline.

RULES:
- Only items with status "sold" can be returned (InvalidStateError otherwise).
- The originating order is recorded for traceability: the caller may pass it,
  otherwise the most recent paid order containing the item is used.
- Orders are never modified by a return. Refunds happen at the processor.
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import InventoryItem, Order, OrderLine
from ..time_utils import utcnow
from ..validation import UNSET
from . import lifecycle_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_event


SOURCE_TYPE_RETURN = "return"


def find_originating_order_id(item_id: str) -> str | None:
    """Most recent paid order that sold this unit, if any."""
    row = (
        db.session.query(Order.id)
        .join(OrderLine, OrderLine.order_id == Order.id)
        .filter(OrderLine.inventory_item_id == item_id)
        .filter(Order.payment_status == "paid")
        .order_by(Order.paid_at.desc(), Order.order_number.desc())
        .first()
    )
    return row[0] if row else None


def process_return(
    item_id: str,
    reason: str | None = None,
    new_grade: str | None = None,
    order_id: str | None = None,
    *,
    battery_health: int | None = None,
    location=UNSET,
    notes: str | None = None,
) -> InventoryItem:
    """
    Move a sold item back to "received".

    Args:
        item_id: Opaque inventory item id
        reason: Customer's reason for the return
        new_grade: Cosmetic grade after re-inspection (unchanged if None)
        order_id: Order the item came back from (looked up if None)
        battery_health: Updated battery health percentage
        location: New shelf location; pass None to clear it
        notes: Replaces the item notes when given

    Raises:
        NotFoundError: unknown item id
        InvalidStateError: item is not currently sold
    """
    def _op() -> InventoryItem:
        begin_write()
        item = lock_for_update(
            db.session.query(InventoryItem).filter_by(id=item_id)
        ).first()
        if item is None:
            raise NotFoundError(f"Inventory item {item_id} not found")

        lifecycle_service.receive_return(item)

        source_order_id = order_id or find_originating_order_id(item.id)

        item.source_type = SOURCE_TYPE_RETURN
        item.return_reason = reason
        item.returned_from_order_id = source_order_id
        item.returned_at = utcnow()
        if new_grade:
            item.cosmetic_grade = new_grade
        if battery_health is not None:
            item.battery_health = battery_health
        if location is not UNSET:
            item.location = location
        if notes is not None:
            item.notes = notes

        append_event(
            event_type="inventory.returned",
            entity_type="inventory_item",
            entity_id=item.id,
            order_id=source_order_id,
            inventory_item_id=item.id,
            source="staff",
            note=reason,
            payload={"cosmetic_grade": item.cosmetic_grade},
        )
        db.session.commit()
        return item

    item = run_with_retry(_op)
    current_app.logger.info(
        "Item #%s returned (order=%s, grade=%s)",
        item.inventory_number, item.returned_from_order_id, item.cosmetic_grade,
    )
    return item
