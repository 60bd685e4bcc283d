# Overview: Order reads and the staff release of abandoned reservations.

"""
Orders are created only by checkout_service and marked paid only by
reconciliation_service (or the stub path). This module adds the two remaining
ways an order is touched:

- reads (staff by id, customers by id + email)
- release_order(): a staff decision that a pending reservation is abandoned.
  The order becomes "cancelled" and its items go reserved -> listed in the
  same transaction. Nothing releases reservations automatically.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InvalidStateError, NotFoundError
from ..extensions import db
from ..models import InventoryItem, Order
from ..time_utils import utcnow
from . import lifecycle_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_event


ORDER_STATUS_PENDING = "pending"
ORDER_STATUS_CANCELLED = "cancelled"


def get_order(order_id: str) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def get_order_for_customer(order_id: str, email: str | None) -> Order:
    """Public lookup. A wrong email looks exactly like an unknown order."""
    order = db.session.get(Order, order_id)
    if order is None or not email or order.customer_email.strip().lower() != email.strip().lower():
        raise NotFoundError(f"Order {order_id} not found")
    return order


def list_pending_orders(older_than=None) -> list[Order]:
    query = db.session.query(Order).filter(Order.status == ORDER_STATUS_PENDING)
    if older_than is not None:
        query = query.filter(Order.created_at < older_than)
    return query.order_by(Order.created_at, Order.order_number).all()


def release_order(order_id: str, *, note: str | None = None) -> Order:
    """
    Cancel a pending order and put its items back on sale.

    Raises:
        NotFoundError: unknown order
        InvalidStateError: order is paid or already cancelled, or an item is
            no longer reserved
    """
    def _op() -> Order:
        begin_write()
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if order.status != ORDER_STATUS_PENDING:
            raise InvalidStateError(
                f"Only pending orders can be released (order {order.order_number} is {order.status})"
            )

        item_ids = order.inventory_item_ids
        items = []
        if item_ids:
            items = lock_for_update(
                db.session.query(InventoryItem).filter(InventoryItem.id.in_(item_ids))
            ).all()
        for item in items:
            lifecycle_service.release(item)

        order.status = ORDER_STATUS_CANCELLED
        order.cancelled_at = utcnow()
        append_event(
            event_type="order.released",
            entity_type="order",
            entity_id=order.id,
            order_id=order.id,
            source="staff",
            note=note,
            payload={"inventory_ids": [item.id for item in items]},
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info(
        "Released order %s (#%s); %s item(s) relisted",
        order.id, order.order_number, len(order.lines),
    )
    return order
