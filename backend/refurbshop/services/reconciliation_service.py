# Overview: Applies payment completions (webhook or stub) to orders and inventory, exactly once.

"""
Payment Reconciliation

WHY: Processor notifications are retried, duplicated and delivered out of
order. The order id is the idempotency key and payment_status == "paid" is the
"already applied" guard, checked under lock inside the same transaction that
applies the payment. Transport-level delivery guarantees are not relied on.

RULES:
- A paid order is never mutated again (duplicate delivery -> already_paid).
- Applying a payment is one atomic write: order paid + every item sold.
- Malformed or unmatched notifications are acknowledged but NOT applied; they
  are logged as anomalies and recorded in the ledger (payment.anomaly).
- Availability is not re-checked here. Reservation already guaranteed
  exclusivity; the lifecycle guard (reserved -> sold only) still fails closed.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..errors import InvalidStateError
from ..extensions import db
from ..models import InventoryItem, Order
from ..time_utils import utcnow
from . import lifecycle_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_event


OUTCOME_APPLIED = "applied"
OUTCOME_ALREADY_PAID = "already_paid"
OUTCOME_IGNORED = "ignored"

PAYMENT_STATUS_PENDING = "pending"
PAYMENT_STATUS_PAID = "paid"
ORDER_STATUS_CANCELLED = "cancelled"

EVENT_CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class ReconciliationResult:
    outcome: str
    order_id: str | None = None
    reason: str | None = None

    @property
    def applied(self) -> bool:
        return self.outcome == OUTCOME_APPLIED


def finalize_paid(
    order: Order,
    *,
    source: str,
    processor_reference: str | None = None,
    session_id: str | None = None,
) -> Order:
    """
    Mark `order` paid and every item on it sold.

    Caller owns the transaction (begin_write + commit). Raises
    InvalidStateError if any referenced item is not currently reserved.
    """
    item_ids = order.inventory_item_ids
    items = []
    if item_ids:
        items = lock_for_update(
            db.session.query(InventoryItem).filter(InventoryItem.id.in_(item_ids))
        ).all()
    found = {item.id for item in items}
    missing = [item_id for item_id in item_ids if item_id not in found]
    if missing:
        raise InvalidStateError(
            f"Order {order.order_number} references missing inventory",
            details={"missing": missing},
        )

    for item in items:
        lifecycle_service.sell(item)
        append_event(
            event_type="inventory.sold",
            entity_type="inventory_item",
            entity_id=item.id,
            order_id=order.id,
            inventory_item_id=item.id,
            source=source,
        )

    order.payment_status = PAYMENT_STATUS_PAID
    order.status = PAYMENT_STATUS_PAID
    order.paid_at = utcnow()
    if processor_reference:
        order.stripe_payment_intent_id = processor_reference
    if session_id and not order.stripe_checkout_session_id:
        order.stripe_checkout_session_id = session_id

    append_event(
        event_type="order.paid",
        entity_type="order",
        entity_id=order.id,
        order_id=order.id,
        source=source,
        note=f"Order {order.order_number} paid via {source}",
        payload={
            "processor_reference": processor_reference,
            "total_aud": str(order.total_aud),
        },
    )
    return order


def on_payment_completed(
    order_id: str | None,
    processor_reference: str | None = None,
    *,
    session_id: str | None = None,
) -> ReconciliationResult:
    """
    Apply a processor payment-completion notification. Safe to call repeatedly.

    Returns a ReconciliationResult; never raises for unknown/mismatched orders
    so the webhook can always acknowledge.
    """
    if not order_id:
        return _record_anomaly(None, "notification carries no order id", session_id=session_id)

    def _op() -> ReconciliationResult:
        begin_write()
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()

        if order is None:
            db.session.rollback()
            return ReconciliationResult(OUTCOME_IGNORED, order_id, "order not found")

        if order.payment_status == PAYMENT_STATUS_PAID:
            db.session.rollback()
            return ReconciliationResult(OUTCOME_ALREADY_PAID, order_id)

        if order.status == ORDER_STATUS_CANCELLED:
            db.session.rollback()
            return ReconciliationResult(OUTCOME_IGNORED, order_id, "payment received for a released order")

        if (
            session_id
            and order.stripe_checkout_session_id
            and session_id != order.stripe_checkout_session_id
        ):
            db.session.rollback()
            return ReconciliationResult(OUTCOME_IGNORED, order_id, "checkout session does not match order")

        try:
            finalize_paid(
                order,
                source="stripe",
                processor_reference=processor_reference,
                session_id=session_id,
            )
        except InvalidStateError as exc:
            db.session.rollback()
            return ReconciliationResult(OUTCOME_IGNORED, order_id, str(exc))

        db.session.commit()
        return ReconciliationResult(OUTCOME_APPLIED, order_id)

    result = run_with_retry(_op)

    if result.outcome == OUTCOME_APPLIED:
        current_app.logger.info(
            "Payment applied for order %s (reference=%s)", order_id, processor_reference
        )
    elif result.outcome == OUTCOME_ALREADY_PAID:
        current_app.logger.info("Duplicate payment notification for order %s ignored", order_id)
    else:
        return _record_anomaly(
            order_id,
            result.reason or "notification not applied",
            session_id=session_id,
            processor_reference=processor_reference,
        )
    return result


def handle_event(event) -> ReconciliationResult:
    """
    Dispatch a signature-verified processor event.

    Only checkout.session.completed changes state; everything else is
    acknowledged and ignored.
    """
    event_type = _field(event, "type")
    if event_type != EVENT_CHECKOUT_COMPLETED:
        current_app.logger.info("Ignoring processor event type %s", event_type)
        return ReconciliationResult(OUTCOME_IGNORED, reason=f"unhandled event type {event_type}")

    session = _field(_field(event, "data"), "object")
    metadata = _field(session, "metadata")
    order_id = _field(metadata, "orderId")
    session_id = _field(session, "id")
    if not order_id:
        return _record_anomaly(None, "no orderId in session metadata", session_id=session_id)

    return on_payment_completed(
        order_id,
        _field(session, "payment_intent"),
        session_id=session_id,
    )


def _record_anomaly(
    order_id: str | None,
    reason: str,
    *,
    session_id: str | None = None,
    processor_reference: str | None = None,
) -> ReconciliationResult:
    current_app.logger.warning(
        "Payment notification not applied (order=%s session=%s): %s",
        order_id, session_id, reason,
    )

    def _op():
        append_event(
            event_type="payment.anomaly",
            entity_type="order",
            entity_id=(order_id or session_id or "unknown")[:32],
            order_id=order_id[:32] if order_id else None,
            source="webhook",
            note=reason,
            payload={"session_id": session_id, "processor_reference": processor_reference},
        )
        db.session.commit()

    run_with_retry(_op)
    return ReconciliationResult(OUTCOME_IGNORED, order_id, reason)


def _field(obj, key):
    """Read a key from a dict or StripeObject, None when absent."""
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError, IndexError):
        return None
