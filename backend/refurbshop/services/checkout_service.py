# Overview: Turns a customer cart into a reserved order, then hands off to payment.

"""
Reservation Transaction

================================================================================
ONE TRANSACTION, ALL OR NOTHING
================================================================================

checkout() commits either:
- a new pending Order with its snapshot lines AND every cart item moved
  listed -> reserved, or
- nothing at all (ConflictError naming every unavailable item, or a
  ValidationError raised before the transaction starts).

Inside the transaction, in this order:
1. Lock every requested item and check availability (status listed AND the
   listed flag set). All unavailable ids are collected before failing.
2. Check every requested add-on exists and is active.
3. Allocate the order number from the "orders" counter.
4. Snapshot device metadata into line descriptions.
5. Compute subtotal, flat shipping and the GST component.
6. Write the Order, move each item to reserved, ledger "order.reserved".

The payment mode is resolved BEFORE the transaction; the processor is only
contacted after commit, from the stored order. A processor failure leaves the
order pending and its items reserved until staff release it.
================================================================================
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..config import PAYMENT_MODE_STRIPE
from ..errors import ConflictError, ExternalServiceError, TransientStoreConflict
from ..extensions import db
from ..models import Device, InventoryItem, Order, OrderLine, OrderUpsellLine, UpsellProduct
from ..models.inventory import new_id
from ..money import ZERO, to_money
from ..validation import CheckoutRequest, UpsellSelection
from . import lifecycle_service
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_event
from .payment_gateway import get_gateway
from .reconciliation_service import PAYMENT_STATUS_PAID, PAYMENT_STATUS_PENDING, finalize_paid
from .sequence_service import next_value
from .shipping_service import DEFAULT_CATEGORY, compute_totals, get_shipping_config


@dataclass(frozen=True)
class CheckoutResult:
    order_id: str
    order_number: int
    payment_mode: str
    checkout_url: str | None = None

    @property
    def paid(self) -> bool:
        return self.checkout_url is None

    def to_dict(self) -> dict:
        data = {"orderId": self.order_id, "orderNumber": self.order_number}
        if self.checkout_url:
            data["url"] = self.checkout_url
        return data


def describe_item(item: InventoryItem, device: Device | None) -> str:
    """Human-readable line description frozen onto the order."""
    grade = f"Grade {item.cosmetic_grade}"
    if device is None or not device.display_name:
        return grade
    return f"{device.display_name} - {grade}"


def checkout(request: CheckoutRequest, *, base_url: str | None = None) -> CheckoutResult:
    """
    Reserve the cart and start payment.

    Returns:
        CheckoutResult. In stub mode the order is already paid; in stripe mode
        checkout_url points at the hosted payment page.

    Raises:
        ConflictError: one or more items (or add-ons) are no longer available
        TransientStoreConflict: store kept colliding after bounded retries
        ExternalServiceError: stripe mode and the processor call failed
    """
    gateway = get_gateway()
    shipping_config = get_shipping_config()

    def _op():
        begin_write()
        order = _reserve(request, shipping_config, gateway.mode)
        db.session.commit()
        return order.id, order.order_number

    order_id, order_number = run_with_retry(_op)
    current_app.logger.info(
        "Order %s (#%s) reserved %s item(s) for %s",
        order_id, order_number, len(request.inventory_ids), request.customer_email,
    )

    if gateway.mode == PAYMENT_MODE_STRIPE:
        url = _start_processor_checkout(gateway, order_id, base_url)
        return CheckoutResult(order_id, order_number, gateway.mode, checkout_url=url)

    _complete_stub_payment(order_id)
    return CheckoutResult(order_id, order_number, gateway.mode)


def _reserve(request: CheckoutRequest, shipping_config, payment_mode: str) -> Order:
    items = _lock_available_items(request.inventory_ids)
    upsells = _load_upsells(request)

    order_number = next_value("orders")

    device_ids = {item.device_id for item in items}
    devices = {}
    if device_ids:
        devices = {
            d.id: d for d in db.session.query(Device).filter(Device.id.in_(device_ids)).all()
        }

    lines = [
        OrderLine(
            inventory_item_id=item.id,
            inventory_number=item.inventory_number,
            device_id=item.device_id,
            description=describe_item(item, devices.get(item.device_id)),
            price_aud=to_money(item.sell_price_aud),
        )
        for item in items
    ]
    upsell_lines = [
        OrderUpsellLine(
            upsell_id=product.id,
            name=product.name,
            price_aud=to_money(product.price_aud),
            quantity=selection.quantity,
        )
        for product, selection in upsells
    ]

    inventory_subtotal = sum((line.price_aud for line in lines), ZERO)
    upsell_subtotal = sum((line.line_total_aud for line in upsell_lines), ZERO)
    totals = compute_totals(
        [item.category or DEFAULT_CATEGORY for item in items],
        inventory_subtotal,
        upsell_subtotal,
        shipping_config,
    )

    order = Order(
        id=new_id(),
        order_number=order_number,
        customer_name=request.customer_name,
        customer_email=request.customer_email,
        customer_phone=request.customer_phone,
        shipping_address=request.shipping_address.to_dict(),
        display_currency=request.currency,
        subtotal_aud=totals.subtotal,
        shipping_aud=totals.shipping,
        gst_aud=totals.gst,
        total_aud=totals.total,
        payment_status=PAYMENT_STATUS_PENDING,
        status=PAYMENT_STATUS_PENDING,
        payment_mode=payment_mode,
        lines=lines,
        upsell_lines=upsell_lines,
    )
    db.session.add(order)

    for item in items:
        lifecycle_service.reserve(item)

    append_event(
        event_type="order.reserved",
        entity_type="order",
        entity_id=order.id,
        order_id=order.id,
        source=payment_mode,
        note=f"Order {order_number} reserved",
        payload={
            "inventory_ids": [item.id for item in items],
            "upsells": [[product.id, selection.quantity] for product, selection in upsells],
            "total_aud": str(totals.total),
        },
    )
    db.session.flush()
    return order


def _lock_available_items(inventory_ids) -> list[InventoryItem]:
    """Lock the requested rows; fail with every unavailable id at once."""
    if not inventory_ids:
        return []

    rows = lock_for_update(
        db.session.query(InventoryItem).filter(InventoryItem.id.in_(inventory_ids))
    ).all()
    by_id = {row.id: row for row in rows}

    unavailable = [
        inventory_id
        for inventory_id in inventory_ids
        if inventory_id not in by_id
        or not lifecycle_service.is_available(by_id[inventory_id])
        or by_id[inventory_id].sell_price_aud is None
    ]
    if unavailable:
        if len(unavailable) == 1:
            message = f"Item {unavailable[0]} is no longer available"
        else:
            message = f"{len(unavailable)} items are no longer available"
        raise ConflictError(message, details={"unavailable": unavailable})

    return [by_id[inventory_id] for inventory_id in inventory_ids]


def _load_upsells(request: CheckoutRequest) -> list[tuple[UpsellProduct, UpsellSelection]]:
    if not request.upsells:
        return []

    ids = {selection.upsell_id for selection in request.upsells}
    products = {
        p.id: p
        for p in db.session.query(UpsellProduct).filter(UpsellProduct.id.in_(ids)).all()
    }
    missing = sorted(
        upsell_id for upsell_id in ids
        if upsell_id not in products or not products[upsell_id].active
    )
    if missing:
        raise ConflictError(
            "Add-on product is no longer available",
            details={"unavailableUpsells": missing},
        )
    return [(products[s.upsell_id], s) for s in request.upsells]


def _complete_stub_payment(order_id: str) -> None:
    def _op():
        begin_write()
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order.payment_status == PAYMENT_STATUS_PAID:
            db.session.rollback()
            return order_id
        finalize_paid(order, source="stub")
        db.session.commit()
        return order_id

    try:
        run_with_retry(_op)
    except TransientStoreConflict as exc:
        # Reservation is already committed; staff must release or retry it
        current_app.logger.warning(
            "STUB payment: order %s left pending with items reserved; release it via "
            "/api/admin/orders/%s/release", order_id, order_id,
        )
        raise TransientStoreConflict(
            str(exc), details={**exc.details, "orderId": order_id}
        ) from exc

    current_app.logger.warning(
        "STUB payment: order %s marked paid without a payment processor", order_id
    )


def _start_processor_checkout(gateway, order_id: str, base_url: str | None) -> str:
    order = db.session.get(Order, order_id)
    try:
        session = gateway.create_checkout_session(order, base_url=base_url)
    except ExternalServiceError:
        current_app.logger.exception(
            "Checkout session creation failed for order %s; order left pending", order_id
        )
        _record_session_failure(order_id)
        raise

    def _op():
        begin_write()
        locked = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        # The webhook may already have applied payment and stored the session id
        if locked.payment_status != PAYMENT_STATUS_PAID:
            locked.stripe_checkout_session_id = session.session_id
            append_event(
                event_type="payment.session_created",
                entity_type="order",
                entity_id=order_id,
                order_id=order_id,
                source="stripe",
                payload={"session_id": session.session_id},
            )
        db.session.commit()

    run_with_retry(_op)
    return session.url


def _record_session_failure(order_id: str) -> None:
    def _op():
        append_event(
            event_type="payment.session_failed",
            entity_type="order",
            entity_id=order_id,
            order_id=order_id,
            source="stripe",
            note="Processor rejected or did not answer; items remain reserved",
        )
        db.session.commit()

    run_with_retry(_op)
