# Overview: Payment processor adapter (Stripe Checkout) and the explicit stub mode.

"""
Payment Gateway Adapter

WHY: The processor call cannot be part of the reservation transaction, so it
happens after commit and works only from the order's STORED data (lines,
upsells, shipping), never from the live cart.

MODES (config PAYMENT_MODE, resolved before any transaction starts):
- stub:   no processor; checkout marks the order paid inline. Every stub
          completion is logged and ledgered with source="stub".
- stripe: hosted Stripe Checkout session; completion arrives later through
          the webhook and reconciliation_service.

A Stripe failure is surfaced as ExternalServiceError. It never falls back to
stub completion: "processor down" and "processor disabled" are different
situations and only configuration may select the latter.
"""

from __future__ import annotations

from dataclasses import dataclass

import stripe
from flask import current_app

from ..config import PAYMENT_MODE_STRIPE, PAYMENT_MODE_STUB, PAYMENT_MODES
from ..errors import ExternalServiceError, ValidationError
from ..models import Order
from ..money import to_cents


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


class StubGateway:
    """Marker gateway: checkout completes payment inline."""
    mode = PAYMENT_MODE_STUB

    def __repr__(self) -> str:
        return "<StubGateway>"


class StripeGateway:
    """Thin wrapper over the stripe SDK calls the shop needs."""
    mode = PAYMENT_MODE_STRIPE

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        *,
        currency: str = "aud",
        storefront_url: str = "",
    ):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.storefront_url = storefront_url.rstrip("/")

    def __repr__(self) -> str:
        return f"<StripeGateway currency={self.currency}>"

    def build_line_items(self, order: Order) -> list[dict]:
        """Priced line items built from the persisted order snapshot."""
        line_items = [
            self._line_item(line.description, line.price_aud, 1)
            for line in order.lines
        ]
        for upsell in order.upsell_lines:
            line_items.append(self._line_item(upsell.name, upsell.price_aud, upsell.quantity))
        if order.shipping_aud and order.shipping_aud > 0:
            line_items.append(self._line_item("Shipping", order.shipping_aud, 1))
        return line_items

    def _line_item(self, name: str, amount, quantity: int) -> dict:
        return {
            "price_data": {
                "currency": self.currency,
                "product_data": {"name": name},
                "unit_amount": to_cents(amount),
            },
            "quantity": quantity,
        }

    def create_checkout_session(self, order: Order, *, base_url: str | None = None) -> CheckoutSession:
        """
        Create a hosted Checkout Session for `order`.

        Raises:
            ExternalServiceError: Stripe unreachable or request rejected
        """
        base = (base_url or self.storefront_url).rstrip("/")
        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                mode="payment",
                line_items=self.build_line_items(order),
                customer_email=order.customer_email,
                metadata={
                    "orderId": order.id,
                    "orderNumber": str(order.order_number),
                },
                success_url=f"{base}/shop/order/{order.id}?success=1",
                cancel_url=f"{base}/shop/cart?cancelled=1",
                idempotency_key=f"checkout-{order.id}",
            )
        except stripe.StripeError as exc:
            raise ExternalServiceError(
                "Payment processor is unavailable",
                details={"orderId": order.id},
            ) from exc

        return CheckoutSession(session_id=session.id, url=session.url)

    def construct_event(self, payload: bytes, signature: str | None):
        """
        Verify a webhook delivery against the shared secret and parse it.

        Raises:
            ValidationError: missing header, bad signature, or unparseable body
        """
        if not signature:
            raise ValidationError("Missing stripe-signature header")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise ValidationError("Invalid webhook signature") from exc
        except ValueError as exc:
            raise ValidationError("Invalid webhook payload") from exc


def validate_payment_config(config) -> None:
    """Fail app start-up on an inconsistent payment configuration."""
    mode = config.get("PAYMENT_MODE")
    if mode not in PAYMENT_MODES:
        raise RuntimeError(
            f"PAYMENT_MODE must be one of {sorted(PAYMENT_MODES)} (got {mode!r})"
        )
    if mode == PAYMENT_MODE_STRIPE:
        missing = [
            key for key in ("STRIPE_SECRET_KEY", "STRIPE_WEBHOOK_SECRET")
            if not config.get(key)
        ]
        if missing:
            raise RuntimeError(f"PAYMENT_MODE=stripe requires {', '.join(missing)}")


def get_gateway():
    """Gateway for the configured payment mode."""
    config = current_app.config
    if config.get("PAYMENT_MODE") == PAYMENT_MODE_STRIPE:
        return StripeGateway(
            config["STRIPE_SECRET_KEY"],
            config["STRIPE_WEBHOOK_SECRET"],
            currency=config.get("STRIPE_CURRENCY", "aud"),
            storefront_url=config.get("STOREFRONT_URL", ""),
        )
    return StubGateway()
