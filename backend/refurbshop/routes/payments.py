# Overview: Payment processor webhook endpoint.

# backend/refurbshop/routes/payments.py
"""
Stripe Webhook

WHY: Stripe retries any delivery that does not get a 2xx. Once the signature
checks out, every event we understand or deliberately ignore is answered with
200 {"received": true}: notifications that cannot be applied are recorded as
anomalies by reconciliation_service rather than bounced back for endless
redelivery.

Non-2xx answers are reserved for deliveries Stripe SHOULD retry:
- 400: missing/invalid signature or unparseable body
- 503: the store stayed busy through the bounded retries
- 500: unexpected failure (reconciliation is idempotent, redelivery is safe)
- 501: the shop runs in stub mode and expects no processor events
"""

from flask import Blueprint, current_app, jsonify, request

from ..config import PAYMENT_MODE_STRIPE
from ..errors import ShopError, TransientStoreConflict
from ..services import reconciliation_service
from ..services.payment_gateway import get_gateway


payments_bp = Blueprint("payments", __name__, url_prefix="/api/shop")


@payments_bp.post("/webhook")
def stripe_webhook_route():
    gateway = get_gateway()
    if gateway.mode != PAYMENT_MODE_STRIPE:
        return jsonify({"error": "Payment processor is not configured"}), 501

    try:
        event = gateway.construct_event(
            request.get_data(),
            request.headers.get("Stripe-Signature"),
        )
        result = reconciliation_service.handle_event(event)
        current_app.logger.info("Webhook handled: %s", result.outcome)
        return jsonify({"received": True}), 200

    except TransientStoreConflict as e:
        current_app.logger.warning("Webhook deferred, store busy: %s", e)
        return jsonify({"error": str(e), **e.details}), 503
    except ShopError as e:
        current_app.logger.warning("Rejected webhook delivery: %s", e)
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to apply webhook event")
        return jsonify({"error": "Internal server error"}), 500
