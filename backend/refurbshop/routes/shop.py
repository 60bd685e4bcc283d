# Overview: Public storefront API: checkout, order lookup, shipping and add-on reads.

# backend/refurbshop/routes/shop.py
"""
Storefront API Routes

No authentication: these are called by the shop front end. The order lookup
requires the customer's email alongside the order id.
"""

from flask import Blueprint, current_app, jsonify, request

from ..errors import ShopError
from ..extensions import db
from ..models import UpsellProduct
from ..services import checkout_service, order_service
from ..services.shipping_service import get_shipping_config
from ..validation import parse_checkout_request


shop_bp = Blueprint("shop", __name__, url_prefix="/api/shop")


@shop_bp.post("/checkout")
def checkout_route():
    """
    Reserve the cart and start payment.

    Request body:
    {
        "items": [{"inventoryId": "9f0c..."}],
        "upsellItems": [{"upsellId": 3, "quantity": 1}],  (optional)
        "customerName": "Jane Citizen",
        "customerEmail": "jane@example.com",
        "customerPhone": "0400 000 000",  (optional)
        "shippingAddress": {"line1": ..., "city": ..., "region": ..., "postcode": ..., "country": ...},
        "currency": "AUD"  (optional, display only)
    }

    Returns:
        201: {orderId, orderNumber} - stub mode, order already paid
        200: {url, orderId, orderNumber} - stripe mode, redirect to url
        400: Invalid input
        409: Items no longer available ({error, unavailable})
        502: Payment processor failed ({error, orderId})
    """
    try:
        checkout_request = parse_checkout_request(request.get_json(silent=True))
        origin = request.headers.get("Origin")
        base_url = origin if origin in current_app.config["CORS_ALLOWED_ORIGINS"] else None
        result = checkout_service.checkout(checkout_request, base_url=base_url)
        return jsonify(result.to_dict()), (201 if result.paid else 200)

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to complete checkout")
        return jsonify({"error": "Internal server error"}), 500


@shop_bp.get("/orders/<order_id>")
def get_order_route(order_id: str):
    """Customer order view. Query: ?email= (must match the order)."""
    try:
        order = order_service.get_order_for_customer(order_id, request.args.get("email"))
        return jsonify({"order": order.to_dict()}), 200

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@shop_bp.get("/shipping")
def shipping_route():
    try:
        return jsonify({"shipping": get_shipping_config().to_dict()}), 200
    except Exception:
        current_app.logger.exception("Failed to load shipping config")
        return jsonify({"error": "Internal server error"}), 500


@shop_bp.get("/upsells")
def upsells_route():
    """Active add-on products, optionally filtered by ?category= compatibility."""
    try:
        category = request.args.get("category")
        products = (
            db.session.query(UpsellProduct)
            .filter(UpsellProduct.active.is_(True))
            .order_by(UpsellProduct.name)
            .all()
        )
        if category:
            products = [
                p for p in products
                if not p.compatible_categories or category in p.compatible_categories
            ]
        return jsonify({"upsells": [p.to_dict() for p in products]}), 200

    except Exception:
        current_app.logger.exception("Failed to list add-on products")
        return jsonify({"error": "Internal server error"}), 500
