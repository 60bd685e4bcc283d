# Overview: Staff API routes for intake, pipeline moves, returns and reservation release.

# backend/refurbshop/routes/admin.py
"""
Staff API Routes

SECURITY: every route requires the staff bearer token (require_staff).
"""

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_staff
from ..errors import ShopError, ValidationError
from ..services import inventory_service, ledger_service, order_service, return_service
from ..validation import parse_receive_request, parse_return_request


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


# =============================================================================
# INVENTORY
# =============================================================================

@admin_bp.post("/inventory")
@require_staff
def receive_item_route():
    """
    Book a new unit into stock (status: received).

    Request body:
    {
        "deviceId": 12,
        "serial": "356789012345678",
        "sourceType": "trade-in",   (trade-in | bulk | direct-purchase | return)
        "cosmeticGrade": "A",
        "costAUD": 250.00,          (costAUD or costNZD required)
        "sellPriceAUD": 449.00,     (optional until listing)
        "category": "Phone",        (optional, defaults to the device's)
        "batteryHealth": 91,        (optional)
        "location": "Shelf B2"      (optional)
    }

    Returns:
        201: {item}
        400: Invalid input
        404: Unknown device
        409: Serial already on file
    """
    try:
        receive_request = parse_receive_request(request.get_json(silent=True))
        item = inventory_service.receive_item(receive_request)
        return jsonify({"item": item.to_dict()}), 201

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to receive item")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/inventory/<item_id>")
@require_staff
def get_item_route(item_id: str):
    try:
        item = inventory_service.get_item(item_id)
        return jsonify({"item": item.to_dict()}), 200

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load item")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/inventory/<item_id>/events")
@require_staff
def item_events_route(item_id: str):
    """Ledger history of one unit, oldest first."""
    try:
        inventory_service.get_item(item_id)
        events = ledger_service.events_for_item(item_id)
        return jsonify({"events": [e.to_dict() for e in events]}), 200

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load item events")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/inventory/<item_id>/status")
@require_staff
def advance_item_route(item_id: str):
    """
    Move an item one step through the refurbishment pipeline.

    Request body: {"status": "inspecting" | "refurbishing" | "listed"}
    """
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status")
        if not status:
            raise ValidationError("status is required")

        item = inventory_service.advance_item(item_id, status)
        return jsonify({"item": item.to_dict()}), 200

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to change item status")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/inventory/return")
@require_staff
def process_return_route():
    """
    Take back a sold unit.

    Request body:
    {
        "inventoryId": "9f0c...",
        "returnReason": "Screen flicker",  (optional)
        "cosmeticGrade": "B",              (optional, re-graded on return)
        "orderId": "...",                  (optional, looked up if omitted)
        "batteryHealth": 88,               (optional)
        "location": "Returns bin",         (optional)
        "notes": "..."                     (optional)
    }

    Returns:
        200: {id, inventoryNumber, status}
        400: Item is not sold
        404: Unknown item
    """
    try:
        return_request = parse_return_request(request.get_json(silent=True))
        item = return_service.process_return(
            return_request.inventory_id,
            reason=return_request.return_reason,
            new_grade=return_request.cosmetic_grade,
            order_id=return_request.order_id,
            battery_health=return_request.battery_health,
            location=return_request.location,
            notes=return_request.notes,
        )
        return jsonify({
            "id": item.id,
            "inventoryNumber": item.inventory_number,
            "status": item.status,
        }), 200

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process return")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ORDERS
# =============================================================================

@admin_bp.get("/orders/pending")
@require_staff
def list_pending_orders_route():
    try:
        orders = order_service.list_pending_orders()
        return jsonify({"orders": [o.to_dict() for o in orders]}), 200
    except Exception:
        current_app.logger.exception("Failed to list pending orders")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/orders/<order_id>")
@require_staff
def get_order_route(order_id: str):
    try:
        order = order_service.get_order(order_id)
        return jsonify({"order": order.to_dict()}), 200

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load order")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.get("/orders/<order_id>/events")
@require_staff
def order_events_route(order_id: str):
    """Ledger history of one order: reservation, payment, release, returns."""
    try:
        order_service.get_order(order_id)
        events = ledger_service.events_for_order(order_id)
        return jsonify({"events": [e.to_dict() for e in events]}), 200

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load order events")
        return jsonify({"error": "Internal server error"}), 500


@admin_bp.post("/orders/<order_id>/release")
@require_staff
def release_order_route(order_id: str):
    """
    Release an abandoned reservation: order -> cancelled, items relisted.

    Request body (optional): {"note": "Customer never paid"}

    Returns:
        200: {order}
        400: Order is not pending
        404: Unknown order
    """
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.release_order(order_id, note=data.get("note"))
        return jsonify({"order": order.to_dict()}), 200

    except ShopError as e:
        return jsonify({"error": str(e), **e.details}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to release order")
        return jsonify({"error": "Internal server error"}), 500
